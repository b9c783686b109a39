"""Data models for festival event processing."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Set


@dataclass
class RatedItem:
    """One track from the taste source."""
    artist: str
    rating_percent: int = 0
    has_video: bool = False


@dataclass
class EventRecord:
    """A single show of interest, scraped from either source."""
    band: str
    event_url: str
    venue_name: str
    start: datetime
    end: datetime
    description: str = ''
    detail_url: Optional[str] = None
    venue_address: Optional[str] = None
    uid: Optional[str] = None
    source: str = ''

    @property
    def location(self) -> str:
        """Venue name with the street address in parentheses, when known."""
        if self.venue_address:
            return f"{self.venue_name} ({self.venue_address})"
        return self.venue_name


@dataclass
class VenueCache:
    """Venue name to street address, for the lifetime of one run."""
    addresses: Dict[str, Optional[str]] = field(default_factory=dict)

    def __contains__(self, venue: str) -> bool:
        return venue in self.addresses

    def get(self, venue: str) -> Optional[str]:
        return self.addresses.get(venue)

    def put(self, venue: str, address: Optional[str]) -> None:
        self.addresses[venue] = address


@dataclass
class RunState:
    """Mutable state shared by the extractors during one run."""
    seen: Set[str] = field(default_factory=set)
    venues: VenueCache = field(default_factory=VenueCache)

    def claim(self, key: str) -> bool:
        """
        Record a dedup key.

        Args:
            key: Composite dedup key (already lowercased)

        Returns:
            True if the key was new, False if an earlier record owns it
        """
        if key in self.seen:
            return False
        self.seen.add(key)
        return True


@dataclass
class BuildResult:
    """Summary of a calendar build."""
    artists: int
    sched_events: int
    sxsw_events: int
    output_path: str

    @property
    def total_events(self) -> int:
        return self.sched_events + self.sxsw_events
