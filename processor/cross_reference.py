"""Note on each event the other dates the same band is playing."""
import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Set, Tuple

from processor.models import EventRecord

logger = logging.getLogger(__name__)


def short_venue(event: EventRecord) -> str:
    """Venue name alone: no "(address)" and no ", street" suffix."""
    venue = re.sub(r'\s*\(.*$', '', event.location, flags=re.DOTALL)
    venue = re.sub(r', .*$', '', venue, flags=re.DOTALL)
    return venue.replace('\\', '')


def format_show(start: datetime, venue: str) -> str:
    """
    One line of the "Multiple shows" list.

    Args:
        start: Show start, festival-local
        venue: Short venue name

    Returns:
        Text like "Thu, 8:30 PM at Stubb's" or "Fri, 1 AM at Emo's"
    """
    text = start.strftime('%a, %I:%M %p')
    text = text.replace(' 0', ' ')
    text = text.replace(':00 ', ' ')
    if venue:
        text += f" at {venue}"
    return text


def cross_reference(events: List[EventRecord]) -> None:
    """
    Prefix each event's description with the band's other shows.

    Only bands with more than one distinct show (start time and venue) are
    touched; every one of their events gets the full, chronological list.

    Args:
        events: All events of the run, updated in place
    """
    shows: Dict[str, Set[Tuple[datetime, str]]] = defaultdict(set)
    for event in events:
        shows[event.band].add((event.start, short_venue(event)))

    for event in events:
        band_shows = sorted(shows[event.band])
        if len(band_shows) < 2:
            continue

        lines = [format_show(start, venue) for start, venue in band_shows]
        header = "Multiple shows:\n\n" + "\n".join(lines)
        if event.description:
            event.description = f"{header}\n\n{event.description}"
        else:
            event.description = header

    multi = sum(1 for band_shows in shows.values() if len(band_shows) > 1)
    logger.debug(f"{multi} bands with multiple shows")
