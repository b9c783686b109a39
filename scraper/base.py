"""Common shape of the schedule extractors."""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from processor.models import EventRecord, RunState
from processor.taste import TasteFilter
from processor.text import ical_datetime
from scraper.http_fetch import RetryingFetcher

logger = logging.getLogger(__name__)


class Extractor(ABC):
    """A schedule source that yields events of interest."""

    name = ''

    def __init__(self, fetcher: RetryingFetcher, taste: TasteFilter,
                 state: RunState, debug: int = 0):
        """
        Args:
            fetcher: Fetcher used for every page of this source
            taste: Artists of interest
            state: Dedup keys and caches shared across sources and passes
            debug: Debug level; > 0 keeps bands outside the taste filter
        """
        self.fetcher = fetcher
        self.taste = taste
        self.state = state
        self.debug = debug

    @abstractmethod
    def extract(self) -> List[EventRecord]:
        """Scrape the source and return new, deduplicated events."""

    def wanted(self, band: str) -> bool:
        artist = self.taste.display_name(band)
        if artist is None:
            return self.debug > 0
        if artist != band:
            logger.debug(f"\"{band}\" matches library artist \"{artist}\"")
        return True


def dedup_key(band: str, start: datetime) -> str:
    """Identity of a show across sources and passes: band and local start time."""
    return f"{band} @ {ical_datetime(start)}".lower()
