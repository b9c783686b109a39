"""Venue street addresses, looked up on the schedule site."""
import logging
import re
from typing import Iterable, Optional

from bs4 import BeautifulSoup

from processor.models import EventRecord, VenueCache
from processor.text import normalize
from scraper.http_fetch import RetryingFetcher, is_failure

logger = logging.getLogger(__name__)

VENUE_DETAILS_RE = re.compile(r'venue-details')


def venue_key(venue_name: str) -> str:
    """Venue name without a trailing "(...)" or backslashes; the cache key."""
    name = re.sub(r'\(.*$', '', venue_name, flags=re.DOTALL)
    return name.replace('\\', '').strip()


class VenueAddressResolver:
    """Fills in venue addresses, fetching each venue's page at most once per run."""

    MAX_ATTEMPTS = 5

    def __init__(self, fetcher: RetryingFetcher, cache: VenueCache, base_url: str):
        """
        Initialize the resolver.

        Args:
            fetcher: Fetcher for the schedule site
            cache: Venue cache for this run
            base_url: Schedule site URL without query string
        """
        self.fetcher = fetcher
        self.cache = cache
        self.base_url = base_url

    def lookup_url(self, venue: str) -> str:
        """
        URL of the schedule site's page for a venue.

        Args:
            venue: Venue name (cache key form)

        Returns:
            URL with the venue as ``?venue=`` parameter
        """
        name = re.sub(r'^The ', '', venue, flags=re.IGNORECASE).strip()
        name = name.replace(' ', '+').replace('&', '%26amp%3B')
        return f"{self.base_url}?venue={name}"

    def resolve(self, events: Iterable[EventRecord]) -> None:
        """
        Set ``venue_address`` on every event that lacks one.

        Args:
            events: Events to update in place
        """
        for event in events:
            if event.venue_address:
                continue

            venue = venue_key(event.venue_name)
            if not venue:
                logger.warning(f"No location in event: {event.band}")
                continue

            if venue in self.cache:
                address = self.cache.get(venue)
            else:
                address = self._scrape_address(venue)
                self.cache.put(venue, address)

            if not address:
                logger.warning(f"No address for venue: {venue}")
                continue

            event.venue_name = venue
            event.venue_address = address

    def _scrape_address(self, venue: str) -> Optional[str]:
        url = self.lookup_url(venue)
        logger.info(f"Scraping venue \"{venue}\": {url}")

        page = self.fetcher.fetch(url, max_attempts=self.MAX_ATTEMPTS)
        if is_failure(page):
            return None

        soup = BeautifulSoup(page, 'html.parser')
        marker = soup.find(class_=VENUE_DETAILS_RE)
        if marker is None:
            return None

        heading = marker.find_next('h2')
        if heading is None:
            return None

        address = normalize(heading.get_text(' '))
        if address:
            logger.debug(f"Venue \"{venue}\": {address}")
        return address or None
