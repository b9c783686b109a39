"""Scraper for the sched.org ICS feed of the festival."""
import logging
import re
from datetime import datetime, tzinfo
from typing import List, Optional, Tuple

from icalendar import Calendar

from processor.errors import FeedFormatError
from processor.models import EventRecord, RunState
from processor.taste import TasteFilter
from scraper.band_pages import compose_description, enrich_band
from scraper.base import Extractor, dedup_key
from scraper.http_fetch import RetryingFetcher, is_failure

logger = logging.getLogger(__name__)

# HTML entities sched.org leaves in its plain-text fields.
FEED_ENTITIES = (
    ('&nbsp;', ' '),
    ('&lsquo;', "'"),
    ('&rsquo;', "'"),
    ('&ldquo;', '"'),
    ('&rdquo;', '"'),
    ('&ndash;', '-'),
    ('&mdash;', '--'),
    ('&bull;', '\n  * '),
    ('&amp;', '&'),
)

CALENDAR_END = 'END:VCALENDAR'


def trim_feed(feed: str) -> str:
    """Drop anything the server appended after END:VCALENDAR."""
    head, end, _ = feed.partition(CALENDAR_END)
    return head + end + '\r\n' if end else feed


def clean_value(value) -> str:
    """Replace the feed's typographic entities in a decoded text value."""
    text = str(value) if value is not None else ''
    for entity, plain in FEED_ENTITIES:
        text = text.replace(entity, plain)
    text = text.replace('\t', ' ')
    text = re.sub(r'(  ) +', r'\1', text)
    return text.strip()


def split_location(location: str) -> Tuple[str, Optional[str]]:
    """Split a feed location like "Stubb's, 801 Red River St" into venue and address."""
    venue, _, address = location.partition(', ')
    return venue.strip(), address.strip() or None


def to_local(value, zone: tzinfo) -> Optional[datetime]:
    """
    Convert a decoded feed timestamp to festival-local time.

    Only UTC (or otherwise zoned) date-times are accepted; all-day dates
    and floating times say nothing about when the show starts.

    Returns:
        Aware datetime in ``zone``, or None if unusable
    """
    if not isinstance(value, datetime) or value.tzinfo is None:
        return None
    return value.astimezone(zone)


class SchedFeedScraper(Extractor):
    """Builds events for bands of interest from the sched.org feed."""

    name = 'sched.org'

    def __init__(self, fetcher: RetryingFetcher, taste: TasteFilter, state: RunState,
                 feed_url: str, zone: tzinfo, category: str = 'BAND', debug: int = 0):
        """
        Initialize the feed scraper.

        Args:
            fetcher: Fetcher for the feed and band pages
            taste: Artists of interest
            state: Shared dedup state
            feed_url: URL of the festival's all.ics feed
            zone: Festival timezone
            category: CATEGORIES value marking musical acts
            debug: Debug level; > 0 keeps bands outside the taste filter
        """
        super().__init__(fetcher, taste, state, debug)
        self.feed_url = feed_url
        self.zone = zone
        self.category = category.upper()

    def extract(self) -> List[EventRecord]:
        logger.info(f"Scraping: {self.feed_url}")
        feed = self.fetcher.fetch(self.feed_url)
        events = self.parse_feed(feed)
        logger.info(f"{self.name}: {len(events)} new events")
        return events

    def parse_feed(self, feed: str) -> List[EventRecord]:
        """
        Build events from a whole feed document.

        Raises:
            FeedFormatError: If a band's description has nowhere to go
        """
        if is_failure(feed):
            logger.warning(f"{self.name}: empty feed, skipping")
            return []

        try:
            calendar = Calendar.from_ical(trim_feed(feed))
        except ValueError as e:
            logger.warning(f"{self.name}: unparsable feed, skipping: {e}")
            return []

        events = []
        for component in calendar.walk('VEVENT'):
            event = self._parse_event(component)
            if event:
                events.append(event)
        return events

    @staticmethod
    def _first(component, name: str):
        value = component.get(name)
        if isinstance(value, list):
            return value[0] if value else None
        return value

    def _text(self, component, name: str) -> str:
        return clean_value(self._first(component, name))

    def _moment(self, component, name: str):
        prop = self._first(component, name)
        return getattr(prop, 'dt', None)

    def _is_band(self, component) -> bool:
        values = component.get('CATEGORIES', [])
        if not isinstance(values, list):
            values = [values]
        for value in values:
            if self.category in (str(c).strip().upper() for c in value.cats):
                return True
        return False

    def _parse_event(self, component) -> Optional[EventRecord]:
        uid = self._text(component, 'UID')

        band = self._text(component, 'SUMMARY')
        if not band:
            logger.warning(f"No title in feed event {uid!r}")
            return None

        if not self._is_band(component):
            logger.debug(f"Skipping non-band \"{band}\"")
            return None

        if not self.wanted(band):
            logger.debug(f"Skipping \"{band}\"")
            return None

        venue, address = split_location(self._text(component, 'LOCATION'))
        if not venue:
            logger.warning(f"{band}: no location!")
            return None

        start = to_local(self._moment(component, 'DTSTART'), self.zone)
        if start is None:
            logger.warning(f"{band}: unparsable date: {self._moment(component, 'DTSTART')!r}")
            return None

        end = start
        if 'DTEND' in component:
            end = to_local(self._moment(component, 'DTEND'), self.zone)
            if end is None or end < start:
                logger.warning(f"{band}: bad end date: {self._moment(component, 'DTEND')!r}")
                return None

        key = dedup_key(band, start)
        if not self.state.claim(key):
            logger.debug(f"Skipping dup \"{key}\"")
            return None

        description = self._text(component, 'DESCRIPTION')
        homepage = None
        url = self._text(component, 'URL')

        if not url:
            logger.debug(f"\"{band}\": no url")
        else:
            homepage, band_description = enrich_band(self.fetcher, band, url)
            if not band_description:
                logger.debug(f"\"{url}\": no desc!")
            elif 'DESCRIPTION' not in component:
                raise FeedFormatError(
                    f"unable to splice description into event \"{band}\" ({uid or url})")
            else:
                description = compose_description(homepage, band_description)

        return EventRecord(
            band=band,
            event_url=url,
            venue_name=venue,
            start=start,
            end=end,
            description=description,
            detail_url=homepage,
            venue_address=address,
            uid=uid or None,
            source=self.name
        )
