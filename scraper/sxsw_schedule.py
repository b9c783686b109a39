"""Scraper for the festival's own schedule site, one index page per leading letter."""
import logging
import re
import string
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from processor.models import EventRecord, RunState
from processor.taste import TasteFilter
from processor.text import normalize
from scraper.band_pages import compose_description, enrich_band
from scraper.base import Extractor, dedup_key
from scraper.http_fetch import RetryingFetcher, is_failure

logger = logging.getLogger(__name__)

# Index pages are sharded by the band name's first character.
SHARDS = ['1'] + list(string.ascii_lowercase)

# The site's day ends around 2am: "Thu Mar 15, 1:00 AM" is really Friday morning.
DAY_ROLLOVER_HOUR = 6

ROW_CLASS_RE = re.compile(r'^row')

# field -> (tag, find() keyword filters)
EXTRACTION_RULES = {
    'event_url': ('a', {'href': re.compile(r'^/?event')}),
    'band': ('a', {'string': True}),
    'venue': ('div', {'class_': re.compile(r'^loc')}),
    'date': ('div', {'class_': re.compile(r'^date')}),
}

_CLOCK = r'\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?'
DATE_RANGE_RE = re.compile(
    r'^(?P<day>.*?)[,\s]+(?P<start>' + _CLOCK + r')'
    r'(?:\s*[-–—]+\s*|\s+)'
    r'(?P<end>' + _CLOCK + r')\s*$',
    re.DOTALL
)

DAY_FORMATS = [
    '%a %b %d %Y',       # Thu Mar 15
    '%A %B %d %Y',       # Thursday March 15
    '%a %B %d %Y',
    '%A %b %d %Y',
    '%b %d %Y',          # Mar 15
    '%B %d %Y',
    '%m/%d %Y',
]

CLOCK_FORMATS = [
    '%I:%M %p',
    '%I:%M%p',
    '%H:%M',
]


def parse_day(day: str, year: int) -> Optional[date]:
    """
    Parse the site's yearless day string.

    Args:
        day: Day text, e.g. "Thu Mar 15" or "Thursday, March 15"
        year: Year to assume

    Returns:
        date or None if no known format matches
    """
    text = re.sub(r'[,\s]+', ' ', day).strip()
    for fmt in DAY_FORMATS:
        try:
            return datetime.strptime(f"{text} {year}", fmt).date()
        except ValueError:
            continue
    return None


def parse_clock(clock: str) -> Optional[time]:
    """Parse "8:00PM", "1:00 a.m." or "20:00"; None if unparsable."""
    text = clock.replace('.', '').upper().strip()
    for fmt in CLOCK_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def parse_show_time(day: str, clock: str, year: int,
                    zone: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Combine a day and a clock time into a festival-local timestamp.

    Times before 6am belong to the previous evening's listing, so they are
    moved forward one day.

    Args:
        day: Day text from the listing
        clock: Clock time text
        year: Festival year
        zone: Festival timezone

    Returns:
        Aware datetime, or None if either part is unparsable
    """
    show_day = parse_day(day, year)
    show_clock = parse_clock(clock)
    if show_day is None or show_clock is None:
        return None

    moment = datetime.combine(show_day, show_clock)
    if moment.hour < DAY_ROLLOVER_HOUR:
        moment += timedelta(days=1)
    return moment.replace(tzinfo=zone)


def parse_date_range(text: str, year: int,
                     zone: Optional[tzinfo] = None) -> Optional[Tuple[datetime, datetime]]:
    """
    Parse a listing date like "Thu Mar 15 8:00PM-8:40PM".

    Returns:
        Tuple of (start, end), or None if the text is unparsable
    """
    match = DATE_RANGE_RE.match(text.strip())
    if not match:
        return None

    start = parse_show_time(match.group('day'), match.group('start'), year, zone)
    end = parse_show_time(match.group('day'), match.group('end'), year, zone)
    if start is None or end is None:
        return None
    return start, end


def extract_field(fragment, field: str) -> Optional[str]:
    """
    Apply one extraction rule to a row fragment.

    Args:
        fragment: BeautifulSoup element for one listing row
        field: Key of EXTRACTION_RULES

    Returns:
        The href for links, cleaned text otherwise; None when absent or empty
    """
    tag_name, filters = EXTRACTION_RULES[field]
    element = fragment.find(tag_name, **filters)
    if element is None:
        return None

    if field == 'event_url':
        value = element.get('href', '').strip()
    else:
        value = normalize(element.get_text(' '))
    return value or None


class SxswScheduleScraper(Extractor):
    """Walks the schedule index A-Z and builds events for bands of interest."""

    name = 'sxsw.com'

    def __init__(self, fetcher: RetryingFetcher, taste: TasteFilter, state: RunState,
                 index_url: str, zone: tzinfo, year: int, debug: int = 0):
        """
        Initialize the schedule scraper.

        Args:
            fetcher: Fetcher for the schedule site
            taste: Artists of interest
            state: Shared dedup state
            index_url: Index URL including its query string; "&a=<shard>" is appended
            zone: Festival timezone
            year: Festival year (the site omits it)
            debug: Debug level; > 1 stops after the first shard
        """
        super().__init__(fetcher, taste, state, debug)
        self.index_url = index_url
        self.base_url = index_url.split('?', 1)[0]
        self.zone = zone
        self.year = year

    def extract(self) -> List[EventRecord]:
        events = []

        for shard in SHARDS:
            url = f"{self.index_url}&a={shard}"
            logger.info(f"Scraping: {url}")
            page = self.fetcher.fetch(url)
            events.extend(self.parse_page(page))

            if self.debug > 1:
                break

        logger.info(f"{self.name}: {len(events)} new events")
        return events

    def parse_page(self, page: str) -> List[EventRecord]:
        """
        Parse every listing row of one index page.

        Args:
            page: Index page HTML

        Returns:
            Events for rows that pass every check
        """
        if is_failure(page):
            logger.warning(f"{self.name}: empty index page, skipping")
            return []

        soup = BeautifulSoup(page, 'html.parser')
        events = []

        for fragment in soup.find_all('div', class_=ROW_CLASS_RE):
            event = self._parse_fragment(fragment)
            if event:
                events.append(event)

        return events

    def _parse_fragment(self, fragment) -> Optional[EventRecord]:
        href = extract_field(fragment, 'event_url')
        if not href:
            return None

        band = extract_field(fragment, 'band')
        if not band:
            logger.warning(f"No title in listing for {href}")
            return None

        venue = extract_field(fragment, 'venue')
        if not venue:
            logger.warning(f"{band}: no location!")
            return None

        date_text = extract_field(fragment, 'date')
        if not date_text:
            logger.warning(f"{band}: no date!")
            return None

        if not self.wanted(band):
            logger.debug(f"Skipping \"{band}\"")
            return None

        times = parse_date_range(date_text, self.year, self.zone)
        if times is None:
            logger.warning(f"{band}: unparsable time: \"{date_text}\"")
            return None

        start, end = times
        if end < start:
            logger.warning(f"{band}: ends before it starts: \"{date_text}\"")
            return None

        key = dedup_key(band, start)
        if not self.state.claim(key):
            logger.debug(f"Skipping dup \"{key}\"")
            return None

        event_url = urljoin(self.base_url, href)
        homepage, description = enrich_band(self.fetcher, band, event_url)

        return EventRecord(
            band=band,
            event_url=event_url,
            venue_name=venue,
            start=start,
            end=end,
            description=compose_description(homepage, description),
            detail_url=homepage,
            source=self.name
        )
