"""Build an ICS file of the festival shows by bands in your music library.

- Artists with a track rated ``--stars`` or better (or a music video) in the
  iTunes library are the bands of interest.
- The festival schedule site and/or the sched.org feed are scraped, keeping
  only shows by those bands, each with the band's full description.
- Each event's location includes the venue's street address, and each
  description lists the band's other shows.
"""
import argparse
import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Mapping, Optional

from dateutil import tz

from processor.cross_reference import cross_reference
from processor.errors import CalendarBuildError, ConfigError
from processor.models import BuildResult, EventRecord, RunState
from processor.taste import TasteFilter
from scraper.http_fetch import RetryingFetcher
from scraper.itunes_library import load_rated_items
from scraper.sched_feed import SchedFeedScraper
from scraper.sxsw_schedule import SxswScheduleScraper
from scraper.venues import VenueAddressResolver
from storage.ics_writer import CalendarWriter

logger = logging.getLogger(__name__)

DEFAULT_LIBRARY = '~/Music/iTunes/iTunes Music Library.xml'
DEFAULT_SXSW_URL = ('http://schedule.sxsw.com/{year}/'
                    '?conference=music&lsort=name&day=ALL&category=Showcase')
DEFAULT_SCHED_URL = 'http://austin{year}.sched.org/all.ics'


# Attributes of every LogRecord; anything else on a record came from ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with ``extra=`` fields such as ``artists`` merged in."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Send all logging to stderr as JSON lines, replacing any earlier handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class Settings:
    """Run configuration taken from the environment."""
    library_path: str
    timezone_name: str
    zone: tzinfo
    year: int
    sxsw_url: str
    sched_url: str
    timeout: int


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read settings from environment variables.

    Args:
        env: Environment mapping (default: os.environ)

    Returns:
        Settings with defaults filled in

    Raises:
        ConfigError: If a value is malformed or the timezone is unknown
    """
    env = os.environ if env is None else env

    try:
        year = int(env.get('FESTIVAL_YEAR', datetime.now().year))
        timeout = int(env.get('TIMEOUT_SECONDS', '30'))
    except ValueError as e:
        raise ConfigError(f"Bad numeric setting: {e}") from e

    timezone_name = env.get('FESTIVAL_TIMEZONE', 'America/Chicago')
    zone = tz.gettz(timezone_name)
    if zone is None:
        raise ConfigError(f"Unknown timezone: {timezone_name}")

    return Settings(
        library_path=os.path.expanduser(env.get('ITUNES_LIBRARY', DEFAULT_LIBRARY)),
        timezone_name=timezone_name,
        zone=zone,
        year=year,
        sxsw_url=env.get('SXSW_BASE_URL', DEFAULT_SXSW_URL).format(year=year),
        sched_url=env.get('SCHED_URL', DEFAULT_SCHED_URL).format(year=year),
        timeout=timeout
    )


def build_calendar(
    settings: Settings,
    outfile: str,
    stars: int = 3,
    loop: int = 1,
    sources: str = 'sxsw',
    debug: int = 0,
    fetcher: Optional[RetryingFetcher] = None,
    now: Optional[datetime] = None
) -> BuildResult:
    """
    Scrape, filter, cross-reference and write the calendar.

    Args:
        settings: Run configuration
        outfile: Path of the ICS file to write
        stars: Minimum star rating for bands of interest
        loop: Number of passes over the schedule site index
        sources: 'sxsw', 'sched' or 'both'
        debug: Debug level (keeps every band; > 1 scrapes one index page)
        fetcher: Fetcher to use (default: a RetryingFetcher)
        now: DTSTAMP time (default: now)

    Returns:
        BuildResult with per-source counts

    Raises:
        CalendarBuildError: On any fatal problem
    """
    taste = TasteFilter.build(load_rated_items(settings.library_path), stars)
    state = RunState()
    fetcher = fetcher or RetryingFetcher(timeout=settings.timeout)

    sched_events: List[EventRecord] = []
    sxsw_events: List[EventRecord] = []

    if sources in ('sched', 'both'):
        # sched.org already contains venue addresses.
        sched = SchedFeedScraper(fetcher, taste, state, settings.sched_url,
                                 settings.zone, debug=debug)
        sched_events = sched.extract()

    if sources in ('sxsw', 'both'):
        sxsw = SxswScheduleScraper(fetcher, taste, state, settings.sxsw_url,
                                   settings.zone, settings.year, debug=debug)
        for pass_number in range(1, loop + 1):
            if loop > 1:
                logger.info(f"Schedule pass {pass_number} of {loop}")
            sxsw_events.extend(sxsw.extract())

        resolver = VenueAddressResolver(fetcher, state.venues, sxsw.base_url)
        resolver.resolve(sxsw_events)

    events = sched_events + sxsw_events
    cross_reference(events)

    writer = CalendarWriter(settings.timezone_name, now=now)
    writer.write(outfile, events)

    result = BuildResult(
        artists=len(taste),
        sched_events=len(sched_events),
        sxsw_events=len(sxsw_events),
        output_path=outfile
    )
    if result.sched_events:
        logger.info(f"sched.org events: {result.sched_events}")
    if result.sxsw_events:
        logger.info(f"sxsw.com events: {result.sxsw_events}")
    logger.info(f"total events: {result.total_events}")
    return result


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit status 1."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = UsageParser(
        prog='festival-calendar',
        description='Build an ICS file of festival shows by bands you like.'
    )
    parser.add_argument('outfile', help='ICS file to write')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='more logging (repeatable)')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='only warnings and errors')
    parser.add_argument('--debug', action='count', default=0,
                        help='keep every band; twice to scrape one index page only')
    parser.add_argument('--stars', type=int, default=3,
                        help='minimum star rating of tracks of interest (default: 3)')
    parser.add_argument('--loop', type=int, default=1,
                        help='passes over the schedule site index (default: 1)')
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--sched', dest='sources', action='store_const', const='sched',
                        help='scrape the sched.org feed instead of the schedule site')
    source.add_argument('--both', dest='sources', action='store_const', const='both',
                        help='scrape both sources, skipping duplicates')
    parser.add_argument('--library', help='iTunes library XML (overrides ITUNES_LIBRARY)')
    parser.set_defaults(sources='sxsw')

    args = parser.parse_args(argv)
    if args.loop < 1:
        parser.error('--loop must be at least 1')
    if not 0 <= args.stars <= 5:
        parser.error('--stars must be between 0 and 5')
    return args


def _log_level(args: argparse.Namespace, env: Mapping[str, str]) -> str:
    if args.quiet:
        return 'WARNING'
    if args.verbose:
        return 'DEBUG'
    return env.get('LOG_LEVEL', 'INFO')


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command-line entry point.

    Returns:
        Process exit code: 0 on success, 1 on a fatal error
    """
    args = parse_args(argv)
    setup_logging(_log_level(args, os.environ))

    start_time = time.time()
    try:
        settings = load_settings()
        if args.library:
            settings.library_path = os.path.expanduser(args.library)

        result = build_calendar(
            settings,
            args.outfile,
            stars=args.stars,
            loop=args.loop,
            sources=args.sources,
            debug=args.debug
        )
    except CalendarBuildError as e:
        logger.error(
            f"Calendar build failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return 1

    duration = time.time() - start_time
    logger.info(
        f"Wrote {result.total_events} events to {result.output_path}",
        extra={
            'duration_seconds': round(duration, 2),
            'artists': result.artists
        }
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
