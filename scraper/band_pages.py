"""Band detail pages: full descriptions and home page links."""
import logging
import re
from typing import Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from processor.text import normalize
from scraper.http_fetch import RetryingFetcher, is_failure

logger = logging.getLogger(__name__)

ONLINE_LABEL_RE = re.compile(r'^\s*Online\b')
MAIN_ID_RE = re.compile(r'^main')
BLOCK_CLASS_RE = re.compile(r'^block')


def enrich_band(fetcher: RetryingFetcher, band: str, url: str,
                max_attempts: Optional[int] = None) -> Tuple[Optional[str], str]:
    """
    Get the band's home page and full description from its schedule page.

    Never raises: a page that cannot be fetched or does not look like a
    band page yields an empty description.

    Args:
        fetcher: Fetcher for the schedule site
        band: Band name, for logging
        url: Band's page on the schedule site
        max_attempts: Retry limit passed to the fetcher

    Returns:
        Tuple of (home page URL or None, description)
    """
    logger.info(f"Scraping \"{band}\": {url}")
    page = fetcher.fetch(url, max_attempts=max_attempts)
    if is_failure(page):
        logger.warning(f"\"{band}\": no band page at {url}")
        return None, ''

    soup = BeautifulSoup(page, 'html.parser')
    return _find_homepage(soup), _find_description(soup)


def compose_description(homepage: Optional[str], description: str) -> str:
    """Description text as it appears in the calendar: home page first."""
    if homepage and description:
        return f"{homepage}\n\n{description}"
    return homepage or description


def _find_homepage(soup: BeautifulSoup) -> Optional[str]:
    label = soup.find(string=ONLINE_LABEL_RE)
    if label is None:
        return None

    link = label.find_next('a', href=True)
    if link is None:
        return None

    homepage = normalize(link['href'])
    if not homepage:
        return None

    # "http://band.com" -> "http://band.com/"
    parsed = urlparse(homepage)
    if parsed.netloc and not parsed.path:
        homepage += '/'
    return homepage


def _find_description(soup: BeautifulSoup) -> str:
    main = soup.find('div', id=MAIN_ID_RE)
    if main is None:
        return ''

    block = main.find('div', class_=BLOCK_CLASS_RE)
    if block is None:
        return ''

    # Social links and the sidebar live in nested divs.
    for nested in block.find_all('div', recursive=False):
        nested.decompose()

    # Headings mean an index or navigation page, not a bio.
    if block.find('h3') is not None:
        return ''

    return normalize(block.decode_contents())
