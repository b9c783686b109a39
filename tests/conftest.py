"""Shared fixtures for scraper tests."""
from unittest.mock import Mock

import pytest
from dateutil import tz

from scraper.http_fetch import RetryingFetcher

PAGE_HEAD = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Festival Schedule</title>
    <link rel="stylesheet" href="/css/schedule.css" type="text/css">
    <script type="text/javascript" src="/js/jquery.min.js"></script>
</head>
<body>
"""


@pytest.fixture
def html_page():
    """Wrap a body fragment in a full page, long enough to count as real data."""
    def _wrap(body: str) -> str:
        return f"{PAGE_HEAD}{body}\n</body>\n</html>\n"
    return _wrap


@pytest.fixture
def fake_fetcher():
    """Build a fetcher that serves canned pages by URL and fails for anything else."""
    def _make(pages):
        fetcher = Mock(spec=RetryingFetcher)
        fetcher.fetch.side_effect = (
            lambda url, max_attempts=None: pages.get(url, 'FAILED after 1 tries')
        )
        return fetcher
    return _make


@pytest.fixture
def central():
    """Festival timezone."""
    return tz.gettz('America/Chicago')
