"""HTTP fetching with patient retries for flaky schedule sites."""
import logging
import time
from typing import Optional

import requests

logger = logging.getLogger(__name__)

FAILURE_PREFIX = 'FAILED after'


def is_failure(body: Optional[str]) -> bool:
    """True if ``body`` is too short to be a real page (including the failure sentinel)."""
    return not body or len(body) <= RetryingFetcher.MIN_BODY_LENGTH


class RetryingFetcher:
    """Fetch page text, retrying until the server returns something substantial."""

    MIN_BODY_LENGTH = 200
    USER_AGENT = 'Mozilla/5.0 (compatible; festival-calendar/1.0)'

    def __init__(self, timeout: int = 30):
        """
        Initialize the fetcher.

        Args:
            timeout: Per-request timeout in seconds (default: 30)
        """
        self.timeout = timeout

    def fetch(self, url: str, max_attempts: Optional[int] = None) -> str:
        """
        Try hard to get the contents of a URL.

        The schedule sites intermittently answer with an empty page, so a
        body of 200 characters or less counts as a failure, the same as an
        HTTP error. Each retry waits longer: 3, 6, 10, 15... seconds.

        Args:
            url: URL to GET
            max_attempts: Give up once more than this many requests have
                failed; None retries forever

        Returns:
            Page text, or "FAILED after N tries" when the limit is exceeded
        """
        delay = 1
        attempts = 0

        while True:
            body = self._get(url)
            attempts += 1
            if len(body) > self.MIN_BODY_LENGTH:
                return body

            if max_attempts and attempts > max_attempts:
                logger.warning(f"Giving up on {url} after {attempts} tries")
                return f"{FAILURE_PREFIX} {attempts} tries"

            delay = int((delay + 2) * 1.3)
            logger.warning(f"{url}: no data; retrying in {delay} seconds...")
            time.sleep(delay)

    def _get(self, url: str) -> str:
        try:
            response = requests.get(
                url,
                headers={'User-Agent': self.USER_AGENT},
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            logger.debug(f"Request for {url} failed: {e}")
            return ''
