#!/usr/bin/env python3
"""
HTML page fetching for the bill crawler.

Pages are fetched with a shared `requests.Session`, retried with exponential
backoff, and parsed with BeautifulSoup. Since pages are fetched rather than
rendered, "waiting for a selector" means re-fetching the page a bounded number
of times until the expected element is present.
"""

import time
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

import requests
from bs4 import BeautifulSoup

from .config import FetchConfig
from .error_tracker import PageLoadError, SourceFetchError
from .logging_manager import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
}


class PageFetcher:
    """Fetches and parses HTML pages."""

    def __init__(self, config: Optional[FetchConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or FetchConfig()
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        if self.config.user_agent:
            self.session.headers['User-Agent'] = self.config.user_agent

    def fetch_html(self, url: str) -> str:
        """
        Fetch the raw HTML of a page.

        Raises:
            SourceFetchError: when every attempt failed
        """
        if url.startswith('file://'):
            return self._fetch_local_file(url)

        retries = self.config.retry_attempts
        last_error = None
        for attempt in range(retries):
            try:
                logger.debug(f"Fetching {url} (attempt {attempt + 1}/{retries})")
                response = self.session.get(url, timeout=self.config.timeout)
                response.raise_for_status()
                return response.text
            except requests.RequestException as e:
                last_error = e
                logger.warning(f"Failed to fetch {url} on attempt {attempt + 1}: {e}", extra={'details': {'url': url}})
                if attempt < retries - 1:
                    time.sleep(2 ** attempt)

        raise SourceFetchError(f"All {retries} attempts failed for {url}: {last_error}", url=url, operation="fetch")

    def _fetch_local_file(self, file_url: str) -> str:
        path = Path(unquote(file_url[len('file://'):])).resolve()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFetchError(f"Failed to read local file {path}: {e}", url=file_url, operation="fetch")

    def load(self, url: str, wait_for: Optional[str] = None) -> BeautifulSoup:
        """
        Fetch and parse a page, optionally waiting until `wait_for` matches.

        Raises:
            SourceFetchError: the page could not be fetched
            PageLoadError: `wait_for` never matched within the configured attempts
        """
        attempts = self.config.wait_attempts if wait_for else 1
        for attempt in range(attempts):
            soup = BeautifulSoup(self.fetch_html(url), 'html.parser')
            if not wait_for or soup.select_one(wait_for) is not None:
                return soup
            if attempt < attempts - 1:
                time.sleep(self.config.wait_interval_seconds)

        raise PageLoadError(
            f"Selector '{wait_for}' not found on {url} after {attempts} attempts",
            url=url,
            operation="wait_for_selector",
        )

    def close(self) -> None:
        self.session.close()
