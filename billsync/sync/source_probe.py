"""
Reads the number of bills signed into law from the website's summary page.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup

from .config import ProbeMode, SourceProbeConfig
from .error_tracker import SyncException
from .logging_manager import get_logger
from .models import CountResult
from .page_fetcher import PageFetcher

logger = get_logger(__name__)

_DIGITS = re.compile(r"\d[\d,]*")


def parse_count(text: str) -> Optional[int]:
    """First number in `text`, ignoring thousands separators, or None."""
    match = _DIGITS.search(text or "")
    return int(match.group(0).replace(",", "")) if match else None


class SourceCountProbe:
    """
    Never raises: any failure is reported as `CountResult.unavailable`
    carrying the configured fallback count.
    """

    def __init__(self, fetcher: PageFetcher, config: Optional[SourceProbeConfig] = None):
        self.fetcher = fetcher
        self.config = config or SourceProbeConfig()

    def probe(self) -> CountResult:
        url = self.config.url
        logger.info(f"Checking {url} for the current signed bill count")
        try:
            soup = self.fetcher.load(url)
        except SyncException as e:
            return self._unavailable(f"Could not load summary page: {e.message}")
        except Exception as e:
            logger.error(f"Unexpected error loading {url}: {e}", exc_info=True)
            return self._unavailable(f"Could not load summary page: {e}")

        text = self.find_stat_text(soup)
        if text is None:
            return self._unavailable("Signed bills statistic not found")

        count = parse_count(text)
        if count is None:
            return self._unavailable(f"No number in statistic text '{text.strip()}'")

        logger.info(f"Current number of bills signed into law: {count}", extra={'details': {'url': url}})
        return CountResult.success(count)

    def find_stat_text(self, soup: BeautifulSoup) -> Optional[str]:
        if self.config.mode == ProbeMode.LENIENT:
            stat = soup.select_one(self.config.lenient_selector)
            return stat.get_text(" ", strip=True) if stat else None

        wanted = self.config.label_text.lower()
        for card in soup.select(self.config.card_selector):
            label = card.select_one(self.config.label_selector)
            stat = card.select_one(self.config.stat_selector)
            if label is None or stat is None:
                continue
            if wanted in label.get_text(" ", strip=True).lower():
                return stat.get_text(" ", strip=True)
        return None

    def _unavailable(self, error: str) -> CountResult:
        logger.error(
            f"Signed bill count unavailable, using fallback {self.config.fallback_count}: {error}",
            extra={'details': {'url': self.config.url, 'operation': 'source_count'}},
        )
        return CountResult.unavailable(error, fallback=self.config.fallback_count)
