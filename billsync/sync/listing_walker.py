"""
Extraction of bill stubs and the next-page link from listing pages.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .config import ListingSelectors
from .logging_manager import get_logger
from .models import BillStub, DetailRequest, ListingRequest

logger = get_logger(__name__)


@dataclass
class ListingPage:
    """What one listing page yields: detail work and, maybe, another page."""
    url: str
    stubs: List[BillStub] = field(default_factory=list)
    next_url: Optional[str] = None

    def requests(self) -> List:
        """Follow-up crawl requests, details first."""
        follow_ups = [DetailRequest(url=stub.source_url, stub=stub) for stub in self.stubs]
        if self.next_url:
            follow_ups.append(ListingRequest(url=self.next_url))
        return follow_ups


def resolve_url(base_url: str, href: str) -> Optional[str]:
    """Absolute URL for `href`, or None when it is empty or malformed."""
    href = (href or '').strip()
    if not href:
        return None
    try:
        return urljoin(base_url, href)
    except ValueError as e:
        logger.debug(f"Skipping unresolvable link '{href}' on {base_url}: {e}")
        return None


def _text(element) -> str:
    return element.get_text(" ", strip=True) if element is not None else ""


class ListingWalker:
    """Parses listing pages. Holds no per-page state."""

    def __init__(self, selectors: Optional[ListingSelectors] = None):
        self.selectors = selectors or ListingSelectors()

    @property
    def wait_selector(self) -> str:
        """Element that must be present before a listing page is parsed."""
        return self.selectors.entry

    def parse(self, soup: BeautifulSoup, page_url: str) -> ListingPage:
        page = ListingPage(url=page_url, stubs=self.extract_stubs(soup, page_url))
        if page.stubs:
            logger.info(f"Found {len(page.stubs)} bills on {page_url}")
        else:
            logger.warning(f"No bills found on: {page_url}", extra={'details': {'url': page_url}})

        page.next_url = self.find_next_url(soup, page_url)
        if page.next_url:
            logger.info(f"Found next page link: {page.next_url}")
        else:
            logger.info("No next page link found - done paginating.", extra={'details': {'url': page_url}})
        return page

    def extract_stubs(self, soup: BeautifulSoup, page_url: str) -> List[BillStub]:
        stubs = []
        for entry in soup.select(self.selectors.entry):
            anchor = entry.select_one(self.selectors.title_link)
            if anchor is None:
                continue
            source_url = resolve_url(page_url, anchor.get('href'))
            if source_url is None:
                continue
            stubs.append(BillStub(
                title=_text(anchor),
                source_url=source_url,
                description=_text(entry.select_one(self.selectors.description)),
                issued_date=_text(entry.select_one(self.selectors.issued_date)),
            ))
        return stubs

    def find_next_url(self, soup: BeautifulSoup, page_url: str) -> Optional[str]:
        urls = [resolve_url(page_url, a.get('href')) for a in soup.select(self.selectors.next_page)]
        urls = [url for url in urls if url]
        if not urls:
            return None
        if len(urls) > 1:
            logger.warning(f"{len(urls)} next page links on {page_url}, following the first")
        return urls[0]
