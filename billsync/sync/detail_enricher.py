"""
Turns bill stubs into full records, skipping titles already in the sink.
"""

from typing import Optional

from bs4 import BeautifulSoup

from .config import DetailSelectors
from .listing_walker import resolve_url
from .logging_manager import get_logger
from .models import BillRecord, BillStub
from .page_fetcher import PageFetcher
from .record_sink import RecordSink

logger = get_logger(__name__)


class DetailEnricher:

    def __init__(self, fetcher: PageFetcher, sink: RecordSink, selectors: Optional[DetailSelectors] = None):
        self.fetcher = fetcher
        self.sink = sink
        self.selectors = selectors or DetailSelectors()

    def enrich(self, stub: BillStub) -> Optional[BillRecord]:
        """
        Fetch the detail page of `stub` and store the merged record.

        Returns the stored record, or None when the title is already in the
        sink. Fetch and wait failures propagate to the caller.
        """
        if self.sink.contains(stub.title):
            logger.info(f"Bill {stub.title} already exists in dataset. Skipping.")
            return None

        logger.info(f"Processing detail page: {stub.source_url}")
        soup = self.fetcher.load(stub.source_url, wait_for=self.selectors.header)
        record = self.parse(soup, stub)

        if not self.sink.insert_if_absent(record):
            logger.info(f"Bill {stub.title} was stored concurrently. Skipping.")
            return None

        logger.info(f"Saved data for {stub.title} to dataset.", extra={'details': {'url': stub.source_url}})
        return record

    def parse(self, soup: BeautifulSoup, stub: BillStub) -> BillRecord:
        pdf_url = None
        pdf_link = soup.select_one(self.selectors.pdf_link)
        if pdf_link is not None:
            pdf_url = resolve_url(stub.source_url, pdf_link.get('href'))

        status_el = soup.select_one(self.selectors.status)
        status = status_el.get_text(" ", strip=True) if status_el is not None else ""

        return BillRecord.from_stub(stub, status=status, signed_date=self.find_signed_date(soup), pdf_url=pdf_url)

    def find_signed_date(self, soup: BeautifulSoup) -> str:
        """Date of the first action mentioning the signed keyword, or ''."""
        keyword = self.selectors.signed_keyword.lower()
        for row in soup.select(self.selectors.action_rows):
            date_el = row.select_one(self.selectors.action_date)
            action_el = row.select_one(self.selectors.action_text)
            if date_el is None or action_el is None:
                continue
            if keyword in action_el.get_text(" ", strip=True).lower():
                return date_el.get_text(" ", strip=True)
        return ""
