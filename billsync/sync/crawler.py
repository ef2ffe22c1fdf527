"""
Two-stage crawl of listing and detail pages.

Listing pages yield detail requests and at most one next-page request;
detail pages yield bill records. Requests run on a bounded thread pool, are
deduplicated by their unique key and count against a global request budget.
A page that fails to load fails alone and the crawl continues.
"""

import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Set

from .detail_enricher import DetailEnricher
from .error_tracker import ErrorSeverity, ErrorTracker, SyncException
from .listing_walker import ListingPage, ListingWalker
from .logging_manager import get_logger
from .models import BillRecord, CrawlRequest, DetailRequest, ListingRequest
from .page_fetcher import PageFetcher

logger = get_logger(__name__)


@dataclass
class CrawlStats:
    pages_visited: int = 0
    listing_pages: int = 0
    detail_pages: int = 0
    stubs_found: int = 0
    records_created: int = 0
    skipped_existing: int = 0
    failed_pages: int = 0
    budget_exhausted: bool = False
    processing_time: float = 0.0


@dataclass
class CrawlResult:
    stats: CrawlStats
    records: List[BillRecord] = field(default_factory=list)


class BillCrawler:
    """
    Runs one crawl. Not reentrant: create a crawler per run, or call `run`
    sequentially.
    """

    def __init__(self, fetcher: PageFetcher, walker: ListingWalker, enricher: DetailEnricher,
                 max_requests: int = 100, max_concurrency: int = 5,
                 error_tracker: Optional[ErrorTracker] = None):
        self.fetcher = fetcher
        self.walker = walker
        self.enricher = enricher
        self.max_requests = max_requests
        self.max_concurrency = max_concurrency
        self.error_tracker = error_tracker or ErrorTracker()

    def run(self, start_urls: Iterable[str]) -> CrawlResult:
        start_time = time.time()
        result = CrawlResult(stats=CrawlStats())
        queue: Deque[CrawlRequest] = deque()
        seen: Set[str] = set()
        self._enqueue([ListingRequest(url=url) for url in start_urls], queue, seen)

        submitted = 0
        logger.info(f"Starting crawl of {len(queue)} start URLs",
                    extra={'details': {'max_requests': self.max_requests, 'max_concurrency': self.max_concurrency}})

        with ThreadPoolExecutor(max_workers=self.max_concurrency) as executor:
            in_flight: Dict[Future, CrawlRequest] = {}
            while True:
                while queue and len(in_flight) < self.max_concurrency and submitted < self.max_requests:
                    request = queue.popleft()
                    in_flight[executor.submit(self._handle, request)] = request
                    submitted += 1

                if queue and submitted >= self.max_requests and not result.stats.budget_exhausted:
                    result.stats.budget_exhausted = True
                    logger.warning(f"Request budget of {self.max_requests} reached, {len(queue)} requests left unprocessed")

                if not in_flight:
                    break

                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    request = in_flight.pop(future)
                    self._collect(request, future, result, queue, seen)

        result.stats.processing_time = time.time() - start_time
        logger.info(
            f"Crawl finished: {result.stats.pages_visited} pages, {result.stats.records_created} new bills",
            extra={'details': vars(result.stats)},
        )
        return result

    def _handle(self, request: CrawlRequest):
        if isinstance(request, ListingRequest):
            soup = self.fetcher.load(request.url, wait_for=self.walker.wait_selector)
            return self.walker.parse(soup, request.url)
        if isinstance(request, DetailRequest):
            return self.enricher.enrich(request.stub)
        raise TypeError(f"Unknown crawl request: {request!r}")

    def _collect(self, request: CrawlRequest, future: Future, result: CrawlResult,
                 queue: Deque[CrawlRequest], seen: Set[str]) -> None:
        stats = result.stats
        stats.pages_visited += 1
        try:
            outcome = future.result()
        except SyncException as e:
            stats.failed_pages += 1
            logger.error(f"Failed to process {request.url}: {e.message}",
                         extra={'details': {'url': request.url, 'operation': e.operation}})
            self.error_tracker.report_exception(e, ErrorSeverity.ERROR)
            return
        except Exception as e:
            stats.failed_pages += 1
            logger.error(f"Unexpected error processing {request.url}: {e}", exc_info=True,
                         extra={'details': {'url': request.url, 'operation': 'crawl'}})
            self.error_tracker.report(str(e), url=request.url, operation="crawl", severity=ErrorSeverity.ERROR)
            return

        if isinstance(request, ListingRequest):
            page: ListingPage = outcome
            stats.listing_pages += 1
            stats.stubs_found += len(page.stubs)
            self._enqueue(page.requests(), queue, seen)
        else:
            stats.detail_pages += 1
            if outcome is None:
                stats.skipped_existing += 1
            else:
                stats.records_created += 1
                result.records.append(outcome)

    def _enqueue(self, requests: Iterable[CrawlRequest], queue: Deque[CrawlRequest], seen: Set[str]) -> None:
        for request in requests:
            if request.unique_key in seen:
                continue
            seen.add(request.unique_key)
            queue.append(request)
