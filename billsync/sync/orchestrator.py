"""
Runs one bill sync end to end.

1. Probe the website's signed-bills count and the index record count
2. Decide whether to crawl and whether to upload, recording the website count
3. Crawl listing and detail pages into the record sink
4. Upload the sink's records to the vector index
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..config import DEFAULT_ENVIRONMENT, index_name_for_environment
from .config import SyncConfig
from .crawler import BillCrawler, CrawlStats
from .decision import SyncDecision, SyncDecisionEngine
from .destination_probe import DestinationCountProbe
from .detail_enricher import DetailEnricher
from .embedding_processor import OpenAIEmbedder, UploadResult, UploadSynchronizer
from .error_tracker import ErrorSeverity, ErrorTracker, SyncException
from .listing_walker import ListingWalker
from .logging_manager import LoggingManager
from .models import CountResult
from .page_fetcher import PageFetcher
from .record_sink import RecordSink
from .source_probe import SourceCountProbe
from .state_manager import StateManager


@dataclass
class SyncSummary:
    """Summary of one sync run."""
    decision: SyncDecision
    source_count: CountResult
    destination_count: CountResult
    previous_count: int
    crawl: Optional[CrawlStats] = None
    upload: Optional[UploadResult] = None
    upload_skipped_reason: Optional[str] = None
    total_processing_time: float = 0.0
    errors: Dict[str, Any] = field(default_factory=dict)

    @property
    def new_records(self) -> int:
        return self.crawl.records_created if self.crawl else 0

    @property
    def uploaded(self) -> int:
        return self.upload.uploaded if self.upload else 0


class SyncOrchestrator:
    """
    Wires the sync components together for one environment.

    The fetcher, vector store and embedder are created by the caller and
    passed in, so tests and the CLI decide which clients are used.
    """

    def __init__(self, config: SyncConfig, fetcher: PageFetcher, vector_store, embedder: OpenAIEmbedder,
                 environment: str = DEFAULT_ENVIRONMENT,
                 sink: Optional[RecordSink] = None,
                 state_manager: Optional[StateManager] = None):
        self.config = config
        self.environment = environment
        self.fetcher = fetcher
        self.vector_store = vector_store

        self.logging_manager = LoggingManager(log_level=config.log_level, log_file=config.log_file)
        self.logger = self.logging_manager.get_logger(__name__)
        self.error_tracker = ErrorTracker()

        self.index_name = index_name_for_environment(config.index.name, environment)
        self.state_manager = state_manager or StateManager(config.storage.state_path)
        self.sink = sink or RecordSink(config.storage.sink_directory)

        self.source_probe = SourceCountProbe(fetcher, config.source)
        self.destination_probe = DestinationCountProbe(vector_store, self.index_name)
        self.decision_engine = SyncDecisionEngine(self.state_manager, config.on_source_unavailable)
        self.crawler = BillCrawler(
            fetcher,
            ListingWalker(config.listing),
            DetailEnricher(fetcher, self.sink, config.detail),
            max_requests=config.input.max_requests_per_crawl,
            max_concurrency=config.fetch.max_concurrency,
            error_tracker=self.error_tracker,
        )
        self.uploader = UploadSynchronizer.from_config(vector_store, embedder, config.index, self.index_name)

        self.logger.info(f"Sync orchestrator initialized for environment: {environment}",
                         extra={'details': {'config_name': config.name, 'index': self.index_name}})

    def run(self) -> SyncSummary:
        """
        Run the sync.

        Raises:
            UploadError: a batch failed to upload; later batches were not attempted
        """
        start_time = time.time()
        crawl_input = self.config.input

        previous_count = self.state_manager.previous_count()
        self.logger.info(f"Previous signed bill count: {previous_count}")

        source = self.source_probe.probe()
        destination = self.destination_probe.probe()
        if not source.available:
            self.error_tracker.report(source.error, url=self.config.source.url,
                                      operation="source_count", severity=ErrorSeverity.WARNING)
        if not destination.available:
            self.error_tracker.report(destination.error, operation="destination_count",
                                      severity=ErrorSeverity.WARNING, details={'index': self.index_name})

        decision = self.decision_engine.evaluate(source, destination, force=crawl_input.force_run)
        summary = SyncSummary(
            decision=decision,
            source_count=source,
            destination_count=destination,
            previous_count=previous_count,
        )

        if decision.should_crawl:
            summary.crawl = self.crawler.run(crawl_input.start_urls).stats
        else:
            self.logger.info("No new bills detected. Skipping crawl.")

        if crawl_input.skip_upload:
            summary.upload_skipped_reason = "skip_upload is set"
        elif not decision.should_upload:
            summary.upload_skipped_reason = "index already has records"
            if summary.new_records:
                self.logger.warning(
                    f"{summary.new_records} new bills were crawled but will not be uploaded "
                    f"because index '{self.index_name}' is not empty. Use --force to upload them.",
                    extra={'details': {'index': self.index_name, 'new_records': summary.new_records}},
                )
        else:
            try:
                summary.upload = self.uploader.upload(self.sink.records())
            except SyncException as e:
                self.error_tracker.report_exception(e, ErrorSeverity.CRITICAL)
                raise

        if summary.upload_skipped_reason:
            self.logger.info(f"Skipping upload: {summary.upload_skipped_reason}")

        summary.total_processing_time = time.time() - start_time
        summary.errors = self.error_tracker.generate_report()
        return summary

    def print_summary(self, summary: SyncSummary):
        """Log the sync summary in a readable form."""
        self.logger.info("=" * 60)
        self.logger.info("BILL SYNC SUMMARY")
        self.logger.info("=" * 60)

        source = summary.source_count.count if summary.source_count.available else "unavailable"
        destination = summary.destination_count.count if summary.destination_count.available else "unavailable"
        self.logger.info(f"Website signed bills: {source}")
        self.logger.info(f"Index records: {destination}")
        self.logger.info(f"Previous count: {summary.previous_count}")
        self.logger.info(f"Decision: crawl={summary.decision.should_crawl} "
                         f"upload={summary.decision.should_upload} ({summary.decision.reason})")

        if summary.crawl:
            self.logger.info(f"Pages visited: {summary.crawl.pages_visited} "
                             f"({summary.crawl.listing_pages} listing, {summary.crawl.detail_pages} detail)")
            self.logger.info(f"New bills: {summary.crawl.records_created}, "
                             f"already stored: {summary.crawl.skipped_existing}, "
                             f"failed pages: {summary.crawl.failed_pages}")
        if summary.upload:
            self.logger.info(f"Uploaded: {summary.upload.uploaded}/{summary.upload.total_records} records")
        elif summary.upload_skipped_reason:
            self.logger.info(f"Upload skipped: {summary.upload_skipped_reason}")

        self.logger.info(f"Total Processing Time: {summary.total_processing_time:.2f}s")

        errors = summary.errors.get('errors', [])
        if errors:
            self.logger.info("ERRORS:")
            for error in errors:
                self.logger.error(f"  - {error['operation']}: {error['message']}")

        self.logger.info("=" * 60)
