"""
Incremental sync of signed bills from the website into the vector index.

A run probes the website and index counts, decides whether a crawl and an
upload are needed, crawls listing and detail pages into a local record sink,
and uploads the sink's records as embeddings.
"""

from .config import (
    SyncConfig, SourceProbeConfig, ListingSelectors, DetailSelectors,
    CrawlInput, FetchConfig, IndexConfig, StorageConfig,
    ProbeMode, UnavailableSourcePolicy, create_example_config
)

from .models import (
    BillStub, BillRecord, SyncState, VectorRecord, CountResult,
    ListingRequest, DetailRequest
)

from .decision import SyncDecision, SyncDecisionEngine, decide

from .orchestrator import SyncOrchestrator, SyncSummary

__all__ = [
    # Configuration
    'SyncConfig', 'SourceProbeConfig', 'ListingSelectors', 'DetailSelectors',
    'CrawlInput', 'FetchConfig', 'IndexConfig', 'StorageConfig',
    'ProbeMode', 'UnavailableSourcePolicy', 'create_example_config',

    # Records
    'BillStub', 'BillRecord', 'SyncState', 'VectorRecord', 'CountResult',
    'ListingRequest', 'DetailRequest',

    # Decision
    'SyncDecision', 'SyncDecisionEngine', 'decide',

    # Orchestration
    'SyncOrchestrator', 'SyncSummary',
]
