"""
Configuration schema for bill syncs.

A sync is described by a single YAML file: where the signed-bills count is
published, which listing pages to crawl, the CSS selectors used on listing and
detail pages, where records and state are stored, and which vector index to
fill.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, field_validator

from ..config import (
    DEFAULT_EMBEDDING_METRIC, DEFAULT_EMBEDDING_SIZE, DEFAULT_INDEX_NAME,
    DEFAULT_INDEX_SETTLE_SECONDS, DEFAULT_UPLOAD_BATCH_SIZE,
)
from .error_tracker import ConfigurationError


DEFAULT_SUMMARY_URL = "https://www.nysenate.gov/legislation"
DEFAULT_START_URL = (
    "https://www.nysenate.gov/search/legislation"
    "?type=bill&session_year=2025&status=SIGNED_BY_GOV&is_active_version=1"
)


def _validate_http_url(v: str) -> str:
    result = urlparse(v)
    if result.scheme == 'file':
        return v
    if result.scheme not in ('http', 'https') or not result.netloc:
        raise ValueError(f'Invalid URL: {v}')
    return v


class ProbeMode(str, Enum):
    """How the signed-bills statistic is located on the summary page."""
    STRICT = "strict"  # keyed to the statistic's label text
    LENIENT = "lenient"  # first statistic on the page


class UnavailableSourcePolicy(str, Enum):
    """What the decision engine does when the website count cannot be read."""
    CRAWL = "crawl"
    SKIP = "skip"


class SourceProbeConfig(BaseModel):
    """Where and how to read the live signed-bills count."""
    url: str = Field(default=DEFAULT_SUMMARY_URL, description="Summary page URL")
    mode: ProbeMode = Field(default=ProbeMode.STRICT, description="Statistic selection mode")
    card_selector: str = Field(default=".c-carousel--item", description="Container holding one statistic and its label")
    stat_selector: str = Field(default=".c-stat", description="Statistic element inside a card")
    label_selector: str = Field(default=".c-stat--descript", description="Label element inside a card")
    label_text: str = Field(default="signed into law", description="Case-insensitive label match")
    lenient_selector: str = Field(default="h4.c-stat", description="Statistic selector used in lenient mode")
    fallback_count: int = Field(default=0, ge=0, description="Count reported when the probe fails")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        return _validate_http_url(v)


class ListingSelectors(BaseModel):
    """CSS selectors for a listing (search results) page."""
    entry: str = "article.c-block"
    title_link: str = "h3.c-bill-num a"
    description: str = "p.c-bill-descript"
    issued_date: str = "p.c-press-release--date span.date-display-single"
    next_page: str = "li.pager__item--next a"


class DetailSelectors(BaseModel):
    """CSS selectors for a bill detail page."""
    header: str = ".c-detail--header__bill"
    pdf_link: str = "a.c-detail--download"
    status: str = "span.c-bill--flag"
    action_rows: str = ".c-bill--actions-table tr"
    action_date: str = ".c-bill--actions-table-col1"
    action_text: str = ".c-bill--actions-table-col2"
    signed_keyword: str = "signed"


class CrawlInput(BaseModel):
    """Per-run input options."""
    start_urls: List[str] = Field(default_factory=lambda: [DEFAULT_START_URL], description="Listing pages to start from")
    max_requests_per_crawl: int = Field(default=100, gt=0, description="Global page budget")
    force_run: bool = Field(default=False, description="Always crawl and upload")
    skip_upload: bool = Field(default=False, description="Never upload")

    @field_validator('start_urls')
    @classmethod
    def validate_start_urls(cls, v):
        if not v:
            raise ValueError('At least one start URL is required')
        return [_validate_http_url(url) for url in v]


class FetchConfig(BaseModel):
    """HTTP fetching behaviour."""
    timeout: int = Field(default=30, gt=0, description="Request timeout in seconds")
    retry_attempts: int = Field(default=3, gt=0, description="Attempts per request")
    wait_attempts: int = Field(default=3, gt=0, description="Re-fetches while waiting for an expected element")
    wait_interval_seconds: float = Field(default=2.0, ge=0, description="Delay between re-fetches")
    max_concurrency: int = Field(default=5, gt=0, description="Pages fetched in parallel")
    user_agent: Optional[str] = Field(None, description="Override the default User-Agent")


class IndexConfig(BaseModel):
    """Destination vector index."""
    name: str = Field(default=DEFAULT_INDEX_NAME, description="Base index name")
    dimension: int = Field(default=DEFAULT_EMBEDDING_SIZE, gt=0)
    metric: str = Field(default=DEFAULT_EMBEDDING_METRIC)
    namespace: str = Field(default="", description="Namespace stored with every vector")
    settle_seconds: float = Field(default=DEFAULT_INDEX_SETTLE_SECONDS, ge=0, description="Wait after creating the index")
    batch_size: int = Field(default=DEFAULT_UPLOAD_BATCH_SIZE, gt=0)

    @field_validator('metric')
    @classmethod
    def validate_metric(cls, v):
        if v not in ('cosine', 'dot_product', 'l2_norm', 'max_inner_product'):
            raise ValueError(f'Unsupported similarity metric: {v}')
        return v


class StorageConfig(BaseModel):
    """Local storage locations."""
    sink_directory: str = Field(default="./storage/datasets/default")
    state_path: str = Field(default="./storage/key_value_stores/default/bill_metadata.json")
    index_snapshot_path: str = Field(default="./storage/key_value_stores/default/index_metadata.json")
    backup_directory: str = Field(default="./permanent_storage/dataset_backup")


class SyncConfig(BaseModel):
    """Main configuration for a bill sync."""
    name: str = Field(..., description="Configuration name")
    description: Optional[str] = Field(None)

    source: SourceProbeConfig = Field(default_factory=SourceProbeConfig)
    listing: ListingSelectors = Field(default_factory=ListingSelectors)
    detail: DetailSelectors = Field(default_factory=DetailSelectors)
    input: CrawlInput = Field(default_factory=CrawlInput)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    on_source_unavailable: UnavailableSourcePolicy = Field(default=UnavailableSourcePolicy.CRAWL)

    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(None)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SyncConfig':
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        try:
            return cls(**data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}")

    def to_yaml(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode='json')
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def with_overrides(self, **overrides) -> 'SyncConfig':
        """Copy of this config with non-None `CrawlInput` fields replaced."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        crawl_input = CrawlInput(**{**self.input.model_dump(), **values})
        return self.model_copy(update={'input': crawl_input})


def create_example_config() -> SyncConfig:
    """Example configuration for the New York State Senate."""
    return SyncConfig(
        name="NY Senate signed bills",
        description="Bills signed into law in the 2025 session",
    )


if __name__ == "__main__":
    create_example_config().to_yaml("example_sync_config.yaml")
