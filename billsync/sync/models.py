"""
Records that flow through a bill sync.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class BillStub:
    """A bill as seen on a listing page, pending enrichment."""
    title: str
    source_url: str
    description: str = ""
    issued_date: str = ""


@dataclass(frozen=True)
class BillRecord:
    """A finalized bill. `title` is the natural key."""
    title: str
    description: str
    status: str
    signed_date: str
    issued_date: str
    source_url: str
    pdf_url: Optional[str] = None
    content: str = ""

    @classmethod
    def from_stub(cls, stub: BillStub, status: str, signed_date: str,
                  pdf_url: Optional[str] = None) -> 'BillRecord':
        return cls(
            title=stub.title,
            description=stub.description,
            status=status,
            signed_date=signed_date,
            issued_date=stub.issued_date,
            source_url=stub.source_url,
            pdf_url=pdf_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Persisted shape, compatible with existing dataset files."""
        data = {
            "detailPageUrl": self.source_url,
            "billTitle": self.title,
            "description": self.description,
            "status": self.status,
            "pdfUrl": self.pdf_url,
            "signedDate": self.signed_date,
            "issuedDate": self.issued_date,
        }
        if self.content:
            data["content"] = self.content
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BillRecord':
        return cls(
            title=data.get("billTitle", data.get("title")) or "",
            description=data.get("description") or "",
            status=data.get("status") or "",
            signed_date=data.get("signedDate") or "",
            issued_date=data.get("issuedDate") or "",
            source_url=data.get("detailPageUrl", data.get("sourceUrl")) or "",
            pdf_url=data.get("pdfUrl"),
            content=data.get("content") or "",
        )


@dataclass(frozen=True)
class SyncState:
    """Website count recorded at the end of the previous run."""
    last_known_source_count: int
    last_updated: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "billCount": self.last_known_source_count,
            "lastUpdated": self.last_updated,
        }


@dataclass
class VectorRecord:
    """One entry of the destination index."""
    id: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CountResult:
    """
    Outcome of a count probe. `available` is False when the probe failed, in
    which case `count` holds the configured fallback value.
    """
    count: int
    available: bool = True
    error: Optional[str] = None

    @classmethod
    def success(cls, count: int) -> 'CountResult':
        return cls(count=count)

    @classmethod
    def unavailable(cls, error: str, fallback: int = 0) -> 'CountResult':
        return cls(count=fallback, available=False, error=error)


@dataclass(frozen=True)
class ListingRequest:
    """Crawl a listing page."""
    url: str

    @property
    def unique_key(self) -> str:
        return self.url


@dataclass(frozen=True)
class DetailRequest:
    """Crawl the detail page of a bill found on a listing page."""
    url: str
    stub: BillStub

    @property
    def unique_key(self) -> str:
        return self.stub.title or self.url


CrawlRequest = Union[ListingRequest, DetailRequest]
