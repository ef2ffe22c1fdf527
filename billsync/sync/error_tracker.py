"""
Error types and per-run error tracking for bill syncs.

Failures fall into three groups:
- probe failures, which are recovered where they happen and never raised
  from here;
- page failures (`SourceFetchError`, `PageLoadError`), which fail a single
  listing or detail page and are collected by the `ErrorTracker` while
  the crawl continues;
- upload failures (`UploadError`, `EmbeddingError`), which end the run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any


class ErrorSeverity(Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class SyncError:
    """A single error reported during a sync run."""
    message: str
    url: Optional[str] = None
    operation: Optional[str] = None
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return {
            "message": self.message,
            "url": self.url,
            "operation": self.operation,
            "severity": self.severity.value,
            "details": self.details,
        }


class SyncException(Exception):
    """Base class for all sync exceptions."""
    def __init__(self, message: str, url: Optional[str] = None, operation: Optional[str] = None):
        self.message = message
        self.url = url
        self.operation = operation
        super().__init__(self.message)


class ConfigurationError(SyncException):
    """The sync configuration file is missing or invalid."""
    pass


class SourceFetchError(SyncException):
    """A page could not be fetched."""
    pass


class PageLoadError(SyncException):
    """An expected element never appeared on a page."""
    pass


class EmbeddingError(SyncException):
    """Embedding generation failed."""
    pass


class UploadError(SyncException):
    """Upserting a batch into the vector index failed."""
    def __init__(self, message: str, batch_number: Optional[int] = None, uploaded: int = 0):
        super().__init__(message, operation="upload")
        self.batch_number = batch_number
        self.uploaded = uploaded


_SEVERITY_LEVELS = {
    ErrorSeverity.WARNING: 1,
    ErrorSeverity.ERROR: 2,
    ErrorSeverity.CRITICAL: 3,
}


class ErrorTracker:
    """
    Collects the errors of one sync run. Safe to share between crawl workers:
    list.append is atomic.
    """
    def __init__(self):
        self.errors: List[SyncError] = []

    def report(self, message: str, url: Optional[str] = None, operation: Optional[str] = None,
               severity: ErrorSeverity = ErrorSeverity.ERROR, details: Optional[Dict[str, Any]] = None):
        self.errors.append(SyncError(
            message=message,
            url=url,
            operation=operation,
            severity=severity,
            details=details or {},
        ))

    def report_exception(self, exc: SyncException, severity: ErrorSeverity = ErrorSeverity.ERROR):
        self.report(
            message=exc.message,
            url=exc.url,
            operation=exc.operation,
            severity=severity,
        )

    def get_errors(self, min_severity: ErrorSeverity = ErrorSeverity.WARNING) -> List[SyncError]:
        """Get all errors at or above a certain severity level."""
        min_level = _SEVERITY_LEVELS[min_severity]
        return [e for e in self.errors if _SEVERITY_LEVELS[e.severity] >= min_level]

    def has_critical_errors(self) -> bool:
        return any(e.severity == ErrorSeverity.CRITICAL for e in self.errors)

    def generate_report(self) -> Dict[str, Any]:
        critical = len(self.get_errors(ErrorSeverity.CRITICAL))
        errors = len(self.get_errors(ErrorSeverity.ERROR))
        warnings = len(self.get_errors(ErrorSeverity.WARNING))
        return {
            "total_errors": len(self.errors),
            "critical_count": critical,
            "error_count": errors - critical,
            "warning_count": warnings - errors,
            "errors": [e.to_dict() for e in self.errors],
        }
