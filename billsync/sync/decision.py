"""
Decides whether a run needs to crawl and whether it needs to upload.

Inputs are the live website count, the destination index count and the
force flag. A readable website count is recorded after every decision so
the next run has a baseline even when this one skips.
"""

from dataclasses import dataclass

from .config import UnavailableSourcePolicy
from .logging_manager import get_logger
from .models import CountResult
from .state_manager import StateManager

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncDecision:
    should_crawl: bool
    should_upload: bool
    reason: str = ""


def decide(source_count: int, destination_count: int, force: bool = False) -> SyncDecision:
    """
    Crawl when forced or when the website lists more bills than the index
    holds. Upload when forced or when the index is empty.

    Upload does not depend on whether the crawl found anything new: a
    non-empty index skips the upload even after new records were crawled.
    """
    should_crawl = force or source_count > destination_count
    should_upload = force or destination_count == 0

    if force:
        reason = "Force run requested"
    elif should_crawl:
        reason = (f"Website has {source_count} bills but the index only has "
                  f"{destination_count} records")
    else:
        reason = (f"Index ({destination_count} records) is up to date with the "
                  f"website ({source_count} bills)")
    return SyncDecision(should_crawl=should_crawl, should_upload=should_upload, reason=reason)


class SyncDecisionEngine:
    """Applies `decide` to probe results and records the baseline."""

    def __init__(self, state_manager: StateManager,
                 on_source_unavailable: UnavailableSourcePolicy = UnavailableSourcePolicy.CRAWL):
        self.state_manager = state_manager
        self.on_source_unavailable = on_source_unavailable

    def evaluate(self, source: CountResult, destination: CountResult, force: bool = False) -> SyncDecision:
        if destination.available:
            destination_count = destination.count
        else:
            logger.warning(f"Index count unavailable ({destination.error}), treating the index as empty")
            destination_count = 0

        if source.available:
            decision = decide(source.count, destination_count, force)
            self.state_manager.write(source.count)
        else:
            decision = self._decide_without_source(source, destination_count, force)

        logger.info(
            f"Sync decision: crawl={decision.should_crawl} upload={decision.should_upload}. {decision.reason}",
            extra={'details': {
                'source_count': source.count if source.available else None,
                'destination_count': destination_count,
                'force': force,
            }},
        )
        return decision

    def _decide_without_source(self, source: CountResult, destination_count: int, force: bool) -> SyncDecision:
        should_upload = force or destination_count == 0
        if force:
            return SyncDecision(True, should_upload, "Force run requested")
        if self.on_source_unavailable == UnavailableSourcePolicy.SKIP:
            return SyncDecision(False, False, f"Website count unavailable ({source.error}), skipping this run")
        return SyncDecision(True, should_upload, f"Website count unavailable ({source.error}), crawling to be safe")
