"""
Persistence of the sync baseline: the website's signed-bills count recorded
by the previous run.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .logging_manager import get_logger
from .models import SyncState


logger = get_logger(__name__)

NO_PREVIOUS_COUNT = -1


class StateManager:
    """Reads and overwrites the single SyncState JSON file."""

    def __init__(self, state_path: str = "./storage/key_value_stores/default/bill_metadata.json"):
        self.filepath = Path(state_path)

    def read(self) -> Optional[SyncState]:
        if not self.filepath.exists():
            return None
        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
            count = data.get("billCount", data.get("fileCount"))
            if not isinstance(count, int) or isinstance(count, bool):
                raise ValueError(f"count is not an integer: {count!r}")
            return SyncState(
                last_known_source_count=count,
                last_updated=str(data.get("lastUpdated", "")),
            )
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable sync state {self.filepath}: {e}")
            return None

    def previous_count(self) -> int:
        state = self.read()
        return state.last_known_source_count if state else NO_PREVIOUS_COUNT

    def write(self, count: int) -> SyncState:
        state = SyncState(
            last_known_source_count=count,
            last_updated=datetime.now(timezone.utc).isoformat(),
        )
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(self.filepath, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f)
        logger.info(f"Saved sync state: {count} bills", extra={'details': {'path': str(self.filepath)}})
        return state
