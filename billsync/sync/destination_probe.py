"""
Reads the number of records currently held by the destination vector index.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .logging_manager import get_logger
from .models import CountResult

logger = get_logger(__name__)


class DestinationCountProbe:
    """
    A missing index is a valid empty state (count 0). Store errors are
    reported as `CountResult.unavailable` and never raised.
    """

    def __init__(self, vector_store, index_name: str):
        self.vector_store = vector_store
        self.index_name = index_name

    def _index_exists(self) -> bool:
        names = [index.get('name') for index in self.vector_store.list_indexes()]
        return self.index_name in names

    def probe(self) -> CountResult:
        logger.info(f"Getting record count for index '{self.index_name}'")
        try:
            if not self._index_exists():
                logger.info(f"Index '{self.index_name}' not found, treating it as empty")
                return CountResult.success(0)

            stats = self.vector_store.describe_index_stats(self.index_name) or {}
            count = stats.get('totalRecordCount') or 0
            if not isinstance(count, int):
                raise ValueError(f"totalRecordCount is not an integer: {count!r}")
        except Exception as e:
            logger.error(
                f"Error getting record count for index '{self.index_name}': {e}",
                extra={'details': {'index': self.index_name, 'operation': 'destination_count'}},
            )
            return CountResult.unavailable(str(e), fallback=0)

        logger.info(f"Current index record count: {count}", extra={'details': {'index': self.index_name}})
        return CountResult.success(count)

    def snapshot(self) -> Dict[str, Any]:
        """
        Current state of the index: record count, dimension and per-namespace
        counts. Raises when the store cannot be reached.
        """
        snapshot = {
            'indexName': self.index_name,
            'exists': self._index_exists(),
            'recordCount': 0,
            'dimension': None,
            'namespaces': {},
            'lastUpdated': datetime.now(timezone.utc).isoformat(),
        }
        if snapshot['exists']:
            stats = self.vector_store.describe_index_stats(self.index_name) or {}
            snapshot['recordCount'] = stats.get('totalRecordCount') or 0
            snapshot['dimension'] = stats.get('dimension')
            snapshot['namespaces'] = stats.get('namespaces') or {}
            for namespace, data in snapshot['namespaces'].items():
                logger.info(f"  - {namespace or 'default'}: {data.get('recordCount', 0)} records")
        return snapshot

    def save_snapshot(self, path: str) -> Dict[str, Any]:
        snapshot = self.snapshot()
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            json.dump(snapshot, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved index state to {target}")
        return snapshot
