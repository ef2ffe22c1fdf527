"""
Tests for the destination index count probe.
"""

import json
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from ..destination_probe import DestinationCountProbe


class TestDestinationCountProbe:

    @pytest.fixture
    def vector_store(self):
        store = Mock()
        store.list_indexes.return_value = [{'name': 'bill-tracker__dev', 'host': 'http://localhost:9200'}]
        store.describe_index_stats.return_value = {
            'totalRecordCount': 80,
            'dimension': 1536,
            'namespaces': {'': {'recordCount': 80}},
        }
        return store

    def test_count(self, vector_store):
        result = DestinationCountProbe(vector_store, 'bill-tracker__dev').probe()

        assert result.available
        assert result.count == 80
        vector_store.describe_index_stats.assert_called_once_with('bill-tracker__dev')

    def test_missing_index_is_empty_not_error(self, vector_store):
        result = DestinationCountProbe(vector_store, 'bill-tracker').probe()

        assert result.available
        assert result.count == 0
        vector_store.describe_index_stats.assert_not_called()

    def test_store_error_is_unavailable(self, vector_store):
        vector_store.list_indexes.side_effect = ConnectionError("cluster down")
        result = DestinationCountProbe(vector_store, 'bill-tracker__dev').probe()

        assert not result.available
        assert result.count == 0
        assert "cluster down" in result.error

    def test_bad_count_is_unavailable(self, vector_store):
        vector_store.describe_index_stats.return_value = {'totalRecordCount': '80'}
        result = DestinationCountProbe(vector_store, 'bill-tracker__dev').probe()

        assert not result.available

    def test_snapshot(self, vector_store):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "kv" / "index_metadata.json"
            snapshot = DestinationCountProbe(vector_store, 'bill-tracker__dev').save_snapshot(str(path))

            with open(path) as f:
                saved = json.load(f)

        assert snapshot['exists'] is True
        assert saved['recordCount'] == 80
        assert saved['dimension'] == 1536
        assert saved['namespaces'] == {'': {'recordCount': 80}}

    def test_snapshot_of_missing_index(self, vector_store):
        snapshot = DestinationCountProbe(vector_store, 'other').snapshot()

        assert snapshot['exists'] is False
        assert snapshot['recordCount'] == 0
