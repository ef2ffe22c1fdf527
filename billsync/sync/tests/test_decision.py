"""
Tests for the sync decision engine.
"""

import json
import tempfile
from pathlib import Path

import pytest

from ..config import UnavailableSourcePolicy
from ..decision import SyncDecisionEngine, decide
from ..models import CountResult
from ..state_manager import StateManager


class TestDecide:
    """Test the pure decision rule."""

    @pytest.mark.parametrize("source,destination", [(1, 0), (89, 80), (1000, 999), (5, 1)])
    def test_crawls_when_website_has_more_bills(self, source, destination):
        assert decide(source, destination).should_crawl is True

    @pytest.mark.parametrize("source,destination", [(0, 0), (50, 50), (10, 80), (0, 5)])
    def test_no_crawl_when_index_is_up_to_date(self, source, destination):
        assert decide(source, destination).should_crawl is False

    @pytest.mark.parametrize("source,destination", [(0, 0), (50, 50), (10, 80), (89, 80)])
    def test_force_overrides_counts(self, source, destination):
        decision = decide(source, destination, force=True)
        assert decision.should_crawl is True
        assert decision.should_upload is True

    def test_upload_only_when_index_empty(self):
        assert decide(10, 0).should_upload is True
        # New bills exist but the index is non-empty: upload is skipped.
        assert decide(89, 80).should_upload is False

    def test_reason_is_filled(self):
        assert "89" in decide(89, 80).reason
        assert decide(1, 1, force=True).reason == "Force run requested"


class TestSyncDecisionEngine:
    """Test the decision engine with probe results and persisted state."""

    @pytest.fixture
    def state_manager(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            yield StateManager(str(Path(temp_dir) / "kv" / "bill_metadata.json"))

    def test_skip_scenario_records_source_count(self, state_manager):
        engine = SyncDecisionEngine(state_manager)
        decision = engine.evaluate(CountResult.success(50), CountResult.success(50))

        assert decision.should_crawl is False
        assert decision.should_upload is False
        assert state_manager.previous_count() == 50

    def test_crawl_scenario_records_source_count(self, state_manager):
        engine = SyncDecisionEngine(state_manager)
        decision = engine.evaluate(CountResult.success(89), CountResult.success(80))

        assert decision.should_crawl is True
        assert decision.should_upload is False
        with open(state_manager.filepath) as f:
            assert json.load(f)["billCount"] == 89

    def test_unavailable_destination_treated_as_empty(self, state_manager):
        engine = SyncDecisionEngine(state_manager)
        decision = engine.evaluate(CountResult.success(12), CountResult.unavailable("connection refused"))

        assert decision.should_crawl is True
        assert decision.should_upload is True

    def test_unavailable_source_crawls_by_default(self, state_manager):
        engine = SyncDecisionEngine(state_manager)
        decision = engine.evaluate(CountResult.unavailable("timeout"), CountResult.success(80))

        assert decision.should_crawl is True
        assert decision.should_upload is False
        # Nothing reliable to record.
        assert state_manager.read() is None

    def test_unavailable_source_can_skip_run(self, state_manager):
        engine = SyncDecisionEngine(state_manager, on_source_unavailable=UnavailableSourcePolicy.SKIP)
        decision = engine.evaluate(CountResult.unavailable("timeout"), CountResult.success(0))

        assert decision.should_crawl is False
        assert decision.should_upload is False

    def test_force_wins_over_skip_policy(self, state_manager):
        engine = SyncDecisionEngine(state_manager, on_source_unavailable=UnavailableSourcePolicy.SKIP)
        decision = engine.evaluate(CountResult.unavailable("timeout"), CountResult.success(80), force=True)

        assert decision.should_crawl is True
        assert decision.should_upload is True
