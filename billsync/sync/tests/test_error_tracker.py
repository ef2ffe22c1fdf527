"""
Tests for error tracking and structured logging.
"""

import json
import logging

from ..error_tracker import ErrorSeverity, ErrorTracker, PageLoadError, UploadError
from ..logging_manager import JsonFormatter


class TestErrorTracker:

    def test_report_and_filter(self):
        tracker = ErrorTracker()
        tracker.report("count unavailable", operation="source_count", severity=ErrorSeverity.WARNING)
        tracker.report("page failed", url="https://example.com/s1", operation="fetch")
        tracker.report("upload failed", operation="upload", severity=ErrorSeverity.CRITICAL)

        assert len(tracker.get_errors()) == 3
        assert len(tracker.get_errors(ErrorSeverity.ERROR)) == 2
        assert tracker.has_critical_errors()

        report = tracker.generate_report()
        assert report['total_errors'] == 3
        assert report['critical_count'] == 1
        assert report['error_count'] == 1
        assert report['warning_count'] == 1
        assert report['errors'][1]['url'] == "https://example.com/s1"

    def test_report_exception(self):
        tracker = ErrorTracker()
        tracker.report_exception(PageLoadError("selector missing", url="https://example.com", operation="wait_for_selector"))

        error = tracker.get_errors()[0]
        assert error.message == "selector missing"
        assert error.operation == "wait_for_selector"
        assert not tracker.has_critical_errors()

    def test_upload_error_fields(self):
        error = UploadError("batch 3 failed", batch_number=3, uploaded=200)

        assert error.operation == "upload"
        assert error.batch_number == 3
        assert error.uploaded == 200
        assert str(error) == "batch 3 failed"


class TestJsonFormatter:

    def test_format_with_details(self):
        record = logging.LogRecord("billsync.sync.crawler", logging.INFO, __file__, 1, "Found %d bills", (3,), None)
        record.details = {'url': 'https://example.com/ü'}

        data = json.loads(JsonFormatter().format(record))

        assert data['message'] == "Found 3 bills"
        assert data['level'] == "INFO"
        assert data['details'] == {'url': 'https://example.com/ü'}

    def test_format_without_details(self):
        record = logging.LogRecord("billsync.sync", logging.WARNING, __file__, 1, "plain", (), None)
        data = json.loads(JsonFormatter().format(record))

        assert 'details' not in data
