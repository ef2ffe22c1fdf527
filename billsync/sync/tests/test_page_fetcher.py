#!/usr/bin/env python3
"""
Unit tests for page fetching.
"""

import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests

from ..config import FetchConfig
from ..error_tracker import PageLoadError, SourceFetchError
from ..page_fetcher import PageFetcher


def mock_response(text: str):
    response = Mock()
    response.text = text
    response.raise_for_status.return_value = None
    return response


class TestPageFetcher:

    @pytest.fixture
    def session(self):
        session = Mock(spec=requests.Session)
        session.headers = {}
        return session

    def test_default_headers_and_user_agent(self, session):
        PageFetcher(FetchConfig(user_agent="billsync-test"), session=session)
        assert session.headers['User-Agent'] == "billsync-test"
        assert 'Accept' in session.headers

    def test_fetch_html(self, session):
        session.get.return_value = mock_response("<html></html>")
        fetcher = PageFetcher(FetchConfig(timeout=7), session=session)

        assert fetcher.fetch_html("https://example.com") == "<html></html>"
        session.get.assert_called_once_with("https://example.com", timeout=7)

    @patch('billsync.sync.page_fetcher.time.sleep')
    def test_fetch_retries_then_fails(self, mock_sleep, session):
        session.get.side_effect = requests.ConnectionError("boom")
        fetcher = PageFetcher(FetchConfig(retry_attempts=3), session=session)

        with pytest.raises(SourceFetchError) as exc_info:
            fetcher.fetch_html("https://example.com")

        assert session.get.call_count == 3
        assert exc_info.value.url == "https://example.com"
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    @patch('billsync.sync.page_fetcher.time.sleep')
    def test_fetch_recovers_after_transient_error(self, mock_sleep, session):
        session.get.side_effect = [requests.Timeout("slow"), mock_response("<p>ok</p>")]
        fetcher = PageFetcher(FetchConfig(retry_attempts=3), session=session)

        assert fetcher.fetch_html("https://example.com") == "<p>ok</p>"

    def test_local_file(self, session):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "page.html"
            path.write_text("<h1>local</h1>", encoding="utf-8")
            fetcher = PageFetcher(session=session)

            soup = fetcher.load(f"file://{path}")

        assert soup.h1.get_text() == "local"
        session.get.assert_not_called()

    def test_local_file_missing(self, session):
        fetcher = PageFetcher(session=session)
        with pytest.raises(SourceFetchError):
            fetcher.fetch_html("file:///nonexistent/page.html")

    def test_local_file_not_utf8(self, session):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "page.html"
            path.write_bytes(b"<html>\xff\xfe</html>")
            fetcher = PageFetcher(session=session)

            with pytest.raises(SourceFetchError):
                fetcher.load(f"file://{path}")

    @patch('billsync.sync.page_fetcher.time.sleep')
    def test_wait_for_refetches_until_present(self, mock_sleep, session):
        session.get.side_effect = [
            mock_response("<div>loading</div>"),
            mock_response("<div class='ready'>done</div>"),
        ]
        fetcher = PageFetcher(FetchConfig(wait_attempts=3, wait_interval_seconds=0.5), session=session)

        soup = fetcher.load("https://example.com", wait_for=".ready")

        assert soup.select_one(".ready").get_text() == "done"
        mock_sleep.assert_called_once_with(0.5)

    @patch('billsync.sync.page_fetcher.time.sleep')
    def test_wait_for_gives_up(self, mock_sleep, session):
        session.get.return_value = mock_response("<div>loading</div>")
        fetcher = PageFetcher(FetchConfig(wait_attempts=2), session=session)

        with pytest.raises(PageLoadError) as exc_info:
            fetcher.load("https://example.com", wait_for=".ready")

        assert session.get.call_count == 2
        assert exc_info.value.operation == "wait_for_selector"
