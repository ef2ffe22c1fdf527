"""
Tests for the record sink.
"""

import json
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from ..models import BillRecord
from ..record_sink import RecordSink


def make_record(title: str, **kwargs) -> BillRecord:
    values = dict(
        title=title,
        description=f"Description of {title}",
        status="Signed by Governor",
        signed_date="Dec 05, 2025",
        issued_date="Jan 08, 2025",
        source_url=f"https://www.nysenate.gov/legislation/bills/2025/{title.lower()}",
        pdf_url=None,
    )
    values.update(kwargs)
    return BillRecord(**values)


class TestRecordSink:

    @pytest.fixture
    def temp_dir(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            yield Path(temp_dir)

    @pytest.fixture
    def sink(self, temp_dir):
        return RecordSink(str(temp_dir / "datasets" / "default"))

    def test_insert_and_contains(self, sink):
        assert sink.insert_if_absent(make_record("S1001")) is True
        assert sink.contains("S1001")
        assert not sink.contains("s1001")
        assert sink.count() == 1

    def test_file_layout(self, sink):
        sink.insert_if_absent(make_record("S1001"))
        sink.insert_if_absent(make_record("S1002"))

        names = sorted(p.name for p in sink.directory.iterdir())
        assert names == ["000000001.json", "000000002.json"]
        with open(sink.directory / "000000001.json") as f:
            data = json.load(f)
        assert data["billTitle"] == "S1001"
        assert data["detailPageUrl"].endswith("/s1001")
        assert data["signedDate"] == "Dec 05, 2025"

    def test_duplicate_title_is_rejected(self, sink):
        assert sink.insert_if_absent(make_record("S1001")) is True
        assert sink.insert_if_absent(make_record("S1001", status="Vetoed")) is False
        assert sink.count() == 1
        assert sink.records()[0].status == "Signed by Governor"

    def test_index_is_rebuilt_on_open(self, sink):
        sink.insert_if_absent(make_record("S1001"))
        reopened = RecordSink(str(sink.directory))

        assert reopened.contains("S1001")
        assert reopened.insert_if_absent(make_record("S1002")) is True
        assert (sink.directory / "000000002.json").exists()

    def test_reads_title_key_variant(self, sink):
        with open(sink.directory / "000000007.json", "w") as f:
            json.dump({"title": "A200", "sourceUrl": "https://example.com/a200"}, f)
        reopened = RecordSink(str(sink.directory))

        assert reopened.contains("A200")
        assert reopened.records()[0].source_url == "https://example.com/a200"
        reopened.insert_if_absent(make_record("A201"))
        assert (sink.directory / "000000008.json").exists()

    def test_unreadable_files_are_skipped(self, sink):
        (sink.directory / "000000001.json").write_text("{broken")
        reopened = RecordSink(str(sink.directory))

        assert reopened.titles() == []
        assert reopened.records() == []
        assert reopened.insert_if_absent(make_record("S1")) is True

    def test_concurrent_inserts_of_same_title(self, sink):
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: sink.insert_if_absent(make_record("S1001")), range(16)))

        assert results.count(True) == 1
        assert sink.count() == 1

    def test_backup_copies_new_and_newer_files(self, sink, temp_dir):
        backup_dir = temp_dir / "permanent_storage"
        sink.insert_if_absent(make_record("S1001"))
        sink.insert_if_absent(make_record("S1002"))

        assert sink.backup(str(backup_dir)) == 2
        assert sink.backup(str(backup_dir)) == 0

        record_file = sink.directory / "000000001.json"
        stat = record_file.stat()
        os.utime(record_file, (stat.st_atime, stat.st_mtime + 10))
        assert sink.backup(str(backup_dir)) == 1

    def test_restore(self, sink, temp_dir):
        backup_dir = temp_dir / "permanent_storage"
        sink.insert_if_absent(make_record("S1001"))
        sink.backup(str(backup_dir))

        fresh = RecordSink(str(temp_dir / "restored"))
        assert fresh.restore(str(backup_dir)) == 1
        assert fresh.contains("S1001")

    def test_restore_without_backup(self, sink, temp_dir):
        assert sink.restore(str(temp_dir / "missing")) == 0

    def test_restore_keeps_existing_files(self, sink, temp_dir):
        backup_dir = temp_dir / "permanent_storage"
        sink.insert_if_absent(make_record("S1001"))
        sink.backup(str(backup_dir))

        other = RecordSink(str(temp_dir / "other"))
        other.insert_if_absent(make_record("A2002"))

        assert other.restore(str(backup_dir)) == 0
        with open(other.directory / "000000001.json", encoding='utf-8') as f:
            assert json.load(f)["billTitle"] == "A2002"
        assert other.titles() == ["A2002"]

    def test_restore_skips_titles_already_stored(self, sink, temp_dir):
        backup_dir = temp_dir / "permanent_storage"
        sink.insert_if_absent(make_record("S1001"))
        sink.backup(str(backup_dir))
        os.rename(backup_dir / "000000001.json", backup_dir / "000000007.json")

        assert sink.restore(str(backup_dir)) == 0
        assert sink.count() == 1
        assert not (sink.directory / "000000007.json").exists()
