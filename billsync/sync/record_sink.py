"""
Durable store of finalized bill records.

The sink is a directory holding one JSON file per record (`000000001.json`,
`000000002.json`, ...). Titles are unique within the sink: records are only
ever added with `insert_if_absent`, never rewritten. A title index is built
once when the sink is opened and kept current on every insert, so dedup
checks do not rescan the directory.
"""

import json
import re
import shutil
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .logging_manager import get_logger
from .models import BillRecord


logger = get_logger(__name__)

_RECORD_FILE = re.compile(r"^(\d+)\.json$")


def _read_title(path: Path) -> Optional[str]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return data.get("billTitle", data.get("title"))
    except (OSError, ValueError, AttributeError):
        # Unreadable files never match a title.
        logger.debug(f"Skipping unreadable record file {path}")
        return None


class RecordSink:

    def __init__(self, directory: str = "./storage/datasets/default"):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._titles: Dict[str, Path] = {}
        self._next_number = 1
        self._load_index()

    def _record_files(self) -> List[Path]:
        return sorted(p for p in self.directory.iterdir() if p.is_file() and p.suffix == '.json')

    def _load_index(self) -> None:
        self._titles.clear()
        highest = 0
        for path in self._record_files():
            match = _RECORD_FILE.match(path.name)
            if match:
                highest = max(highest, int(match.group(1)))
            title = _read_title(path)
            if title is not None and title not in self._titles:
                self._titles[title] = path
        self._next_number = highest + 1
        logger.info(f"Opened record sink with {len(self._titles)} titles", extra={'details': {'directory': str(self.directory)}})

    def contains(self, title: str) -> bool:
        """Case-sensitive exact match on the natural key."""
        return title in self._titles

    def insert_if_absent(self, record: BillRecord) -> bool:
        """
        Write `record` unless a record with the same title exists.

        Returns True when the record was written.
        """
        with self._lock:
            if record.title in self._titles:
                return False
            path = self.directory / f"{self._next_number:09d}.json"
            while path.exists():
                self._next_number += 1
                path = self.directory / f"{self._next_number:09d}.json"
            with open(path, 'x', encoding='utf-8') as f:
                json.dump(record.to_dict(), f, ensure_ascii=False, indent=2)
            self._titles[record.title] = path
            self._next_number += 1
            return True

    def records(self) -> List[BillRecord]:
        """All readable records, in insertion order."""
        result = []
        for path in self._record_files():
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    result.append(BillRecord.from_dict(json.load(f)))
            except (OSError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unreadable record file {path}: {e}")
        return result

    def count(self) -> int:
        return len(self._record_files())

    def titles(self) -> List[str]:
        return list(self._titles)

    def backup(self, backup_directory: str) -> int:
        """Copy record files that are new or newer than their backup copy."""
        backup_dir = Path(backup_directory)
        backup_dir.mkdir(parents=True, exist_ok=True)
        copied = 0
        for path in self._record_files():
            target = backup_dir / path.name
            if not target.exists() or path.stat().st_mtime > target.stat().st_mtime:
                shutil.copy2(path, target)
                copied += 1
        logger.info(f"Backed up {copied} record files", extra={'details': {'backup_directory': str(backup_dir)}})
        return copied

    def restore(self, backup_directory: str) -> int:
        """
        Copy backed-up record files into the sink and rebuild the title index.

        Existing sink files are never overwritten, and a backup file whose
        title is already stored under another name is left out.
        """
        backup_dir = Path(backup_directory)
        if not backup_dir.exists():
            logger.info(f"No backup directory at {backup_dir}, nothing to restore")
            return 0
        restored = 0
        with self._lock:
            for path in sorted(backup_dir.iterdir()):
                if not (path.is_file() and path.suffix == '.json'):
                    continue
                target = self.directory / path.name
                if target.exists():
                    logger.info(f"{path.name} already in sink, not overwritten")
                    continue
                title = _read_title(path)
                if title is not None and title in self._titles:
                    logger.info(f"Bill {title} from {path.name} already in sink, not restored")
                    continue
                shutil.copy2(path, target)
                if title is not None:
                    self._titles[title] = target
                restored += 1
            self._load_index()
        logger.info(f"Restored {restored} record files", extra={'details': {'backup_directory': str(backup_dir)}})
        return restored
