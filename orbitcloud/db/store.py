"""
Flat-file record store.

Users and transactions live in two independent JSON documents under
``DB_PATH``. Every mutation reads the whole document, replaces or appends one
record and rewrites the file; there is no isolation between records.
"""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

USERS = "users"
TRANSACTIONS = "transactions"


class JsonStore:
    def __init__(self, root: str | os.PathLike):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def path_for(self, document: str) -> Path:
        return self.root / f"{document}.json"

    def read(self, document: str) -> list[dict]:
        path = self.path_for(document)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("unreadable %s, treating as empty: %s", path, e)
            return []
        return data if isinstance(data, list) else []

    def write(self, document: str, records: list[dict]) -> None:
        path = self.path_for(document)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{document}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except Exception:
            logger.exception("write failed for %s", path)
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def upsert(self, document: str, key: str, record: dict) -> None:
        """Replace the record whose ``key`` matches, or append it."""
        with self._lock:
            records = self.read(document)
            for i, existing in enumerate(records):
                if existing.get(key) == record[key]:
                    records[i] = record
                    break
            else:
                records.append(record)
            self.write(document, records)

    def find(self, document: str, key: str, value) -> dict | None:
        for record in self.read(document):
            if record.get(key) == value:
                return record
        return None

    def filter(self, document: str, key: str, value) -> list[dict]:
        return [r for r in self.read(document) if r.get(key) == value]
