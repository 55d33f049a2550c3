"""Storage backends for persisted circuit state."""

import json
import logging
import os
import sqlite3
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .config import StorageConfig

logger = logging.getLogger(__name__)


class BaseStorage(ABC):
    """Abstract key-value storage interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[dict]:
        """Get a stored value by key."""

    @abstractmethod
    def set(self, key: str, value: dict) -> None:
        """Store a value by key, replacing any previous one."""


class InMemoryStorage(BaseStorage):
    """In-memory storage for development/testing."""

    def __init__(self):
        self._store: dict[str, str] = {}

    def get(self, key: str) -> Optional[dict]:
        raw = self._store.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: dict) -> None:
        # Stored serialized so callers can't mutate what was saved
        self._store[key] = json.dumps(value)


class JSONFileStorage(BaseStorage):
    """Single JSON document on disk holding every key."""

    def __init__(self, path: str = "circuit_state.json"):
        self.path = Path(path)

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[dict]:
        return self._read_all().get(key)

    def set(self, key: str, value: dict) -> None:
        try:
            data = self._read_all()
        except ValueError as e:
            # Unreadable document: replaced by a fresh one holding only this key
            logger.warning(f"Overwriting unreadable storage file {self.path}: {e}")
            data = {}
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise


class SQLiteStorage(BaseStorage):
    """SQLite-based storage for persistence across restarts."""

    def __init__(self, db_path: str = "circuit_state.db"):
        self.db_path = db_path
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._init_db()

    def _init_db(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                ts REAL NOT NULL
            )
            """
        )
        self._conn.commit()

    def get(self, key: str) -> Optional[dict]:
        row = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?",
            (key,),
        ).fetchone()
        if not row:
            return None
        return json.loads(row[0])

    def set(self, key: str, value: dict) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO kv_store (key, value, ts) VALUES (?, ?, ?)",
            (key, json.dumps(value), time.time()),
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()


def create_storage(config: StorageConfig) -> BaseStorage:
    """Build the storage backend named in the configuration."""
    if config.backend == "memory":
        return InMemoryStorage()
    if not config.path:
        raise ValueError(f"Storage backend '{config.backend}' requires a path")
    if config.backend == "file":
        return JSONFileStorage(config.path)
    return SQLiteStorage(config.path)
