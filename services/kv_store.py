"""Transient per-session key-value stores.

Quiz progress (the shuffled question list, cached score counts) lives in
one of these stores rather than in ambient request state. Values are
JSON-serialisable.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, Optional, Protocol

from config.settings import settings
from storage.sqlite import get_conn


class KeyValueStore(Protocol):  # Session-scoped cache interface
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:  # Thread-safe in-memory store
    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._lock = RLock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._values.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        raw = json.dumps(value)
        with self._lock:
            self._values[key] = raw

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


class SqliteKeyValueStore:  # Store shared by every process using the same database
    def get(self, key: str) -> Optional[Any]:
        with get_conn() as conn:
            row = conn.execute("SELECT value FROM session_cache WHERE key = ?", (key,)).fetchone()
        return None if row is None else json.loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO session_cache (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
                (key, json.dumps(value), now),
            )

    def remove(self, key: str) -> None:
        with get_conn() as conn:
            conn.execute("DELETE FROM session_cache WHERE key = ?", (key,))


def questions_key(session_id: int) -> str:
    return f"interview_questions:{session_id}"


def correct_key(session_id: int) -> str:
    return f"correct_answers:{session_id}"


def total_key(session_id: int) -> str:
    return f"total_questions:{session_id}"


def build_store(backend: Optional[str] = None) -> KeyValueStore:
    """Create the store selected by ``backend`` or ``settings.KV_BACKEND``."""

    choice = backend or settings.KV_BACKEND
    if choice == "sqlite":
        return SqliteKeyValueStore()
    if choice == "memory":
        return InMemoryKeyValueStore()
    raise ValueError(f"Unknown key-value backend '{choice}'")


__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    "questions_key",
    "correct_key",
    "total_key",
    "build_store",
]
