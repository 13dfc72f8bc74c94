"""Key-value persistence for PortfolioQ state.

The pipeline only needs get/set on string keys holding JSON documents
(subjects, audit log, the user's API key). Two backends share the
KeyValueStore protocol:

- InMemoryKeyValueStore: tests and throwaway CLI runs
- SqliteKeyValueStore: one SQLite file, one `kv` table, shared by API workers

SQLite can return "database is locked" under concurrent access, so writes
go through retry_on_db_lock with exponential backoff and jitter.
"""

from __future__ import annotations

import random
import sqlite3
import threading
import time
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, Protocol, TypeVar

from portfolioq.config import (
    DB_CONNECT_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
)
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter

F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Minimal persistence contract consumed by the pipeline."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Decorator to retry database operations on SQLITE_BUSY errors.

    Side Effects:
        - Sleeps between retries (exponential backoff with jitter)
        - Logs a warning per retry and an error when retries are exhausted
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    if "locked" not in str(e).lower() and "busy" not in str(e).lower():
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s",
                            max_retries,
                            e,
                        )
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * 0.1)
                    counter("kv.lock_retry")
                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs: %s",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                        e,
                    )
                    time.sleep(sleep_time)
            raise AssertionError("unreachable")

        return wrapper  # type: ignore[return-value]

    return decorator


class InMemoryKeyValueStore:
    """Dict-backed store; thread-safe."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqliteKeyValueStore:
    """
    SQLite-backed key-value store.

    One connection is shared across threads (check_same_thread=False) and
    serialized with a lock; WAL mode keeps readers in other processes unblocked.
    """

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at REAL NOT NULL
        )
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(db_path),
            timeout=DB_CONNECT_TIMEOUT,
            check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        with self._conn:
            self._conn.execute(self._SCHEMA)
        logger.info("Opened key-value store at %s", db_path)

    def get(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    @retry_on_db_lock()
    def set(self, key: str, value: str) -> None:
        """
        Upsert a value.

        Side Effects:
            - Writes to the kv table and commits
        """
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = excluded.updated_at",
                (key, value, time.time()),
            )

    @retry_on_db_lock()
    def delete(self, key: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    def close(self) -> None:
        with self._lock:
            self._conn.close()
