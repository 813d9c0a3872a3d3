"""Expiring hit counters backing the request rate limiter.

A store records timestamped hits per client key and answers, atomically,
whether one more hit fits in the current window. Two backends:

- InMemoryCounterStore: single process, lock protected. Tests and CLI runs.
- SqliteCounterStore: shared database file, safe across worker processes.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowState:
    """Result of a single hit attempt."""

    allowed: bool
    count: int  # hits inside the window after this attempt
    oldest_hit: float | None  # timestamp of the oldest hit still in the window


class CounterStore(ABC):
    """Sliding-window hit log keyed by client identity."""

    @abstractmethod
    def hit(
        self, key: str, now: float, window_seconds: float, limit: int
    ) -> WindowState:
        """Expire old hits, then record one more if under the limit.

        Must be atomic per key: concurrent callers never both take the
        last free slot.
        """

    @abstractmethod
    def reset(self, key: str) -> None:
        """Forget all hits for a key."""


class InMemoryCounterStore(CounterStore):
    """Thread-safe in-process store. Not shared between processes."""

    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def hit(
        self, key: str, now: float, window_seconds: float, limit: int
    ) -> WindowState:
        with self._lock:
            self._sweep(now, window_seconds)
            hits = self._hits.setdefault(key, deque())

            if len(hits) >= limit:
                return WindowState(False, len(hits), hits[0] if hits else None)

            hits.append(now)
            return WindowState(True, len(hits), hits[0])

    def _sweep(self, now: float, window_seconds: float) -> None:
        # Caller holds the lock. Keys with no hits left are dropped.
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and now - hits[0] >= window_seconds:
                hits.popleft()
            if not hits:
                del self._hits[key]

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS rate_limit_hits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    client_key TEXT NOT NULL,
    hit_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_rate_limit_hits_key_time
    ON rate_limit_hits(client_key, hit_at);

CREATE INDEX IF NOT EXISTS idx_rate_limit_hits_time
    ON rate_limit_hits(hit_at);
"""


class SqliteCounterStore(CounterStore):
    """SQLite-backed store shared by every process pointing at one file.

    Each hit runs in a BEGIN IMMEDIATE transaction, which takes the write
    lock up front so the prune-count-insert sequence is serialized.
    """

    def __init__(self, db_path: str | Path, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(_SCHEMA_SQL)
        finally:
            conn.close()
        logger.info("Rate limit counter store initialized at %s", self.db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path), timeout=self.timeout, isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def hit(
        self, key: str, now: float, window_seconds: float, limit: int
    ) -> WindowState:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute(
                    "DELETE FROM rate_limit_hits WHERE hit_at <= ?",
                    (now - window_seconds,),
                )
                row = conn.execute(
                    "SELECT COUNT(*) AS n, MIN(hit_at) AS oldest "
                    "FROM rate_limit_hits WHERE client_key = ?",
                    (key,),
                ).fetchone()
                count, oldest = row["n"], row["oldest"]

                if count >= limit:
                    conn.execute("COMMIT")
                    return WindowState(False, count, oldest)

                conn.execute(
                    "INSERT INTO rate_limit_hits (client_key, hit_at) VALUES (?, ?)",
                    (key, now),
                )
                conn.execute("COMMIT")
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
            return WindowState(True, count + 1, oldest if oldest is not None else now)
        finally:
            conn.close()

    def reset(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM rate_limit_hits WHERE client_key = ?", (key,))
        finally:
            conn.close()
