"""Replay guard: a persistent, monotonic set of used transfer hashes.

Backed by SQLite. A hash moves from unused to used exactly once and is
never reset:
- Insert-only: there is no update and no delete path.
- ``transfer_hash`` UNIQUE makes ``mark_used`` a compare-and-set.
- WAL journal mode for concurrent readers.

``hold()`` serializes the check-execute-set sequence for a single hash
inside this process, so two concurrent calls cannot both see "unused"
and both consume the same signature.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from custodybridge.core.hasher import to_hex

# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_USED_HASHES = """
CREATE TABLE IF NOT EXISTS used_transfer_hashes (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    transfer_hash  TEXT NOT NULL UNIQUE,
    reason         TEXT NOT NULL,
    marked_at_utc  TEXT NOT NULL
);
"""


class UsedReason(str, Enum):
    EXECUTED = "executed"
    INVALIDATED = "invalidated"


class ReplayRecord(BaseModel):
    """One used transfer hash."""

    model_config = ConfigDict(frozen=True)

    transfer_hash: str
    reason: UsedReason
    marked_at_utc: datetime


class ReplayGuard:
    """Persistent used/unused flag per transfer hash.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._locks: dict[bytes, threading.Lock] = {}
        self._lock_users: dict[bytes, int] = {}
        self._locks_mutex = threading.Lock()
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_USED_HASHES)
            conn.commit()

    # ------------------------------------------------------------------
    # Mutual exclusion
    # ------------------------------------------------------------------

    @contextmanager
    def hold(self, transfer_hash: bytes) -> Iterator[None]:
        """Hold the per-hash lock for the duration of the block.

        A lock exists only while some caller holds or waits for it.
        """
        with self._locks_mutex:
            lock = self._locks.setdefault(transfer_hash, threading.Lock())
            self._lock_users[transfer_hash] = self._lock_users.get(transfer_hash, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._locks_mutex:
                self._lock_users[transfer_hash] -= 1
                if self._lock_users[transfer_hash] == 0:
                    del self._lock_users[transfer_hash]
                    del self._locks[transfer_hash]

    def held_count(self) -> int:
        """Number of hashes currently held or waited on in this process."""
        with self._locks_mutex:
            return len(self._locks)

    # ------------------------------------------------------------------
    # Check and set
    # ------------------------------------------------------------------

    def is_used(self, transfer_hash: bytes) -> bool:
        """Whether *transfer_hash* was consumed or invalidated."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM used_transfer_hashes WHERE transfer_hash = ?",
                (to_hex(transfer_hash),),
            ).fetchone()
        return row is not None

    def mark_used(self, transfer_hash: bytes, reason: UsedReason) -> bool:
        """Flag *transfer_hash* as used.

        Returns ``True`` if this call set the flag, ``False`` if it was
        already set (the original record is kept).
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO used_transfer_hashes
                    (transfer_hash, reason, marked_at_utc)
                VALUES (?, ?, ?)
                """,
                (
                    to_hex(transfer_hash),
                    reason.value,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.commit()
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def get_record(self, transfer_hash: bytes) -> ReplayRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT transfer_hash, reason, marked_at_utc "
                "FROM used_transfer_hashes WHERE transfer_hash = ?",
                (to_hex(transfer_hash),),
            ).fetchone()
        if row is None:
            return None
        return ReplayRecord(
            transfer_hash=row[0], reason=UsedReason(row[1]), marked_at_utc=row[2]
        )

    def used_count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM used_transfer_hashes").fetchone()
        return int(row[0])
