"""Append-only storage backends for the usage ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Protocol
import sqlite3
import threading

from hidrazy.models import UsageLogEntry


class LedgerUnavailableError(Exception):
    """Raised when the ledger cannot be read or written."""


class LedgerBackend(Protocol):
    """Ledger interface. There is deliberately no update or delete."""

    def append(self, entry: UsageLogEntry) -> UsageLogEntry:
        ...

    def entries_since(self, user_id: str, cutoff: datetime) -> List[UsageLogEntry]:
        ...


class InMemoryLedger:
    """In-memory ledger (tests and local runs)."""

    def __init__(self):
        self._entries: List[UsageLogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: UsageLogEntry) -> UsageLogEntry:
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries_since(self, user_id: str, cutoff: datetime) -> List[UsageLogEntry]:
        with self._lock:
            return [
                e for e in self._entries
                if e.user_id == user_id and e.timestamp >= cutoff
            ]

    def entries(self) -> List[UsageLogEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def _to_utc_text(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SQLiteLedger:
    """SQLite-backed ledger.

    Timestamps are stored as fixed-width UTC ISO strings so the ``>=``
    window filter can run in SQL. The database is opened on first use.
    """

    def __init__(self, db_path: str = "hidrazy.db"):
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            try:
                conn = sqlite3.connect(self.db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL;")
                self._init_schema(conn)
            except sqlite3.Error as exc:
                raise LedgerUnavailableError(
                    f"Cannot open ledger at {self.db_path}: {exc}"
                ) from exc
            self._connection = conn
        return self._connection

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ai_usage_logs (
                entry_id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                model_used TEXT NOT NULL,
                estimated_cost REAL NOT NULL,
                input_tokens INTEGER NOT NULL,
                output_tokens INTEGER NOT NULL,
                request_type TEXT
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_usage_user_time ON ai_usage_logs(user_id, timestamp)"
        )
        conn.commit()

    def append(self, entry: UsageLogEntry) -> UsageLogEntry:
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO ai_usage_logs
                        (entry_id, user_id, timestamp, model_used, estimated_cost,
                         input_tokens, output_tokens, request_type)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.entry_id,
                        entry.user_id,
                        _to_utc_text(entry.timestamp),
                        entry.model_used,
                        entry.estimated_cost,
                        entry.input_tokens,
                        entry.output_tokens,
                        entry.request_type,
                    ),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Cannot append usage entry: {exc}") from exc
        return entry

    def _row_to_entry(self, row: sqlite3.Row) -> UsageLogEntry:
        timestamp = datetime.fromisoformat(row["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return UsageLogEntry(
            user_id=row["user_id"],
            model_used=row["model_used"],
            estimated_cost=row["estimated_cost"],
            input_tokens=row["input_tokens"],
            output_tokens=row["output_tokens"],
            request_type=row["request_type"],
            timestamp=timestamp,
            entry_id=row["entry_id"],
        )

    def entries_since(self, user_id: str, cutoff: datetime) -> List[UsageLogEntry]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    """
                    SELECT * FROM ai_usage_logs
                    WHERE user_id = ? AND timestamp >= ?
                    ORDER BY timestamp ASC
                    """,
                    (user_id, _to_utc_text(cutoff)),
                ).fetchall()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Cannot read usage entries: {exc}") from exc
        return [self._row_to_entry(row) for row in rows]

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
