"""
SQLite-based history store for run logs.

Append-only records of:
- Sync cycles
- Push cycles (one row per cycle, errors joined)
- Digest emails

Uses stdlib sqlite3 with no ORM.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from alerttracker.domain.change_types import PushSummary, SyncStats
from alerttracker.domain.errors import StoreError

logger = logging.getLogger(__name__)

# Schema version - increment when making breaking changes
SCHEMA_VERSION = 1

ERROR_JOINER = "; "


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class HistoryStore:
    """
    SQLite-backed storage for sync, push and email history.

    Usage:
        store = HistoryStore(Path("output/tracker_history.db"))
        store.initialize_schema()
        store.record_push(summary, timestamp="02/01/2026 3:05 PM ET")
        store.close()
    """

    def __init__(self, db_path: Path | str) -> None:
        """
        Initialize history store.

        Args:
            db_path: Path to SQLite database file (created if not exists)
        """
        self.db_path = Path(db_path)
        self._connection: sqlite3.Connection | None = None
        logger.debug("HistoryStore initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._connection = sqlite3.connect(self.db_path)
            except (OSError, sqlite3.Error) as e:
                raise StoreError(f"Cannot open history database {self.db_path}: {e}") from e
            self._connection.row_factory = sqlite3.Row
            logger.debug("Database connection established")
        return self._connection

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    def __enter__(self) -> HistoryStore:
        self.initialize_schema()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def initialize_schema(self) -> None:
        """
        Create database tables if they don't exist.

        Safe to call multiple times - uses CREATE TABLE IF NOT EXISTS.
        """
        conn = self._get_connection()

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_info (
                version INTEGER NOT NULL
            )
        """
        )

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sync_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                sync_time TEXT,
                mode TEXT NOT NULL DEFAULT 'manual',
                status TEXT NOT NULL,
                fetched INTEGER NOT NULL DEFAULT 0,
                skipped_blank INTEGER NOT NULL DEFAULT 0,
                mirrored INTEGER NOT NULL DEFAULT 0,
                new_count INTEGER NOT NULL DEFAULT 0,
                updated_count INTEGER NOT NULL DEFAULT 0,
                ongoing_count INTEGER NOT NULL DEFAULT 0,
                resolved_count INTEGER NOT NULL DEFAULT 0,
                changed_after_resolution INTEGER NOT NULL DEFAULT 0,
                notes TEXT
            )
        """
        )

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS push_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                mode TEXT NOT NULL,
                considered INTEGER NOT NULL DEFAULT 0,
                pushed INTEGER NOT NULL DEFAULT 0,
                skipped_no_change INTEGER NOT NULL DEFAULT 0,
                skipped_not_ready INTEGER NOT NULL DEFAULT 0,
                errors TEXT,
                notes TEXT
            )
        """
        )

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS email_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                recorded_at TEXT NOT NULL,
                subject TEXT NOT NULL,
                counts TEXT,
                recipients TEXT,
                status TEXT NOT NULL,
                error TEXT
            )
        """
        )

        row = conn.execute("SELECT version FROM schema_info").fetchone()
        if row is None:
            conn.execute("INSERT INTO schema_info (version) VALUES (?)", (SCHEMA_VERSION,))

        conn.commit()
        logger.debug("Database schema initialized (version %d)", SCHEMA_VERSION)

    # ========================================================================
    # Sync Log
    # ========================================================================

    def record_sync(
        self,
        run_id: str,
        status: str,
        stats: SyncStats | None = None,
        sync_time: str = "",
        mode: str = "manual",
        notes: str = "",
    ) -> int:
        """Append one sync cycle record. Returns row id."""
        stats = stats or SyncStats()
        conn = self._get_connection()
        cursor = conn.execute(
            """
            INSERT INTO sync_log (
                run_id, recorded_at, sync_time, mode, status, fetched,
                skipped_blank, mirrored, new_count, updated_count,
                ongoing_count, resolved_count, changed_after_resolution, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                run_id,
                _utc_now(),
                sync_time,
                mode,
                status,
                stats.fetched,
                stats.skipped_blank,
                stats.mirrored,
                stats.new,
                stats.updated,
                stats.ongoing,
                stats.resolved,
                stats.changed_after_resolution,
                notes,
            ),
        )
        conn.commit()
        logger.debug("Sync %s logged: %s", run_id, status)
        return cursor.lastrowid

    def get_sync_log(self, limit: int = 20) -> list[dict]:
        conn = self._get_connection()
        rows = conn.execute(
            "SELECT * FROM sync_log ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [dict(r) for r in rows]

    # ========================================================================
    # Push Log
    # ========================================================================

    def record_push(self, summary: PushSummary, timestamp: str) -> int:
        """
        Append one push cycle record.

        Args:
            summary: Gate counters and error list
            timestamp: Push timestamp as written to the source
        """
        conn = self._get_connection()
        cursor = conn.execute(
            """
            INSERT INTO push_log (
                run_id, recorded_at, timestamp, mode, considered, pushed,
                skipped_no_change, skipped_not_ready, errors, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                summary.run_id,
                _utc_now(),
                timestamp,
                summary.mode,
                summary.considered,
                summary.pushed,
                summary.skipped_no_change,
                summary.skipped_not_ready,
                ERROR_JOINER.join(summary.errors),
                summary.notes,
            ),
        )
        conn.commit()
        logger.debug("Push %s logged", summary.run_id)
        return cursor.lastrowid

    def get_push_log(self, limit: int = 20) -> list[dict]:
        conn = self._get_connection()
        rows = conn.execute(
            "SELECT * FROM push_log ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [dict(r) for r in rows]

    def get_last_push(self) -> dict | None:
        pushes = self.get_push_log(limit=1)
        return pushes[0] if pushes else None

    # ========================================================================
    # Email Log
    # ========================================================================

    def record_email(
        self,
        subject: str,
        counts: dict[str, int],
        recipients: list[str],
        status: str,
        error: str = "",
    ) -> int:
        """Append one digest email record."""
        conn = self._get_connection()
        cursor = conn.execute(
            """
            INSERT INTO email_log (recorded_at, subject, counts, recipients, status, error)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (
                _utc_now(),
                subject,
                json.dumps(counts, sort_keys=True),
                ", ".join(recipients),
                status,
                error,
            ),
        )
        conn.commit()
        logger.debug("Email '%s' logged: %s", subject, status)
        return cursor.lastrowid

    def get_email_log(self, limit: int = 20) -> list[dict]:
        conn = self._get_connection()
        rows = conn.execute(
            "SELECT * FROM email_log ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
        result = []
        for r in rows:
            item = dict(r)
            item["counts"] = json.loads(item["counts"]) if item["counts"] else {}
            result.append(item)
        return result
