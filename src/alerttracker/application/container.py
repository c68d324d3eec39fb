"""
Dependency injection container for the application.

Creates adapters and services from one TrackerConfig. Tests swap in fakes
by assigning the private attributes before first use.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from alerttracker.application.reconciler import Reconciler
from alerttracker.application.writeback import WritebackGate
from alerttracker.domain.config import TrackerConfig
from alerttracker.domain.fingerprint import Fingerprinter
from alerttracker.infrastructure.excel.source_workbook import SourceWorkbook
from alerttracker.infrastructure.excel.tracker_workbook import TrackerWorkbook
from alerttracker.infrastructure.mailer import SmtpMailer
from alerttracker.infrastructure.run_lock import RunLock
from alerttracker.infrastructure.sqlite.store import HistoryStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Container:
    """
    Dependency injection container.

    Manages the creation and lifecycle of adapters and services.
    """

    def __init__(self, config: TrackerConfig, clock: Callable[[], datetime] = utc_now):
        self.config = config
        self.clock = clock

        self._source: Optional[SourceWorkbook] = None
        self._tracker: Optional[TrackerWorkbook] = None
        self._history: Optional[HistoryStore] = None
        self._mailer: Optional[SmtpMailer] = None

    @property
    def source(self) -> SourceWorkbook:
        """External source adapter."""
        if self._source is None:
            self._source = SourceWorkbook(
                self.config.source_path,
                tab=self.config.source_tab,
                header_row=self.config.header_row,
            )
        return self._source

    @property
    def tracker(self) -> TrackerWorkbook:
        """Tracker workbook (Raw/Working tables)."""
        if self._tracker is None:
            self._tracker = TrackerWorkbook(self.config.tracker_path)
        return self._tracker

    @property
    def history(self) -> HistoryStore:
        """Run-log database, schema ensured on first use."""
        if self._history is None:
            self._history = HistoryStore(self.config.history_db)
            self._history.initialize_schema()
        return self._history

    @property
    def mailer(self) -> SmtpMailer:
        if self._mailer is None:
            self._mailer = SmtpMailer(self.config.smtp)
        return self._mailer

    def lock(self, operation: str, wait_seconds: float | None = None) -> RunLock:
        """A fresh run lock for one operation."""
        wait = self.config.lock_wait_seconds if wait_seconds is None else wait_seconds
        return RunLock(self.config.lock_file, wait_seconds=wait, operation=operation)

    def reconciler(self) -> Reconciler:
        return Reconciler(
            Fingerprinter(self.config.fingerprint_algorithm),
            policy=self.config.resolution_flag_policy,
        )

    def gate(self) -> WritebackGate:
        return WritebackGate(
            self.config.ready_to_resolve_label,
            author=self.config.comment_author,
            enabled=self.config.enable_writeback,
            fingerprinter=Fingerprinter(self.config.fingerprint_algorithm),
        )

    def close(self) -> None:
        """Release held resources."""
        if self._history is not None:
            self._history.close()
            self._history = None
