"""
Sync Service - Thin Orchestrator for the sync command.

Workflow:
    1. Take the run lock (abort at once if held)
    2. Fetch the source tab
    3. Load prior Raw/Working tables
    4. Reconcile
    5. Bulk-replace both tables in one save
    6. Append a sync_log record

Architecture Note:
    - Group logic lives in domain/state_machine.py
    - Table computation lives in application/reconciler.py
    - Any fatal error leaves the stored tables untouched
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from alerttracker.application.container import Container
from alerttracker.domain.change_types import SyncStats
from alerttracker.domain.dates import format_sync_time
from alerttracker.domain.errors import NoSourceDataError, TrackerError

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


def new_run_id() -> str:
    """Short run identifier stored with log records."""
    return uuid.uuid4().hex[:8]


@dataclass
class SyncOutcome:
    """What one sync call did."""

    run_id: str
    status: str
    sync_time: str = ""
    stats: SyncStats = field(default_factory=SyncStats)
    note: str = ""

    @property
    def completed(self) -> bool:
        return self.status == STATUS_COMPLETED


class SyncService:
    """
    Orchestrator for sync operations.

    Usage:
        outcome = SyncService(container).sync()
    """

    def __init__(self, container: Container):
        self.container = container

    def sync(self, mode: str = "manual") -> SyncOutcome:
        """
        Execute one sync cycle.

        Returns:
            SyncOutcome; status "skipped" when the source has no data

        Raises:
            RunInProgressError: another run holds the lock
            TrackerError: fatal source/config/store/invariant error
        """
        c = self.container
        run_id = new_run_id()
        sync_time = format_sync_time(c.clock(), c.config.tz)

        with c.lock("sync", wait_seconds=0):
            logger.info("Sync %s started (%s)", run_id, mode)
            try:
                outcome = self._run(run_id, sync_time)
            except NoSourceDataError as e:
                logger.warning("Sync %s skipped: %s", run_id, e)
                c.history.record_sync(
                    run_id, STATUS_SKIPPED, sync_time=sync_time, mode=mode, notes=str(e)
                )
                return SyncOutcome(run_id, STATUS_SKIPPED, sync_time, note=str(e))
            except TrackerError as e:
                c.history.record_sync(
                    run_id, STATUS_FAILED, sync_time=sync_time, mode=mode, notes=str(e)
                )
                raise

            c.history.record_sync(
                run_id,
                STATUS_COMPLETED,
                stats=outcome.stats,
                sync_time=sync_time,
                mode=mode,
            )
        logger.info("Sync %s completed", run_id)
        return outcome

    def _run(self, run_id: str, sync_time: str) -> SyncOutcome:
        c = self.container
        records = c.source.fetch()
        previous_raw = c.tracker.load_raw()
        previous_working = c.tracker.load_working()
        logger.debug(
            "Prior state: %d raw, %d working rows", len(previous_raw), len(previous_working)
        )

        result = c.reconciler().reconcile(records, previous_raw, previous_working, sync_time)
        c.tracker.replace_tables(result.raw, result.working)
        return SyncOutcome(run_id, STATUS_COMPLETED, sync_time, stats=result.stats)
