"""
Push Service - Thin Orchestrator for the push command.

Workflow:
    1. Take the run lock (bounded wait)
    2. Disabled writeback -> log the cycle and stop
    3. Load Working, open the source for writing
    4. Run the writeback gate (reads each comment fresh)
    5. Save the source, then stamp and save Working
    6. Append a push_log record
"""

from __future__ import annotations

import logging

from alerttracker.application.container import Container
from alerttracker.application.sync_service import new_run_id
from alerttracker.application.writeback import GateResult, apply_updates
from alerttracker.domain.change_types import PushSummary
from alerttracker.domain.dates import format_push_time
from alerttracker.domain.errors import SourceError

logger = logging.getLogger(__name__)


class PushService:
    """
    Orchestrator for writeback to the external comment column.

    Usage:
        result = PushService(container).push(mode="scheduled")
    """

    def __init__(self, container: Container):
        self.container = container

    def push(self, mode: str = "manual") -> GateResult:
        """
        Execute one push cycle.

        Per-row failures are reported in the summary, not raised.

        Raises:
            RunInProgressError: another run holds the lock
            TrackerError: source or tracker could not be opened/saved
        """
        c = self.container
        run_id = new_run_id()
        stamp = format_push_time(c.clock(), c.config.tz)
        gate = c.gate()

        with c.lock("push"):
            if not gate.enabled:
                result = GateResult(
                    summary=PushSummary(run_id=run_id, mode=mode, writeback_enabled=False)
                )
                logger.warning("Writeback disabled in config; nothing pushed")
                c.history.record_push(result.summary, stamp)
                return result

            working = c.tracker.load_working()
            with c.source.open_comments() as comments:
                result = gate.run(working, comments, stamp, run_id=run_id, mode=mode)
                try:
                    comments.save()
                except SourceError as e:
                    result.summary.errors.append(f"Save failed: {e}")
                    result.summary.pushed = 0
                    c.history.record_push(result.summary, stamp)
                    raise

            if result.updates:
                apply_updates(working, result.updates)
                c.tracker.replace_tables(None, working)

            c.history.record_push(result.summary, stamp)
        return result
