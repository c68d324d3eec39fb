"""
Diagnostics - environment health report for operators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from alerttracker.application.container import Container
from alerttracker.domain.dates import is_weekend
from alerttracker.domain.errors import TrackerError

logger = logging.getLogger(__name__)


@dataclass
class Check:
    name: str
    ok: bool
    detail: str = ""


@dataclass
class DiagnosticsReport:
    config: dict[str, Any] = field(default_factory=dict)
    checks: list[Check] = field(default_factory=list)
    sheet_counts: dict[str, int | None] = field(default_factory=dict)
    last_push: dict | None = None

    @property
    def healthy(self) -> bool:
        return all(c.ok for c in self.checks)


def scheduled_skip_reason(container: Container, now: datetime | None = None) -> str | None:
    """Reason a scheduled run should not proceed, or None."""
    now = now or container.clock()
    if container.config.weekdays_only and is_weekend(now, container.config.tz):
        return "weekend (weekdays_only is enabled)"
    return None


def run_diagnostics(container: Container) -> DiagnosticsReport:
    """Collect config, source, tracker, recipient and history state."""
    c = container
    report = DiagnosticsReport(config=c.config.masked())

    try:
        records = c.source.fetch()
        report.checks.append(
            Check("source", True, f"{len(records)} rows in '{c.config.source_tab}'")
        )
    except TrackerError as e:
        report.checks.append(Check("source", False, str(e)))

    try:
        report.sheet_counts = c.tracker.sheet_row_counts()
        missing = [name for name, n in report.sheet_counts.items() if n is None]
        report.checks.append(
            Check(
                "tracker",
                not missing,
                f"missing tabs: {', '.join(missing)}" if missing else str(c.tracker.path),
            )
        )
        active = [r for r in c.tracker.read_recipients() if r.active]
        report.checks.append(
            Check("recipients", bool(active), f"{len(active)} active recipient(s)")
        )
    except TrackerError as e:
        report.checks.append(Check("tracker", False, str(e)))

    report.checks.append(
        Check(
            "writeback",
            True,
            "enabled" if c.config.enable_writeback else "disabled (no external writes)",
        )
    )
    report.checks.append(
        Check(
            "smtp",
            c.config.smtp.is_configured,
            c.config.smtp.host or "not configured",
        )
    )

    lock = c.lock("diagnostics")
    holder = lock.holder()
    report.checks.append(Check("lock", not holder, holder or "free"))

    try:
        report.last_push = c.history.get_last_push()
    except TrackerError as e:
        report.checks.append(Check("history", False, str(e)))

    logger.debug("Diagnostics: %s", [(ch.name, ch.ok) for ch in report.checks])
    return report
