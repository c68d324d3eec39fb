"""
Writeback Gate - append-only comment push.

Decides which Working rows are sent to the external comment column,
renders the outbound text, and reports per-row Working updates.

Per-record order:
    1. Empty composed message -> not considered
    2. Not PushReady and template is not the resolution label -> not ready
    3. Composed equals last pushed text (normalized) -> no change
    4. Row no longer holds the same issue -> per-row error
    5. Otherwise read the live comment, append, write

Per-row failures are collected into the summary; they never abort the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from alerttracker.domain.change_types import Group, PushOutcome, PushSummary
from alerttracker.domain.fingerprint import Fingerprinter
from alerttracker.domain.models import WorkingRecord
from alerttracker.domain.ports import CommentLog
from alerttracker.domain.state_machine import evaluate_push, group_after_push, resolves_on_push

logger = logging.getLogger(__name__)

SEPARATOR = "\n\n"


def render_comment(existing: str | None, message: str, stamp: str, author: str = "Horizon") -> str:
    """
    Append one timestamped entry to the external comment log.

    Args:
        existing: Current comment cell value, read fresh
        message: Composed message to send
        stamp: Formatted push timestamp including the zone label ("... ET")
        author: Prefix naming the responding team

    Returns:
        existing + blank line + "<stamp>\\n<author>: <message>";
        no separator when existing is empty
    """
    entry = f"{stamp}\n{author}: {message}"
    prior = (existing or "").strip()
    if not prior:
        return entry
    return f"{prior}{SEPARATOR}{entry}"


@dataclass(frozen=True)
class RowUpdate:
    """
    Working-table fields to stamp after a successful push.

    comment is the text just written to the source row. row_hash absorbs
    that append unless the comment was edited in the source since sync.
    """

    composite_key: str
    source_row: int
    last_pushed_at: str
    last_pushed_text: str
    group: Group
    comment: str
    row_hash: str
    resolved_highlight: bool = False


@dataclass
class GateResult:
    """Outcome of one gate run."""

    summary: PushSummary
    writes: list[tuple[int, str]] = field(default_factory=list)
    updates: list[RowUpdate] = field(default_factory=list)
    outcomes: dict[str, PushOutcome] = field(default_factory=dict)


def apply_updates(working: list[WorkingRecord], updates: list[RowUpdate]) -> int:
    """Stamp gate updates onto Working records in place. Returns count applied."""
    by_key = {rec.composite_key: rec for rec in working}
    applied = 0
    for upd in updates:
        rec = by_key.get(upd.composite_key)
        if rec is None:
            logger.warning("Push update for unknown row %s skipped", upd.composite_key)
            continue
        rec.last_pushed_at = upd.last_pushed_at
        rec.last_pushed_text = upd.last_pushed_text
        rec.group = upd.group
        rec.record = replace(rec.record, comment=upd.comment)
        rec.row_hash = upd.row_hash
        applied += 1
    return applied


class WritebackGate:
    """
    Gate between the Working table and the external comment column.

    Usage:
        gate = WritebackGate("READY TO BE RESOLVED", enabled=config.enable_writeback)
        result = gate.run(store.load_working(), source, format_push_time(now, tz))
    """

    def __init__(
        self,
        resolution_label: str,
        author: str = "Horizon",
        enabled: bool = False,
        fingerprinter: Fingerprinter | None = None,
    ):
        self.resolution_label = resolution_label
        self.author = author
        self.enabled = enabled
        self.fingerprinter = fingerprinter or Fingerprinter()

    def plan(self, working: list[WorkingRecord]) -> dict[str, PushOutcome | None]:
        """
        Eligibility per composite key without touching the source.

        None means the row would be pushed.
        """
        return {rec.composite_key: evaluate_push(rec, self.resolution_label) for rec in working}

    def run(
        self,
        working: list[WorkingRecord],
        comments: CommentLog,
        stamp: str,
        run_id: str = "",
        mode: str = "manual",
    ) -> GateResult:
        """
        Push every eligible row, best effort.

        Args:
            working: Current Working records
            comments: Live external comment column
            stamp: Formatted push timestamp for every row in this run
            run_id: Identifier stored with the push log record
            mode: "manual" or "scheduled"

        Returns:
            GateResult with summary counters, writes and Working updates
        """
        summary = PushSummary(run_id=run_id, mode=mode, writeback_enabled=self.enabled)
        result = GateResult(summary=summary)

        if not self.enabled:
            logger.info("Writeback disabled; no rows pushed")
            return result

        for rec in working:
            outcome = evaluate_push(rec, self.resolution_label)
            if outcome is PushOutcome.SKIPPED_NO_MESSAGE:
                continue

            summary.considered += 1
            if outcome is PushOutcome.SKIPPED_NOT_READY:
                summary.skipped_not_ready += 1
            elif outcome is PushOutcome.SKIPPED_NO_CHANGE:
                summary.skipped_no_change += 1
            else:
                outcome = self._push_one(rec, comments, stamp, result)
            result.outcomes[rec.composite_key] = outcome

        logger.info(
            "Push %s: considered=%d pushed=%d no_change=%d not_ready=%d errors=%d",
            run_id or "-",
            summary.considered,
            summary.pushed,
            summary.skipped_no_change,
            summary.skipped_not_ready,
            len(summary.errors),
        )
        return result

    def _push_one(
        self,
        rec: WorkingRecord,
        comments: CommentLog,
        stamp: str,
        result: GateResult,
    ) -> PushOutcome:
        message = rec.composed.strip()
        try:
            live = comments.read_record(rec.source_row)
            if self.fingerprinter.thread_key(live) != rec.thread_key:
                logger.warning(
                    "Row %d no longer holds %s; not pushed", rec.source_row, rec.thread_key
                )
                result.summary.errors.append(
                    f"Row {rec.source_row}: row moved since sync; run sync before pushing"
                )
                return PushOutcome.FAILED
            existing = comments.read_comment(rec.source_row)
            text = render_comment(existing, message, stamp, self.author)
            comments.write_comment(rec.source_row, text)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Push failed for row %d: %s", rec.source_row, e)
            result.summary.errors.append(f"Row {rec.source_row}: {e}")
            return PushOutcome.FAILED

        # An out-of-band comment edit since sync stays visible to the next sync
        if existing.strip() == rec.record.comment.strip():
            row_hash = self.fingerprinter.row_hash(replace(rec.record, comment=text))
        else:
            row_hash = rec.row_hash

        resolving = resolves_on_push(rec, self.resolution_label)
        result.writes.append((rec.source_row, text))
        result.updates.append(
            RowUpdate(
                composite_key=rec.composite_key,
                source_row=rec.source_row,
                last_pushed_at=stamp,
                last_pushed_text=message,
                group=group_after_push(rec, self.resolution_label),
                comment=text,
                row_hash=row_hash,
                resolved_highlight=resolving,
            )
        )
        result.summary.pushed += 1
        logger.info(
            "Pushed row %d%s: %s",
            rec.source_row,
            " (resolving)" if resolving else "",
            message,
        )
        return PushOutcome.PUSHED
