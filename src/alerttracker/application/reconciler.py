"""
Reconciler - the sync state engine.

Given the freshly fetched source rows plus the previous Raw and Working
tables, compute the next Raw and Working tables in full.

Architecture Note:
    - Pure: no workbook access, no clock. The caller passes sync_time.
    - Group transitions are delegated to domain/state_machine.py
    - Output fully replaces the stored tables (bulk-replace semantics)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, TypeVar

from alerttracker.domain.change_types import ResolutionFlagPolicy, SyncStats, TransitionReason
from alerttracker.domain.dates import date_sort_key
from alerttracker.domain.errors import InvariantViolationError
from alerttracker.domain.fingerprint import Fingerprinter
from alerttracker.domain.models import (
    HUMAN_FIELDS,
    ExternalRecord,
    MirroredRecord,
    WorkingRecord,
    composite_key,
)
from alerttracker.domain.state_machine import classify_group, compose_message

logger = logging.getLogger(__name__)

_Keyed = TypeVar("_Keyed", MirroredRecord, WorkingRecord)


@dataclass
class ReconcileResult:
    """Next-cycle tables plus counters."""

    raw: list[MirroredRecord] = field(default_factory=list)
    working: list[WorkingRecord] = field(default_factory=list)
    stats: SyncStats = field(default_factory=SyncStats)


def index_by_composite_key(records: Iterable[_Keyed], table: str) -> dict[str, _Keyed]:
    """
    Index prior-cycle records by composite key.

    Raises:
        InvariantViolationError: two records share a composite key
    """
    index: dict[str, _Keyed] = {}
    for rec in records:
        key = rec.composite_key
        if key in index:
            raise InvariantViolationError(
                f"Duplicate composite key '{key}' in stored {table} table "
                f"(rows {index[key].source_row} and {rec.source_row})"
            )
        index[key] = rec
    return index


def working_sort_key(rec: WorkingRecord) -> tuple:
    """Thread key, then date (unparseable last), then source row."""
    return (rec.thread_key, date_sort_key(rec.record.date), rec.source_row)


class Reconciler:
    """
    Computes the next Raw/Working state from a fetched batch.

    Usage:
        reconciler = Reconciler(Fingerprinter("rolling32"))
        result = reconciler.reconcile(records, store.load_raw(), store.load_working(), now)
    """

    def __init__(
        self,
        fingerprinter: Fingerprinter | None = None,
        policy: ResolutionFlagPolicy = ResolutionFlagPolicy.STICKY,
    ):
        self.fingerprinter = fingerprinter or Fingerprinter()
        self.policy = policy

    def reconcile(
        self,
        fetched: list[ExternalRecord],
        previous_raw: list[MirroredRecord],
        previous_working: list[WorkingRecord],
        sync_time: str,
    ) -> ReconcileResult:
        """
        Run one reconciliation cycle.

        Args:
            fetched: Source rows in row order
            previous_raw: Stored Raw table (first-seen carry-forward)
            previous_working: Stored Working table (human-field carry-forward)
            sync_time: Formatted timestamp for this cycle

        Returns:
            ReconcileResult with the sorted next tables

        Raises:
            InvariantViolationError: prior state holds duplicate composite keys
        """
        # Both lookups are validated before any output is produced.
        raw_index = index_by_composite_key(previous_raw, "Raw")
        working_index = index_by_composite_key(previous_working, "Working")

        result = ReconcileResult()
        stats = result.stats
        stats.fetched = len(fetched)

        for record in fetched:
            if record.is_blank:
                stats.skipped_blank += 1
                continue

            mirrored, working = self._reconcile_one(
                record, raw_index, working_index, sync_time, stats
            )
            result.raw.append(mirrored)
            result.working.append(working)

        result.working.sort(key=working_sort_key)
        result.raw.sort(
            key=lambda m: (m.thread_key, date_sort_key(m.record.date), m.source_row)
        )
        stats.mirrored = len(result.raw)

        logger.info(
            "Reconciled %d rows (skipped %d blank): new=%d updated=%d ongoing=%d resolved=%d",
            stats.mirrored,
            stats.skipped_blank,
            stats.new,
            stats.updated,
            stats.ongoing,
            stats.resolved,
        )
        return result

    def _reconcile_one(
        self,
        record: ExternalRecord,
        raw_index: dict[str, MirroredRecord],
        working_index: dict[str, WorkingRecord],
        sync_time: str,
        stats: SyncStats,
    ) -> tuple[MirroredRecord, WorkingRecord]:
        tkey = self.fingerprinter.thread_key(record)
        rhash = self.fingerprinter.row_hash(record)
        ckey = composite_key(tkey, record.source_row)

        prev_raw = raw_index.get(ckey)
        first_seen = prev_raw.first_seen_at if prev_raw and prev_raw.first_seen_at else sync_time

        mirrored = MirroredRecord(
            record=record,
            thread_key=tkey,
            row_hash=rhash,
            synced_at=sync_time,
            first_seen_at=first_seen,
            last_seen_at=sync_time,
        )

        previous = working_index.get(ckey)
        transition = classify_group(previous, rhash, self.policy)
        if transition.reason is TransitionReason.CHANGED_AFTER_RESOLUTION:
            stats.changed_after_resolution += 1
            logger.warning(
                "Row %d changed after being marked ready to resolve (%s)",
                record.source_row,
                ckey,
            )
        stats.count(transition.group)

        working = WorkingRecord(
            record=record,
            group=transition.group,
            updated_after_resolution=transition.updated_after_resolution,
            thread_key=tkey,
            row_hash=rhash,
            first_seen_at=first_seen,
            last_seen_at=sync_time,
        )
        if previous is not None:
            for name in HUMAN_FIELDS:
                setattr(working, name, getattr(previous, name))

        working.composed = compose_message(working.template, working.free_text)
        return mirrored, working
