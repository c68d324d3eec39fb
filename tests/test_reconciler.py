"""
Tests for the reconciler.

Pure in-memory: fetched records plus prior Raw/Working lists in, next
tables out.
"""

from dataclasses import asdict, replace
from datetime import datetime

import pytest

from alerttracker.application.reconciler import Reconciler
from alerttracker.domain.change_types import Group, ResolutionFlagPolicy
from alerttracker.domain.errors import InvariantViolationError
from alerttracker.domain.fingerprint import Fingerprinter
from alerttracker.domain.models import ExternalRecord

from conftest import make_record

T1 = "02/01/2026 09:00:00"
T2 = "02/02/2026 09:00:00"
T3 = "02/03/2026 09:00:00"


@pytest.fixture
def reconciler():
    return Reconciler(Fingerprinter("rolling32"))


def _strip_times(rows):
    out = []
    for w in rows:
        d = asdict(w)
        d.pop("last_seen_at")
        out.append(d)
    return out


class TestFirstCycle:
    def test_new_records(self, reconciler):
        result = reconciler.reconcile([make_record(2), make_record(3, product="Tag")], [], [], T1)
        assert [w.group for w in result.working] == [Group.NEW, Group.NEW]
        assert result.stats.new == 2
        assert all(m.first_seen_at == T1 == m.synced_at for m in result.raw)

    def test_blank_rows_skipped(self, reconciler):
        blank = ExternalRecord(source_row=3, date=datetime(2026, 2, 1), comment="x")
        result = reconciler.reconcile([make_record(2), blank], [], [], T1)
        assert len(result.working) == 1
        assert result.stats.skipped_blank == 1
        assert result.stats.fetched == 2

    def test_duplicate_issues_get_distinct_composite_keys(self, reconciler):
        result = reconciler.reconcile([make_record(2), make_record(5)], [], [], T1)
        keys = {w.composite_key for w in result.working}
        assert len(keys) == 2
        assert len({w.thread_key for w in result.working}) == 1


class TestCarryForward:
    def test_human_fields_preserved_when_unchanged(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        w = first.working[0]
        w.template = "Waiting on client"
        w.free_text = "asked Feb 1"
        w.notes = "internal only"
        w.push_ready = True
        w.ready_to_resolve = False
        w.last_pushed_text = "Waiting on client"
        w.last_pushed_at = "02/01/2026 3:05 PM ET"

        second = reconciler.reconcile([make_record(2)], first.raw, first.working, T2)
        out = second.working[0]
        assert out.template == "Waiting on client"
        assert out.free_text == "asked Feb 1"
        assert out.notes == "internal only"
        assert out.push_ready is True
        assert out.last_pushed_text == "Waiting on client"
        assert out.last_pushed_at == "02/01/2026 3:05 PM ET"
        assert out.composed == "Waiting on client, asked Feb 1"

    def test_human_fields_preserved_when_changed(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        w = first.working[0]
        w.template, w.free_text, w.notes = "Investigating internally", "ETA 2 weeks", "n"

        changed = make_record(2, comment="LR: any news?")
        second = reconciler.reconcile([changed], first.raw, first.working, T2)
        out = second.working[0]
        assert out.group is Group.UPDATED
        assert (out.template, out.free_text, out.notes) == (
            "Investigating internally",
            "ETA 2 weeks",
            "n",
        )

    def test_composed_is_recomputed(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        first.working[0].composed = "stale text"
        first.working[0].template = "Waiting on client"
        second = reconciler.reconcile([make_record(2)], first.raw, first.working, T2)
        assert second.working[0].composed == "Waiting on client"

    def test_first_seen_carried_forward(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        second = reconciler.reconcile([make_record(2)], first.raw, first.working, T2)
        assert second.raw[0].first_seen_at == T1
        assert second.raw[0].last_seen_at == T2
        assert second.working[0].first_seen_at == T1

    def test_row_move_is_a_new_composite_key(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        first.working[0].template = "Waiting on client"
        second = reconciler.reconcile([make_record(3)], first.raw, first.working, T2)
        assert second.working[0].group is Group.NEW
        assert second.working[0].template == ""
        assert second.raw[0].first_seen_at == T2


class TestTransitions:
    def test_unchanged_ongoing_stays_ongoing(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        first.working[0].group = Group.ONGOING
        second = reconciler.reconcile([make_record(2)], first.raw, first.working, T2)
        assert second.working[0].group is Group.ONGOING

    def test_change_after_ready_to_resolve(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        first.working[0].group = Group.RESOLVED
        first.working[0].ready_to_resolve = True
        second = reconciler.reconcile(
            [make_record(2, comment="reopened")], first.raw, first.working, T2
        )
        out = second.working[0]
        assert out.group is Group.RESOLVED
        assert out.updated_after_resolution is True
        assert second.stats.changed_after_resolution == 1

        # Sticky across a later unchanged sync
        third = reconciler.reconcile(
            [make_record(2, comment="reopened")], second.raw, second.working, T3
        )
        assert third.working[0].updated_after_resolution is True

    def test_clear_on_unmark_policy(self):
        rec = Reconciler(policy=ResolutionFlagPolicy.CLEAR_ON_UNMARK)
        first = rec.reconcile([make_record(2)], [], [], T1)
        first.working[0].ready_to_resolve = True
        second = rec.reconcile([make_record(2, comment="x")], first.raw, first.working, T2)
        assert second.working[0].updated_after_resolution is True

        second.working[0].ready_to_resolve = False
        third = rec.reconcile([make_record(2, comment="x")], second.raw, second.working, T3)
        assert third.working[0].updated_after_resolution is False


class TestIdempotence:
    def test_two_runs_identical_except_timestamps(self, reconciler):
        records = [
            make_record(2),
            make_record(3, product="Tag", date="not a date"),
            make_record(4, issue="Other", date=datetime(2026, 1, 5)),
        ]
        first = reconciler.reconcile(records, [], [], T1)
        second = reconciler.reconcile(records, first.raw, first.working, T2)
        third = reconciler.reconcile(records, second.raw, second.working, T3)
        assert _strip_times(second.working) == _strip_times(third.working)
        assert [m.row_hash for m in second.raw] == [m.row_hash for m in third.raw]


class TestOrdering:
    def test_sorted_by_thread_key_date_row(self, reconciler):
        records = [
            make_record(2, date=datetime(2026, 2, 3)),
            make_record(3, date="garbage"),
            make_record(4, date=datetime(2026, 2, 1)),
            make_record(5, product="Another"),
        ]
        result = reconciler.reconcile(records, [], [], T1)
        keys = [w.thread_key for w in result.working]
        assert keys == sorted(keys)

        same = [w for w in result.working if w.record.product == "Pixel"]
        assert [w.source_row for w in same] == [4, 2, 3]

    def test_order_independent_of_input_order(self, reconciler):
        records = [make_record(2), make_record(3, product="Tag"), make_record(4, issue="Z")]
        a = reconciler.reconcile(records, [], [], T1)
        b = reconciler.reconcile(list(reversed(records)), [], [], T1)
        assert [w.composite_key for w in a.working] == [w.composite_key for w in b.working]


class TestInvariantViolation:
    def test_duplicate_working_keys_abort(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        dup = first.working + [replace(first.working[0], template="other")]
        with pytest.raises(InvariantViolationError, match="Working"):
            reconciler.reconcile([make_record(2)], first.raw, dup, T2)

    def test_duplicate_raw_keys_abort(self, reconciler):
        first = reconciler.reconcile([make_record(2)], [], [], T1)
        with pytest.raises(InvariantViolationError, match="Raw"):
            reconciler.reconcile([make_record(2)], first.raw * 2, first.working, T2)
