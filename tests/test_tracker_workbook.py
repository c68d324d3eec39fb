"""
Tests for the tracker workbook adapter.

Round-trips Raw/Working tables through a real .xlsx file and checks the
lookup tabs and the Template dropdown.
"""

from datetime import datetime

import pytest
from openpyxl import load_workbook

from alerttracker.application.reconciler import Reconciler
from alerttracker.domain.change_types import Group
from alerttracker.domain.errors import StoreError
from alerttracker.domain.sheet_registry import (
    DEFAULT_TEMPLATES,
    RECIPIENTS,
    TEMPLATES,
    WORKING_ALERTS,
)
from alerttracker.infrastructure.excel.tracker_workbook import LISTS_SHEET, TrackerWorkbook

from conftest import make_record

T1 = "02/01/2026 09:00:00"


@pytest.fixture
def tracker(tmp_path):
    return TrackerWorkbook(tmp_path / "out" / "tracker.xlsx")


def _tables(*records):
    return Reconciler().reconcile(list(records), [], [], T1)


class TestEnsure:
    """Test cases for creating the tracker."""

    def test_creates_all_tabs(self, tracker):
        created = tracker.ensure()
        assert set(created) == {
            "Working_Alerts",
            "Raw_Alerts",
            "Templates",
            "Recipients",
            LISTS_SHEET,
        }
        wb = load_workbook(tracker.path)
        assert wb[LISTS_SHEET].sheet_state == "hidden"
        headers = [c.value for c in wb[WORKING_ALERTS.name][1]]
        assert headers == WORKING_ALERTS.headers

    def test_idempotent(self, tracker):
        tracker.ensure()
        assert tracker.ensure() == []

    def test_default_templates_seeded(self, tracker):
        tracker.ensure()
        templates = tracker.read_templates()
        assert [t.label for t in templates] == [label for label, _, _ in DEFAULT_TEMPLATES]
        assert all(t.active for t in templates)
        assert templates[-1].label == "READY TO BE RESOLVED"

    def test_missing_tab_recreated(self, tracker):
        tracker.ensure()
        wb = load_workbook(tracker.path)
        del wb[RECIPIENTS.name]
        wb.save(tracker.path)
        assert tracker.ensure() == [RECIPIENTS.name]

    def test_counts(self, tracker):
        assert tracker.sheet_row_counts()[WORKING_ALERTS.name] is None
        tracker.ensure()
        counts = tracker.sheet_row_counts()
        assert counts[WORKING_ALERTS.name] == 0
        assert counts[TEMPLATES.name] == len(DEFAULT_TEMPLATES)

    def test_frozen_header_leaves_templates_seedable(self, tracker):
        """Test freezing the header row does not count as template data."""
        tracker.ensure()
        ws = load_workbook(tracker.path)[TEMPLATES.name]
        assert ws.freeze_panes == "A2"
        assert ws.cell(row=2, column=1).value == DEFAULT_TEMPLATES[0][0]
        assert ws.max_row == 1 + len(DEFAULT_TEMPLATES)


class TestTables:
    """Test cases for Raw/Working persistence."""

    def test_round_trip(self, tracker):
        result = _tables(make_record(2), make_record(3, product="Tag", date="sometime"))
        w = result.working[0]
        w.template = "Waiting on client"
        w.free_text = "asked on\nMonday"
        w.composed = "Waiting on client, asked on\nMonday"
        w.push_ready = True
        w.notes = "internal"

        tracker.replace_tables(result.raw, result.working)
        assert tracker.load_working() == result.working
        assert tracker.load_raw() == result.raw

    def test_raw_none_leaves_raw_untouched(self, tracker):
        result = _tables(make_record(2))
        tracker.replace_tables(result.raw, result.working)

        result.working[0].notes = "edited"
        tracker.replace_tables(None, result.working)
        assert tracker.load_raw() == result.raw
        assert tracker.load_working()[0].notes == "edited"

    def test_shrinking_table_clears_old_rows(self, tracker):
        result = _tables(make_record(2), make_record(3, issue="Other"), make_record(4, issue="Z"))
        tracker.replace_tables(result.raw, result.working)
        smaller = _tables(make_record(2))
        tracker.replace_tables(smaller.raw, smaller.working)
        assert len(tracker.load_working()) == 1
        assert len(tracker.load_raw()) == 1

    def test_columns_found_by_header(self, tracker):
        """Test a human moving columns around does not break reading."""
        result = _tables(make_record(2))
        result.working[0].notes = "keep me"
        tracker.replace_tables(result.raw, result.working)

        wb = load_workbook(tracker.path)
        wb[WORKING_ALERTS.name].insert_cols(1)
        wb.save(tracker.path)

        [w] = tracker.load_working()
        assert w.notes == "keep me"
        assert w.record.date == datetime(2026, 2, 1)

    def test_unknown_group_loads_as_ongoing(self, tracker):
        result = _tables(make_record(2))
        tracker.replace_tables(result.raw, result.working)

        wb = load_workbook(tracker.path)
        wb[WORKING_ALERTS.name].cell(row=2, column=WORKING_ALERTS.index_of("group"), value="??")
        wb.save(tracker.path)

        assert tracker.load_working()[0].group is Group.ONGOING

    def test_composed_follows_human_edits(self, tracker):
        """Test template and free text typed in Excel flow into composed."""
        result = _tables(make_record(2))
        tracker.replace_tables(result.raw, result.working)

        wb = load_workbook(tracker.path)
        ws = wb[WORKING_ALERTS.name]
        ws.cell(row=2, column=WORKING_ALERTS.index_of("template"), value="Waiting on client")
        ws.cell(row=2, column=WORKING_ALERTS.index_of("free_text"), value="asked Feb 1")
        wb.save(tracker.path)

        [w] = tracker.load_working()
        assert w.composed == "Waiting on client, asked Feb 1"

    def test_text_flags_read_as_bools(self, tracker):
        result = _tables(make_record(2))
        tracker.replace_tables(result.raw, result.working)

        wb = load_workbook(tracker.path)
        ws = wb[WORKING_ALERTS.name]
        ws.cell(row=2, column=WORKING_ALERTS.index_of("push_ready"), value="TRUE")
        ws.cell(row=2, column=WORKING_ALERTS.index_of("ready_to_resolve"), value="yes")
        wb.save(tracker.path)

        [w] = tracker.load_working()
        assert w.push_ready is True
        assert w.ready_to_resolve is True

    def test_missing_tracker_reads_empty(self, tracker):
        assert tracker.load_working() == []
        assert tracker.load_raw() == []

    def test_corrupt_tracker(self, tracker):
        tracker.path.parent.mkdir(parents=True)
        tracker.path.write_bytes(b"not a zip")
        with pytest.raises(StoreError):
            tracker.load_working()


class TestDropdown:
    """Test cases for the Template dropdown."""

    def _validation(self, tracker):
        wb = load_workbook(tracker.path)
        dvs = [
            dv
            for dv in wb[WORKING_ALERTS.name].data_validations.dataValidation
            if LISTS_SHEET in (dv.formula1 or "")
        ]
        return wb, dvs

    def test_points_at_active_labels(self, tracker):
        tracker.ensure()
        wb, [dv] = self._validation(tracker)
        assert f"{LISTS_SHEET}!$A$1:$A${len(DEFAULT_TEMPLATES)}" in dv.formula1
        assert dv.showErrorMessage is False
        lists = [r[0] for r in wb[LISTS_SHEET].iter_rows(values_only=True)]
        assert lists == [label for label, _, _ in DEFAULT_TEMPLATES]

    def test_inactive_templates_excluded(self, tracker):
        tracker.ensure()
        wb = load_workbook(tracker.path)
        ws = wb[TEMPLATES.name]
        ws.cell(row=2, column=2, value=False)
        ws.append(["Escalated to engineering", True, "Status", None])
        wb.save(tracker.path)

        count = tracker.refresh_template_dropdown()
        assert count == len(DEFAULT_TEMPLATES)
        assert "Investigating internally" not in tracker.active_template_labels()
        assert "Escalated to engineering" in tracker.active_template_labels()

        wb, dvs = self._validation(tracker)
        assert len(dvs) == 1

    def test_refresh_survives_table_rewrites(self, tracker):
        result = _tables(make_record(2))
        tracker.replace_tables(result.raw, result.working)
        tracker.replace_tables(None, result.working)
        _, dvs = self._validation(tracker)
        assert len(dvs) == 1


class TestRecipients:
    def test_read_recipients(self, tracker):
        tracker.ensure()
        wb = load_workbook(tracker.path)
        ws = wb[RECIPIENTS.name]
        ws.append(["Ops Lead", "ops@example.com", True])
        ws.append(["Former", "former@example.com", "FALSE"])
        ws.append(["No address", None, True])
        wb.save(tracker.path)

        recipients = tracker.read_recipients()
        assert [(r.email, r.active) for r in recipients] == [
            ("ops@example.com", True),
            ("former@example.com", False),
        ]
