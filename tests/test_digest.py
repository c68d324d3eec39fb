"""
Tests for the daily digest.
"""

import pytest
from openpyxl import load_workbook

from alerttracker.application.digest_service import (
    STATUS_FAILED,
    STATUS_SENT,
    STATUS_SKIPPED,
    DigestService,
    categorize,
    nl2br,
)
from alerttracker.application.sync_service import SyncService
from alerttracker.domain.change_types import Group
from alerttracker.domain.models import WorkingRecord
from alerttracker.domain.sheet_registry import RECIPIENTS
from alerttracker.infrastructure.mailer import MailError

from conftest import make_record


class FakeMailer:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    @property
    def is_configured(self):
        return True

    def send(self, recipients, subject, body, html=True):
        if self.fail:
            raise MailError("relay refused")
        self.sent.append((recipients, subject, body))


def _add_recipients(container, *rows):
    container.tracker.ensure()
    path = container.tracker.path
    wb = load_workbook(path)
    for row in rows:
        wb[RECIPIENTS.name].append(row)
    wb.save(path)


class TestCategorize:
    def test_sections_and_exclusions(self):
        rows = [
            WorkingRecord(record=make_record(2), group=Group.NEW),
            WorkingRecord(record=make_record(3), group=Group.UPDATED),
            WorkingRecord(record=make_record(4), group=Group.ONGOING),
            WorkingRecord(record=make_record(5), group=Group.RESOLVED),
            WorkingRecord(record=make_record(6), group=Group.ONGOING, ready_to_resolve=True),
        ]
        digest = categorize(rows)
        assert digest.counts == {"New": 1, "Updated": 1, "Ongoing": 1}
        assert digest.total == 3

    def test_latest_update_prefers_pushed_text(self):
        rows = [
            WorkingRecord(
                record=make_record(2), composed="draft", last_pushed_text="sent", group=Group.ONGOING
            ),
            WorkingRecord(record=make_record(3), composed="draft only"),
        ]
        digest = categorize(rows)
        assert digest.sections["Ongoing"][0].latest_update == "sent"
        assert digest.sections["New"][0].latest_update == "draft only"
        assert digest.sections["New"][0].date == "02/01/2026"


def test_nl2br_escapes_then_breaks():
    assert str(nl2br("a < b\nc & d")) == "a &lt; b<br>c &amp; d"
    assert str(nl2br(None)) == ""


class TestDigestService:
    def test_subject(self, container):
        assert DigestService(container).subject_for("2026-02-02") == (
            "LiveRamp Alerts Daily Status | 2026-02-02"
        )

    def test_html_escapes_source_text(self, container, source_path):
        wb = load_workbook(source_path)
        wb["Alerts"].cell(row=2, column=4, value="<script>x</script>\nsecond line")
        wb.save(source_path)
        SyncService(container).sync()

        subject, digest, html = DigestService(container).build()
        assert subject.endswith("| 2026-02-02")
        assert digest.counts["New"] == 1
        assert "<script>" not in html
        assert "&lt;script&gt;x&lt;/script&gt;<br>second line" in html

    def test_preview_writes_file(self, container, tmp_path):
        SyncService(container).sync()
        target = tmp_path / "preview" / "digest.html"
        result = DigestService(container).send(preview_path=target)
        assert result.preview_path == target
        assert "Cannot decommission" in target.read_text(encoding="utf-8")
        assert container.history.get_email_log() == []

    def test_no_recipients_skipped(self, container):
        SyncService(container).sync()
        result = DigestService(container).send()
        assert result.status == STATUS_SKIPPED
        [entry] = container.history.get_email_log()
        assert entry["status"] == STATUS_SKIPPED

    def test_sends_to_active_recipients(self, container):
        SyncService(container).sync()
        _add_recipients(
            container,
            ["Ops", "ops@example.com", True],
            ["Old", "old@example.com", False],
        )
        mailer = FakeMailer()
        container._mailer = mailer

        result = DigestService(container).send()
        assert result.status == STATUS_SENT
        [(recipients, subject, body)] = mailer.sent
        assert recipients == ["ops@example.com"]
        assert subject == result.subject
        assert "New (1)" in body
        assert container.history.get_email_log()[0]["recipients"] == "ops@example.com"

    def test_mail_failure_logged_and_raised(self, container):
        SyncService(container).sync()
        _add_recipients(container, ["Ops", "ops@example.com", True])
        container._mailer = FakeMailer(fail=True)

        with pytest.raises(MailError):
            DigestService(container).send()
        entry = container.history.get_email_log()[0]
        assert entry["status"] == STATUS_FAILED
        assert entry["error"] == "relay refused"
