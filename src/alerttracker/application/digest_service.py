"""
Daily digest of open alerts.

Groups Working rows into New / Updated / Ongoing (Resolved and rows
marked ready to resolve are left out), renders HTML with Jinja2 and mails
it to the active recipients.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from alerttracker.application.container import Container
from alerttracker.domain.change_types import Group
from alerttracker.domain.dates import parse_datetime_flexible
from alerttracker.domain.models import WorkingRecord
from alerttracker.infrastructure.mailer import MailError

logger = logging.getLogger(__name__)

# Template directory relative to this file
TEMPLATE_DIR = Path(__file__).parent / "templates"
DIGEST_TEMPLATE = "digest.html.j2"

STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"
STATUS_PREVIEW = "preview"

_SECTIONS = (Group.NEW, Group.UPDATED, Group.ONGOING)


@dataclass
class DigestRow:
    """One alert as shown in the digest."""

    date: str
    product: str
    workflow: str
    issue: str
    request: str
    latest_update: str
    last_pushed_at: str


@dataclass
class Digest:
    """Categorized open alerts."""

    sections: dict[str, list[DigestRow]] = field(default_factory=dict)

    @property
    def counts(self) -> dict[str, int]:
        return {name: len(rows) for name, rows in self.sections.items()}

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass
class DigestResult:
    subject: str
    status: str
    counts: dict[str, int] = field(default_factory=dict)
    recipients: list[str] = field(default_factory=list)
    html: str = ""
    preview_path: Path | None = None
    error: str = ""


def nl2br(value: Any) -> Markup:
    """Escape text, then turn newlines into <br>."""
    text = "" if value is None else str(value)
    return Markup("<br>").join(escape(text).split("\n"))


def _date_text(value: Any) -> str:
    parsed = parse_datetime_flexible(value)
    if parsed is not None:
        return parsed.strftime("%m/%d/%Y")
    return "" if value is None else str(value)


def categorize(working: list[WorkingRecord]) -> Digest:
    """
    Bucket open rows by group.

    Resolved rows and rows ticked ready to resolve are excluded.
    """
    digest = Digest(sections={g.value: [] for g in _SECTIONS})
    for rec in working:
        if rec.group is Group.RESOLVED or rec.ready_to_resolve:
            continue
        digest.sections[rec.group.value].append(
            DigestRow(
                date=_date_text(rec.record.date),
                product=rec.record.product,
                workflow=rec.record.workflow,
                issue=rec.record.issue,
                request=rec.record.request,
                latest_update=rec.last_pushed_text or rec.composed,
                last_pushed_at=rec.last_pushed_at,
            )
        )
    return digest


class DigestRenderer:
    """Jinja2 renderer for the digest body."""

    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["nl2br"] = nl2br

    def render(self, digest: Digest, title: str, report_date: str) -> str:
        template = self.env.get_template(DIGEST_TEMPLATE)
        return template.render(
            title=title,
            report_date=report_date,
            sections=digest.sections,
            counts=digest.counts,
            total=digest.total,
        )


class DigestService:
    """
    Builds and sends the daily digest.

    Usage:
        result = DigestService(container).send()
        result = DigestService(container).send(preview_path=Path("digest.html"))
    """

    def __init__(self, container: Container, renderer: DigestRenderer | None = None):
        self.container = container
        self.renderer = renderer or DigestRenderer()

    def subject_for(self, report_date: str) -> str:
        return f"{self.container.config.email_subject_prefix} | {report_date}"

    def build(self) -> tuple[str, Digest, str]:
        """Return (subject, digest, html) from the current Working table."""
        c = self.container
        report_date = c.clock().astimezone(c.config.tz).strftime("%Y-%m-%d")
        subject = self.subject_for(report_date)
        digest = categorize(c.tracker.load_working())
        html = self.renderer.render(digest, c.config.email_subject_prefix, report_date)
        return subject, digest, html

    def send(self, preview_path: Path | None = None) -> DigestResult:
        """
        Send (or preview) the digest.

        Raises:
            MailError: SMTP delivery failed (also logged to email_log)
        """
        c = self.container
        subject, digest, html = self.build()
        result = DigestResult(subject=subject, status=STATUS_PREVIEW, counts=digest.counts, html=html)

        if preview_path is not None:
            preview_path = Path(preview_path)
            preview_path.parent.mkdir(parents=True, exist_ok=True)
            preview_path.write_text(html, encoding="utf-8")
            result.preview_path = preview_path
            logger.info("Digest preview written: %s", preview_path)
            return result

        result.recipients = [r.email for r in c.tracker.read_recipients() if r.active]
        if not result.recipients:
            result.status = STATUS_SKIPPED
            result.error = "No active recipients"
            logger.warning("Digest not sent: no active recipients")
            c.history.record_email(subject, digest.counts, [], STATUS_SKIPPED, result.error)
            return result

        try:
            c.mailer.send(result.recipients, subject, html, html=True)
        except MailError as e:
            c.history.record_email(
                subject, digest.counts, result.recipients, STATUS_FAILED, str(e)
            )
            raise

        result.status = STATUS_SENT
        c.history.record_email(subject, digest.counts, result.recipients, STATUS_SENT)
        return result
