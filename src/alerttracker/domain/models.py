"""
Domain models for the alerts tracker.

This module contains the core business entities that represent:
- Rows fetched from the externally-owned source sheet
- The mirrored snapshot of those rows (Raw layer)
- The annotated working rows humans respond on (Working layer)

These models are pure data structures with no I/O dependencies.
They are serialized to/from the tracker workbook by the infrastructure layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from alerttracker.domain.change_types import Group


def composite_key(thread_key: str, source_row: int) -> str:
    """Build the per-cycle unique key: thread key + source row position."""
    return f"{thread_key}|{source_row}"


# ============================================================================
# External Layer
# ============================================================================


@dataclass(frozen=True)
class ExternalRecord:
    """
    One row of the external source, columns A:G.

    Attributes:
        source_row: Worksheet row number at fetch time (not stable identity)
        date: Alert date as stored in the source (datetime, date or text)
        product: Product column
        workflow: Workflow/Audience name
        issue: Issue & action description
        request: Request addressed to our team
        comment: Append-only comment log (the only column we write)
        resolved: Externally-managed resolution checkbox
    """

    source_row: int
    date: datetime | date | str | None = None
    product: str = ""
    workflow: str = ""
    issue: str = ""
    request: str = ""
    comment: str = ""
    resolved: bool = False

    @classmethod
    def from_cells(cls, source_row: int, cells: list[Any] | tuple[Any, ...]) -> ExternalRecord:
        """Build a record from the raw A:G cell values of one row."""
        values = list(cells) + [None] * (7 - len(cells))
        return cls(
            source_row=source_row,
            date=values[0] if values[0] != "" else None,
            product=_text(values[1]),
            workflow=_text(values[2]),
            issue=_text(values[3]),
            request=_text(values[4]),
            comment=_text(values[5]),
            resolved=coerce_bool(values[6]),
        )

    def identity_fields(self) -> tuple[str, str, str, str]:
        """Fields that identify the same logical issue (date excluded)."""
        return (self.product, self.workflow, self.issue, self.request)

    def all_fields(self) -> tuple[Any, ...]:
        """All source fields in fixed column order A:G."""
        return (
            self.date,
            self.product,
            self.workflow,
            self.issue,
            self.request,
            self.comment,
            self.resolved,
        )

    @property
    def is_blank(self) -> bool:
        """True when every identity field is empty (trailing blank rows)."""
        return not any(part.strip() for part in self.identity_fields())


# ============================================================================
# Raw Layer
# ============================================================================


@dataclass(frozen=True)
class MirroredRecord:
    """
    Mirrored snapshot of an external row plus fingerprint metadata.

    Fully replaced every sync; only first_seen_at is carried forward.
    """

    record: ExternalRecord
    thread_key: str
    row_hash: str
    synced_at: str
    first_seen_at: str
    last_seen_at: str

    @property
    def source_row(self) -> int:
        return self.record.source_row

    @property
    def composite_key(self) -> str:
        return composite_key(self.thread_key, self.record.source_row)


# ============================================================================
# Working Layer
# ============================================================================

# Fields owned by humans; sync carries them forward verbatim.
HUMAN_FIELDS = (
    "template",
    "free_text",
    "push_ready",
    "last_pushed_at",
    "last_pushed_text",
    "ready_to_resolve",
    "notes",
)


@dataclass
class WorkingRecord:
    # pylint: disable=too-many-instance-attributes
    """
    Annotated working row.

    Attributes:
        record: Source fields as mirrored this cycle
        group: Lifecycle state (system-derived)
        template: Chosen response template (human)
        free_text: Free-text response detail (human)
        composed: Message derived from template + free text (system-derived)
        push_ready: Human marked the message for sending
        last_pushed_at: Timestamp of last successful push
        last_pushed_text: Message text of last successful push
        ready_to_resolve: Human marked the issue ready to resolve
        updated_after_resolution: Source changed after ready-to-resolve
        notes: Internal notes, never sent
        thread_key: Identity fingerprint
        row_hash: Change-detection fingerprint
        first_seen_at: First sync that saw this composite key
        last_seen_at: Latest sync that saw it
    """

    record: ExternalRecord
    group: Group = Group.NEW
    template: str = ""
    free_text: str = ""
    composed: str = ""
    push_ready: bool = False
    last_pushed_at: str = ""
    last_pushed_text: str = ""
    ready_to_resolve: bool = False
    updated_after_resolution: bool = False
    notes: str = ""
    thread_key: str = ""
    row_hash: str = ""
    first_seen_at: str = ""
    last_seen_at: str = ""

    @property
    def source_row(self) -> int:
        return self.record.source_row

    @property
    def composite_key(self) -> str:
        return composite_key(self.thread_key, self.record.source_row)


# ============================================================================
# Cell coercion helpers
# ============================================================================


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def coerce_bool(value: Any) -> bool:
    """Interpret checkbox-like cell values (True, "TRUE", 1, "yes")."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in ("true", "yes", "y", "1", "x", "✓")


# ============================================================================
# Lookup tabs
# ============================================================================


@dataclass(frozen=True)
class TemplateEntry:
    """One response template offered in the Working dropdown."""

    label: str
    active: bool = True
    category: str = ""
    notes: str = ""


@dataclass(frozen=True)
class Recipient:
    """Digest recipient from the Recipients tab."""

    name: str
    email: str
    active: bool = True
