"""
Centralized Sheet Registry.

SINGLE SOURCE OF TRUTH for all worksheet layouts: the external source
tab, the tracker's Raw/Working tables and its lookup tabs.
All modules must import from here - no duplicate header lists.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """
    One column of a tracker table.

    Attributes:
        header: Header text written to row 1
        attr: WorkingRecord/MirroredRecord attribute (or source field)
        width: Column width in characters
        is_manual: Human-edited column (gray header note, never overwritten by sync)
        is_flag: Boolean checkbox column
    """

    header: str
    attr: str
    width: int = 14
    is_manual: bool = False
    is_flag: bool = False


@dataclass(frozen=True, slots=True)
class SheetSpec:
    """Complete specification for a tracker worksheet."""

    name: str
    columns: tuple[ColumnSpec, ...] = ()
    header_row: int = 1
    tab_color: str = "203764"
    notes: dict[str, str] = field(default_factory=dict)

    @property
    def headers(self) -> list[str]:
        return [c.header for c in self.columns]

    @property
    def first_data_row(self) -> int:
        return self.header_row + 1

    def index_of(self, attr: str) -> int:
        """1-based column index of an attribute."""
        for idx, col in enumerate(self.columns, start=1):
            if col.attr == attr:
                return idx
        raise KeyError(f"{self.name} has no column for '{attr}'")


# ─────────────────────────────────────────────────────────────────────────────
# External source (fixed A:G, 1-based)
# ─────────────────────────────────────────────────────────────────────────────

SOURCE_COLUMN_COUNT = 7
SOURCE_COMMENT_COLUMN = 6  # F - append-only log we write
SOURCE_RESOLVED_COLUMN = 7  # G - owned by the source, never written

_SOURCE_FIELDS = (
    ColumnSpec("Date", "date", 12),
    ColumnSpec("Product", "product", 16),
    ColumnSpec("Workflow/Audience Name", "workflow", 28),
    ColumnSpec("Issue & LR Action", "issue", 40),
    ColumnSpec("Request to Horizon Team", "request", 36),
    ColumnSpec("Horizon Comment (LR)", "comment", 40),
    ColumnSpec("Resolved (LR)", "resolved", 10, is_flag=True),
)

SOURCE_ALERTS = SheetSpec(name="Alerts", columns=_SOURCE_FIELDS)


# ─────────────────────────────────────────────────────────────────────────────
# Tracker tables
# ─────────────────────────────────────────────────────────────────────────────

RAW_ALERTS = SheetSpec(
    name="Raw_Alerts",
    columns=_SOURCE_FIELDS
    + (
        ColumnSpec("_synced_at", "synced_at", 20),
        ColumnSpec("_thread_key", "thread_key", 12),
        ColumnSpec("_row_hash", "row_hash", 12),
        ColumnSpec("_source_row_number", "source_row", 10),
        ColumnSpec("_first_seen_at", "first_seen_at", 20),
        ColumnSpec("_last_seen_at", "last_seen_at", 20),
    ),
    tab_color="6B7280",
)

WORKING_ALERTS = SheetSpec(
    name="Working_Alerts",
    columns=_SOURCE_FIELDS
    + (
        ColumnSpec("HMI_Group", "group", 12),
        ColumnSpec("HMI_Update_Template", "template", 28, is_manual=True),
        ColumnSpec("HMI_Update_FreeText", "free_text", 36, is_manual=True),
        ColumnSpec("HMI_Composed_Update", "composed", 40),
        ColumnSpec("HMI_Push_Ready", "push_ready", 10, is_manual=True, is_flag=True),
        ColumnSpec("HMI_Last_Pushed_At", "last_pushed_at", 20),
        ColumnSpec("HMI_Last_Pushed_Text", "last_pushed_text", 36),
        ColumnSpec(
            "HMI_Ready_To_Be_Resolved", "ready_to_resolve", 12, is_manual=True, is_flag=True
        ),
        ColumnSpec(
            "HMI_LR_Updated_After_Resolution", "updated_after_resolution", 12, is_flag=True
        ),
        ColumnSpec("HMI_Notes_Internal", "notes", 36, is_manual=True),
        ColumnSpec("_thread_key", "thread_key", 12),
        ColumnSpec("_row_hash", "row_hash", 12),
        ColumnSpec("_source_row_number", "source_row", 10),
        ColumnSpec("_composite_key", "composite_key", 16),
        ColumnSpec("_first_seen_at", "first_seen_at", 20),
        ColumnSpec("_last_seen_at", "last_seen_at", 20),
    ),
    tab_color="1D4ED8",
)

TEMPLATES = SheetSpec(
    name="Templates",
    columns=(
        ColumnSpec("Template Label", "label", 32),
        ColumnSpec("Active", "active", 10, is_flag=True),
        ColumnSpec("Category", "category", 14),
        ColumnSpec("Notes", "notes", 28),
    ),
    tab_color="16A34A",
)

RECIPIENTS = SheetSpec(
    name="Recipients",
    columns=(
        ColumnSpec("Name", "name", 24),
        ColumnSpec("Email", "email", 36),
        ColumnSpec("Active", "active", 10, is_flag=True),
    ),
    tab_color="F59E0B",
)

TRACKER_SHEETS: tuple[SheetSpec, ...] = (
    WORKING_ALERTS,
    RAW_ALERTS,
    TEMPLATES,
    RECIPIENTS,
)

DEFAULT_TEMPLATES: tuple[tuple[str, str, str], ...] = (
    ("Investigating internally", "Status", ""),
    ("Waiting on client", "Status", ""),
    ("Waiting on site team", "Status", ""),
    ("Waiting on tagging team", "Status", ""),
    ("Need more info from LiveRamp", "Status", ""),
    ("Fix deployed, monitoring", "Status", ""),
    ("READY TO BE RESOLVED", "Action", "Mark as complete"),
)
