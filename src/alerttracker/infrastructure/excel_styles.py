"""
Excel styling configuration and utilities.

Provides consistent styling across the tracker workbook:
- Color palette (row highlights follow the lifecycle group)
- Font, fill, border and alignment presets
- Header and row formatting helpers
"""

from __future__ import annotations

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from alerttracker.domain.change_types import Group
from alerttracker.domain.models import WorkingRecord
from alerttracker.domain.sheet_registry import SheetSpec


# ============================================================================
# Color Palette
# ============================================================================


class Colors:
    """Tracker color palette (hex codes without #)."""

    HEADER_BG = "203764"
    HEADER_TEXT = "FFFFFF"
    MANUAL_HEADER_BG = "4472C4"  # Human-edited columns

    # Row highlights
    RESOLVED_BG = "DCFCE7"  # Ready to resolve / Resolved
    REOPENED_BG = "FFEDD5"  # Changed after resolution
    NEW_BG = "DBEAFE"
    UPDATED_BG = "FEF9C3"

    NOTES_TEXT = "666666"


def _solid(color: str) -> PatternFill:
    return PatternFill(start_color=color, end_color=color, fill_type="solid")


class Fonts:
    """Font definitions for the tracker."""

    HEADER = Font(name="Segoe UI", size=11, bold=True, color=Colors.HEADER_TEXT)
    DATA = Font(name="Segoe UI", size=10)
    DATA_BOLD = Font(name="Segoe UI", size=10, bold=True)
    NOTES = Font(name="Segoe UI", size=9, italic=True, color=Colors.NOTES_TEXT)


class Fills:
    """Background fill patterns."""

    HEADER = _solid(Colors.HEADER_BG)
    MANUAL_HEADER = _solid(Colors.MANUAL_HEADER_BG)
    RESOLVED = _solid(Colors.RESOLVED_BG)
    REOPENED = _solid(Colors.REOPENED_BG)
    NEW = _solid(Colors.NEW_BG)
    UPDATED = _solid(Colors.UPDATED_BG)
    NONE = PatternFill(fill_type=None)


class Borders:
    """Border styles."""

    THIN = Border(
        left=Side(style="thin", color="B4B4B4"),
        right=Side(style="thin", color="B4B4B4"),
        top=Side(style="thin", color="B4B4B4"),
        bottom=Side(style="thin", color="B4B4B4"),
    )

    HEADER = Border(
        left=Side(style="thin", color="1F4E79"),
        right=Side(style="thin", color="1F4E79"),
        top=Side(style="thin", color="1F4E79"),
        bottom=Side(style="medium", color="1F4E79"),
    )


class Alignments:
    """Text alignment definitions."""

    CENTER = Alignment(horizontal="center", vertical="center", wrap_text=False)
    CENTER_WRAP = Alignment(horizontal="center", vertical="center", wrap_text=True)
    LEFT_WRAP = Alignment(horizontal="left", vertical="top", wrap_text=True)


# ============================================================================
# Helper Functions
# ============================================================================


def apply_header_row(ws: Worksheet, spec: SheetSpec) -> None:
    """
    Write and style the header row of a tracker sheet.

    Human-edited columns get a lighter header so they stand out.
    """
    row = spec.header_row
    for col_idx, col in enumerate(spec.columns, start=1):
        cell = ws.cell(row=row, column=col_idx)
        cell.value = col.header
        cell.font = Fonts.HEADER
        cell.fill = Fills.MANUAL_HEADER if col.is_manual else Fills.HEADER
        cell.alignment = Alignments.CENTER_WRAP
        cell.border = Borders.HEADER
        ws.column_dimensions[get_column_letter(col_idx)].width = col.width

    ws.sheet_properties.tabColor = spec.tab_color


def freeze_panes(ws: Worksheet, row: int = 2, col: int = 1) -> None:
    """Freeze rows above `row` and columns left of `col` without creating a cell."""
    ws.freeze_panes = f"{get_column_letter(col)}{row}"


def add_autofilter(ws: Worksheet, spec: SheetSpec) -> None:
    """Autofilter across the header row and any data below it."""
    last_col = get_column_letter(len(spec.columns))
    last_row = max(ws.max_row, spec.header_row)
    ws.auto_filter.ref = f"A{spec.header_row}:{last_col}{last_row}"


def row_fill_for(rec: WorkingRecord) -> PatternFill | None:
    """
    Highlight for a Working row.

    Priority: changed-after-resolution, ready/resolved, new, updated.
    """
    if rec.updated_after_resolution:
        return Fills.REOPENED
    if rec.ready_to_resolve or rec.group is Group.RESOLVED:
        return Fills.RESOLVED
    if rec.group is Group.NEW:
        return Fills.NEW
    if rec.group is Group.UPDATED:
        return Fills.UPDATED
    return None


def style_data_row(ws: Worksheet, row: int, width: int, fill: PatternFill | None) -> None:
    """Apply data font, borders and optional fill to one row."""
    for col_idx in range(1, width + 1):
        cell = ws.cell(row=row, column=col_idx)
        cell.font = Fonts.DATA
        cell.border = Borders.THIN
        cell.alignment = Alignments.LEFT_WRAP
        cell.fill = fill if fill is not None else Fills.NONE
