"""
Tracker workbook adapter.

Owns the internal workbook: Raw_Alerts, Working_Alerts, Templates and
Recipients. Raw and Working are bulk-replaced in a single save.

Columns are located by header text, so a human reordering or inserting
columns in Excel does not break reading.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

from alerttracker.domain.change_types import Group
from alerttracker.domain.errors import StoreError
from alerttracker.domain.models import (
    ExternalRecord,
    MirroredRecord,
    Recipient,
    TemplateEntry,
    WorkingRecord,
    coerce_bool,
)
from alerttracker.domain.sheet_registry import (
    DEFAULT_TEMPLATES,
    RAW_ALERTS,
    RECIPIENTS,
    SOURCE_ALERTS,
    TEMPLATES,
    TRACKER_SHEETS,
    WORKING_ALERTS,
    SheetSpec,
)
from alerttracker.domain.state_machine import compose_message
from alerttracker.infrastructure.excel_styles import (
    add_autofilter,
    apply_header_row,
    freeze_panes,
    row_fill_for,
    style_data_row,
)

logger = logging.getLogger(__name__)

LISTS_SHEET = "_Lists"
DROPDOWN_ROWS = 1000
DATE_FORMAT = "mm/dd/yyyy"

_SOURCE_ATTRS = frozenset(c.attr for c in SOURCE_ALERTS.columns)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _has_data(ws, first_row: int) -> bool:
    """True when any cell at or below first_row holds a value."""
    return any(
        any(v is not None and str(v).strip() != "" for v in values)
        for values in ws.iter_rows(min_row=first_row, values_only=True)
    )


def _cell_value(value: Any) -> Any:
    """Store empty strings as empty cells."""
    if isinstance(value, str) and value == "":
        return None
    if isinstance(value, Group):
        return value.value
    return value


class TrackerWorkbook:
    """
    openpyxl-backed TrackerStore.

    Usage:
        tracker = TrackerWorkbook("output/alerts_tracker.xlsx")
        tracker.ensure()
        working = tracker.load_working()
        tracker.replace_tables(raw, working)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    # ─────────────────────────────────────────────────────────────────────
    # Workbook lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def _load(self, read_only: bool = False):
        try:
            return load_workbook(self.path, read_only=read_only, data_only=read_only)
        except PermissionError as e:
            raise StoreError(f"Cannot open tracker (permission denied): {self.path}") from e
        except Exception as e:
            raise StoreError(f"Cannot open tracker {self.path}: {e}") from e

    def _save(self, wb) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            wb.save(self.path)
        except PermissionError as e:
            raise StoreError(
                f"Cannot save tracker (is it open in Excel?): {self.path}"
            ) from e
        except OSError as e:
            raise StoreError(f"Cannot save tracker {self.path}: {e}") from e

    def _ensure_sheets(self, wb) -> list[str]:
        """Create missing tabs and headers in an open workbook."""
        created = []
        for spec in TRACKER_SHEETS:
            if spec.name not in wb.sheetnames:
                ws = wb.create_sheet(spec.name)
                apply_header_row(ws, spec)
                freeze_panes(ws, row=spec.first_data_row)
                created.append(spec.name)

        templates_ws = wb[TEMPLATES.name]
        if not _has_data(templates_ws, TEMPLATES.first_data_row):
            for offset, entry in enumerate(DEFAULT_TEMPLATES):
                row = TEMPLATES.first_data_row + offset
                label, category, notes = entry
                for col_idx, value in enumerate(
                    [label, True, category, _cell_value(notes)], start=1
                ):
                    templates_ws.cell(row=row, column=col_idx, value=value)
            logger.info("Seeded %d default templates", len(DEFAULT_TEMPLATES))

        if LISTS_SHEET not in wb.sheetnames:
            lists = wb.create_sheet(LISTS_SHEET)
            lists.sheet_state = "hidden"
            created.append(LISTS_SHEET)
        return created

    def ensure(self) -> list[str]:
        """
        Create the tracker (or any missing tabs). Idempotent.

        Returns:
            Names of tabs created by this call
        """
        if self.path.exists():
            wb = self._load()
        else:
            wb = Workbook()
            wb.remove(wb.active)

        created = self._ensure_sheets(wb)
        if created:
            self._refresh_dropdown(wb)
            self._save(wb)
            logger.info("Tracker tabs created: %s", ", ".join(created))
        return created

    # ─────────────────────────────────────────────────────────────────────
    # Reading
    # ─────────────────────────────────────────────────────────────────────

    def _read_rows(self, spec: SheetSpec) -> list[dict[str, Any]]:
        """Rows of a tab as {attr: value}, columns matched by header."""
        if not self.path.exists():
            return []
        wb = self._load(read_only=True)
        try:
            if spec.name not in wb.sheetnames:
                return []
            ws = wb[spec.name]
            rows = ws.iter_rows(min_row=spec.header_row, values_only=True)
            header = next(rows, None)
            if not header:
                return []
            by_header = {c.header: c.attr for c in spec.columns}
            positions = {
                by_header[str(h).strip()]: idx
                for idx, h in enumerate(header)
                if h is not None and str(h).strip() in by_header
            }
            result = []
            for values in rows:
                if all(v is None for v in values):
                    continue
                result.append(
                    {
                        attr: values[idx] if idx < len(values) else None
                        for attr, idx in positions.items()
                    }
                )
            return result
        finally:
            wb.close()

    @staticmethod
    def _external(row: dict[str, Any], source_row: int) -> ExternalRecord:
        return ExternalRecord.from_cells(
            source_row, [row.get(c.attr) for c in SOURCE_ALERTS.columns]
        )

    def load_raw(self) -> list[MirroredRecord]:
        records = []
        for row in self._read_rows(RAW_ALERTS):
            source_row = _int(row.get("source_row"))
            thread_key = _text(row.get("thread_key"))
            if source_row is None or not thread_key:
                logger.warning("Raw row without key/position ignored: %s", row)
                continue
            records.append(
                MirroredRecord(
                    record=self._external(row, source_row),
                    thread_key=thread_key,
                    row_hash=_text(row.get("row_hash")),
                    synced_at=_text(row.get("synced_at")),
                    first_seen_at=_text(row.get("first_seen_at")),
                    last_seen_at=_text(row.get("last_seen_at")),
                )
            )
        return records

    def load_working(self) -> list[WorkingRecord]:
        records = []
        for row in self._read_rows(WORKING_ALERTS):
            source_row = _int(row.get("source_row"))
            thread_key = _text(row.get("thread_key"))
            if source_row is None or not thread_key:
                logger.warning("Working row without key/position ignored: %s", row)
                continue

            group = Group.from_string(row.get("group"))
            if group is None:
                logger.warning(
                    "Row %d: unrecognized group '%s', treating as Ongoing",
                    source_row,
                    row.get("group"),
                )
                group = Group.ONGOING

            template = _text(row.get("template"))
            free_text = _text(row.get("free_text"))
            records.append(
                WorkingRecord(
                    record=self._external(row, source_row),
                    group=group,
                    template=template,
                    free_text=free_text,
                    # No live formula behind the column; follow the human edits
                    composed=compose_message(template, free_text),
                    push_ready=coerce_bool(row.get("push_ready")),
                    last_pushed_at=_text(row.get("last_pushed_at")),
                    last_pushed_text=_text(row.get("last_pushed_text")),
                    ready_to_resolve=coerce_bool(row.get("ready_to_resolve")),
                    updated_after_resolution=coerce_bool(row.get("updated_after_resolution")),
                    notes=_text(row.get("notes")),
                    thread_key=thread_key,
                    row_hash=_text(row.get("row_hash")),
                    first_seen_at=_text(row.get("first_seen_at")),
                    last_seen_at=_text(row.get("last_seen_at")),
                )
            )
        return records

    def read_templates(self) -> list[TemplateEntry]:
        entries = []
        for row in self._read_rows(TEMPLATES):
            label = _text(row.get("label")).strip()
            if not label:
                continue
            active = row.get("active")
            entries.append(
                TemplateEntry(
                    label=label,
                    active=True if active is None else coerce_bool(active),
                    category=_text(row.get("category")),
                    notes=_text(row.get("notes")),
                )
            )
        return entries

    def active_template_labels(self) -> list[str]:
        labels = [t.label for t in self.read_templates() if t.active]
        if not labels:
            labels = [label for label, _, _ in DEFAULT_TEMPLATES]
        return labels

    def read_recipients(self) -> list[Recipient]:
        recipients = []
        for row in self._read_rows(RECIPIENTS):
            email = _text(row.get("email")).strip()
            if not email:
                continue
            recipients.append(
                Recipient(
                    name=_text(row.get("name")).strip(),
                    email=email,
                    active=coerce_bool(row.get("active")),
                )
            )
        return recipients

    def sheet_row_counts(self) -> dict[str, int | None]:
        """Data rows per tracker tab; None when the tab is missing."""
        counts: dict[str, int | None] = {spec.name: None for spec in TRACKER_SHEETS}
        if not self.path.exists():
            return counts
        wb = self._load(read_only=True)
        try:
            for spec in TRACKER_SHEETS:
                if spec.name in wb.sheetnames:
                    ws = wb[spec.name]
                    counts[spec.name] = sum(
                        1
                        for values in ws.iter_rows(
                            min_row=spec.first_data_row, values_only=True
                        )
                        if any(v is not None for v in values)
                    )
        finally:
            wb.close()
        return counts

    # ─────────────────────────────────────────────────────────────────────
    # Writing
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def _clear(ws, spec: SheetSpec) -> None:
        if ws.max_row >= spec.first_data_row:
            ws.delete_rows(spec.first_data_row, ws.max_row - spec.first_data_row + 1)

    @staticmethod
    def _row_values(obj: MirroredRecord | WorkingRecord, spec: SheetSpec) -> list[Any]:
        values = []
        for col in spec.columns:
            if col.attr in _SOURCE_ATTRS:
                value = getattr(obj.record, col.attr)
            else:
                value = getattr(obj, col.attr)
            values.append(_cell_value(value))
        return values

    def _write_table(self, ws, spec: SheetSpec, records: list, highlight: bool) -> None:
        self._clear(ws, spec)
        apply_header_row(ws, spec)
        date_col = spec.index_of("date")
        for offset, rec in enumerate(records):
            row = spec.first_data_row + offset
            for col_idx, value in enumerate(self._row_values(rec, spec), start=1):
                ws.cell(row=row, column=col_idx, value=value)
            style_data_row(
                ws, row, len(spec.columns), row_fill_for(rec) if highlight else None
            )
            if isinstance(rec.record.date, (datetime, date)):
                ws.cell(row=row, column=date_col).number_format = DATE_FORMAT
        add_autofilter(ws, spec)

    def replace_tables(
        self,
        raw: list[MirroredRecord] | None,
        working: list[WorkingRecord],
    ) -> None:
        """
        Clear and rewrite Raw (unless None) and Working, then save once.

        Raises:
            StoreError: the tracker cannot be opened or saved
        """
        if self.path.exists():
            wb = self._load()
        else:
            wb = Workbook()
            wb.remove(wb.active)
        self._ensure_sheets(wb)

        if raw is not None:
            self._write_table(wb[RAW_ALERTS.name], RAW_ALERTS, raw, highlight=False)
        self._write_table(wb[WORKING_ALERTS.name], WORKING_ALERTS, working, highlight=True)
        self._refresh_dropdown(wb)
        self._save(wb)
        logger.info(
            "Tracker saved: %s raw, %d working rows",
            "unchanged" if raw is None else len(raw),
            len(working),
        )

    def _refresh_dropdown(self, wb) -> int:
        """Point the Working template column at the active labels."""
        labels = [t.label for t in self._templates_in(wb) if t.active]
        if not labels:
            labels = [label for label, _, _ in DEFAULT_TEMPLATES]

        lists = wb[LISTS_SHEET]
        lists.delete_rows(1, max(lists.max_row, 1))
        for idx, label in enumerate(labels, start=1):
            lists.cell(row=idx, column=1, value=label)

        ws = wb[WORKING_ALERTS.name]
        ws.data_validations.dataValidation = [
            dv
            for dv in ws.data_validations.dataValidation
            if LISTS_SHEET not in (dv.formula1 or "")
        ]
        dv = DataValidation(
            type="list",
            formula1=f"={LISTS_SHEET}!$A$1:$A${len(labels)}",
            allow_blank=True,
            showErrorMessage=False,
        )
        col = get_column_letter(WORKING_ALERTS.index_of("template"))
        first = WORKING_ALERTS.first_data_row
        last = max(ws.max_row, first + DROPDOWN_ROWS - 1)
        dv.add(f"{col}{first}:{col}{last}")
        ws.add_data_validation(dv)
        return len(labels)

    @staticmethod
    def _templates_in(wb) -> list[TemplateEntry]:
        ws = wb[TEMPLATES.name]
        entries = []
        for values in ws.iter_rows(
            min_row=TEMPLATES.first_data_row, max_col=2, values_only=True
        ):
            label = _text(values[0]).strip() if values else ""
            if not label:
                continue
            active = values[1] if len(values) > 1 else None
            entries.append(
                TemplateEntry(label=label, active=True if active is None else coerce_bool(active))
            )
        return entries

    def refresh_template_dropdown(self) -> int:
        """
        Re-apply the Template dropdown from the Templates tab.

        Returns:
            Number of labels offered
        """
        wb = self._load() if self.path.exists() else Workbook()
        if not self.path.exists():
            wb.remove(wb.active)
        self._ensure_sheets(wb)
        count = self._refresh_dropdown(wb)
        self._save(wb)
        logger.info("Template dropdown refreshed with %d labels", count)
        return count
