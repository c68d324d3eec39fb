"""
External source workbook adapter.

Reads the externally-owned alerts tab (columns A:G) and appends to its
comment column. Nothing else in the source is ever written.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.utils.exceptions import InvalidFileException

from alerttracker.domain.errors import (
    NoSourceDataError,
    SourceTabMissingError,
    SourceUnavailableError,
)
from alerttracker.domain.models import ExternalRecord
from alerttracker.domain.sheet_registry import SOURCE_COLUMN_COUNT, SOURCE_COMMENT_COLUMN

logger = logging.getLogger(__name__)

_OPEN_ERRORS = (OSError, InvalidFileException, zipfile.BadZipFile, KeyError)


class SourceWorkbook:
    """
    Inbound fetch from the source tab.

    Usage:
        source = SourceWorkbook("shared/alerts.xlsx", tab="Alerts", header_row=1)
        records = source.fetch()
        with source.open_comments() as comments:
            comments.write_comment(2, "...")
    """

    def __init__(self, path: str | Path, tab: str = "Alerts", header_row: int = 1):
        self.path = Path(path)
        self.tab = tab
        self.header_row = header_row

    def _open(self, read_only: bool):
        if not self.path.exists():
            raise SourceUnavailableError(f"Source workbook not found: {self.path}")
        try:
            if read_only:
                return load_workbook(self.path, read_only=True, data_only=True)
            keep_vba = self.path.suffix.lower() == ".xlsm"
            return load_workbook(self.path, keep_vba=keep_vba)
        except PermissionError as e:
            raise SourceUnavailableError(
                f"Cannot open source workbook (permission denied): {self.path}"
            ) from e
        except _OPEN_ERRORS as e:
            raise SourceUnavailableError(
                f"Cannot open source workbook {self.path}: {e}"
            ) from e

    def _sheet(self, wb):
        if self.tab not in wb.sheetnames:
            wb.close()
            raise SourceTabMissingError(
                f"Tab '{self.tab}' not found in {self.path.name} "
                f"(available: {', '.join(wb.sheetnames)})"
            )
        return wb[self.tab]

    def fetch(self) -> list[ExternalRecord]:
        """
        Read every row below the header, A:G, in row order.

        Trailing fully-empty rows are dropped; blank rows in the middle are
        returned so row positions stay exact.
        """
        wb = self._open(read_only=True)
        try:
            ws = self._sheet(wb)
            rows = [
                tuple(row)
                for row in ws.iter_rows(
                    min_row=self.header_row + 1,
                    max_col=SOURCE_COLUMN_COUNT,
                    values_only=True,
                )
            ]
        finally:
            wb.close()

        while rows and all(v is None or str(v).strip() == "" for v in rows[-1]):
            rows.pop()

        if not rows:
            raise NoSourceDataError(
                f"No data below header row {self.header_row} in '{self.tab}'"
            )

        records = [
            ExternalRecord.from_cells(self.header_row + 1 + idx, cells)
            for idx, cells in enumerate(rows)
        ]
        logger.info("Fetched %d rows from %s [%s]", len(records), self.path.name, self.tab)
        return records

    def open_comments(self) -> SourceCommentLog:
        """Load the workbook for writing; save through the returned log."""
        wb = self._open(read_only=False)
        ws = self._sheet(wb)
        return SourceCommentLog(self.path, wb, ws, self.header_row)


class SourceCommentLog:
    """
    Cell access to the comment column of a loaded source workbook.

    Writes stay in memory until save(). Used as a context manager the
    workbook is closed on exit; saving is explicit.
    """

    def __init__(self, path: Path, wb, ws, header_row: int):
        self.path = path
        self._wb = wb
        self._ws = ws
        self.header_row = header_row
        self.dirty = False

    def __enter__(self) -> SourceCommentLog:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _comment_cell(self, source_row: int):
        if source_row <= self.header_row:
            raise ValueError(f"row {source_row} is not below the header")
        cell = self._ws.cell(row=source_row, column=SOURCE_COMMENT_COLUMN)
        if isinstance(cell, MergedCell):
            raise ValueError(f"comment cell in row {source_row} is merged and read-only")
        return cell

    def read_record(self, source_row: int) -> ExternalRecord:
        """Current A:G cells of one row, read from the loaded workbook."""
        if source_row <= self.header_row:
            raise ValueError(f"row {source_row} is not below the header")
        cells = [
            self._ws.cell(row=source_row, column=col).value
            for col in range(1, SOURCE_COLUMN_COUNT + 1)
        ]
        return ExternalRecord.from_cells(source_row, cells)

    def read_comment(self, source_row: int) -> str:
        value = self._comment_cell(source_row).value
        return "" if value is None else str(value)

    def write_comment(self, source_row: int, text: str) -> None:
        self._comment_cell(source_row).value = text
        self.dirty = True

    def save(self) -> None:
        """Persist pending writes."""
        if not self.dirty:
            return
        try:
            self._wb.save(self.path)
        except PermissionError as e:
            raise SourceUnavailableError(
                f"Cannot save source workbook (is it open in Excel?): {self.path}"
            ) from e
        except OSError as e:
            raise SourceUnavailableError(f"Cannot save source workbook: {e}") from e
        self.dirty = False
        logger.info("Saved source workbook: %s", self.path)

    def close(self) -> None:
        self._wb.close()
