"""
Protocols (interfaces) the core needs from its collaborators.

The reconciler and writeback gate only see these; the openpyxl and
sqlite adapters in infrastructure implement them.
"""

from __future__ import annotations

from typing import Protocol

from alerttracker.domain.models import ExternalRecord, MirroredRecord, WorkingRecord


class ExternalSource(Protocol):
    """Inbound fetch from the externally-owned source tab."""

    def fetch(self) -> list[ExternalRecord]:
        """
        Return every row below the header, in row order.

        Raises:
            SourceUnavailableError: workbook missing or unreadable
            SourceTabMissingError: expected tab absent
            NoSourceDataError: no rows below the header
        """
        ...


class CommentLog(Protocol):
    """
    Cell-level access to the external append-only comment column.

    No transactional guarantee: a read followed by a write may race with
    an out-of-band edit.
    """

    def read_record(self, source_row: int) -> ExternalRecord:
        """Current cells of the row, used to confirm it still holds the same issue."""
        ...

    def read_comment(self, source_row: int) -> str:
        ...

    def write_comment(self, source_row: int, text: str) -> None:
        ...


class TrackerStore(Protocol):
    """Persistence for the Raw and Working tables (bulk-replace semantics)."""

    def load_raw(self) -> list[MirroredRecord]:
        ...

    def load_working(self) -> list[WorkingRecord]:
        ...

    def replace_tables(
        self,
        raw: list[MirroredRecord] | None,
        working: list[WorkingRecord],
    ) -> None:
        """Clear and rewrite the tables in one save. None leaves Raw untouched."""
        ...
