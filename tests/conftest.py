"""
Shared fixtures for the tracker tests.

Provides record factories, a fixed clock, source workbook builders and a
fully wired Container over tmp_path files.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from alerttracker.application.container import Container
from alerttracker.domain.config import TrackerConfig
from alerttracker.domain.models import ExternalRecord

SOURCE_HEADERS = [
    "Date",
    "Product",
    "Workflow/Audience Name",
    "Issue & LR Action",
    "Request to Horizon Team",
    "Horizon Comment (LR)",
    "Resolved (LR)",
]

# Monday 02/02/2026 3:05 PM in New York
FIXED_NOW = datetime(2026, 2, 2, 20, 5, tzinfo=timezone.utc)


def make_record(source_row: int = 2, **overrides: Any) -> ExternalRecord:
    fields = {
        "date": datetime(2026, 2, 1),
        "product": "Pixel",
        "workflow": "W1",
        "issue": "Cannot decommission",
        "request": "Please advise",
        "comment": "",
        "resolved": False,
    }
    fields.update(overrides)
    return ExternalRecord(source_row=source_row, **fields)


def write_source_workbook(
    path: Path,
    rows: list[list[Any]],
    tab: str = "Alerts",
    header_row: int = 1,
) -> Path:
    """Create a source workbook with headers at header_row and rows below."""
    wb = Workbook()
    ws = wb.active
    ws.title = tab
    for col, header in enumerate(SOURCE_HEADERS, start=1):
        ws.cell(row=header_row, column=col, value=header)
    for offset, values in enumerate(rows, start=1):
        for col, value in enumerate(values, start=1):
            ws.cell(row=header_row + offset, column=col, value=value)
    wb.save(path)
    return path


class Clock:
    """Mutable clock for multi-step scenarios."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def source_path(tmp_path) -> Path:
    return write_source_workbook(
        tmp_path / "alerts.xlsx",
        [
            [
                datetime(2026, 2, 1),
                "Pixel",
                "W1",
                "Cannot decommission",
                "Please advise",
                None,
                False,
            ]
        ],
    )


@pytest.fixture
def make_config(tmp_path, source_path):
    def _make(**overrides: Any) -> TrackerConfig:
        data = {
            "source_path": str(source_path),
            "tracker_path": str(tmp_path / "out" / "tracker.xlsx"),
            "history_db": str(tmp_path / "out" / "history.db"),
            "lock_wait_seconds": 0,
            "enable_writeback": True,
        }
        data.update(overrides)
        return TrackerConfig(**data)

    return _make


@pytest.fixture
def container(make_config, clock):
    c = Container(make_config(), clock=clock)
    yield c
    c.close()
