"""
Excel infrastructure package.

openpyxl adapters for the external source workbook and the tracker workbook.
"""

from alerttracker.infrastructure.excel.source_workbook import SourceCommentLog, SourceWorkbook
from alerttracker.infrastructure.excel.tracker_workbook import TrackerWorkbook

__all__ = [
    "SourceCommentLog",
    "SourceWorkbook",
    "TrackerWorkbook",
]
