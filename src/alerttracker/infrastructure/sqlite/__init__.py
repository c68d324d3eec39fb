"""
SQLite infrastructure package.

Provides the run-history store (sync, push and email logs).
"""

from alerttracker.infrastructure.sqlite.store import HistoryStore

__all__ = [
    "HistoryStore",
]
