"""
Error taxonomy for the tracker.

Fatal errors derive from TrackerError and propagate to the CLI boundary,
where they are surfaced and forwarded to the operator address.
Per-row push failures are not exceptions: they are collected as data
by the writeback gate.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ConfigurationError(TrackerError):
    """Missing or malformed configuration (source path, tab, timezone...)."""


class SourceError(TrackerError):
    """Problem reaching or reading the external source workbook."""


class SourceUnavailableError(SourceError):
    """Source workbook missing, unreadable or not a valid workbook."""


class SourceTabMissingError(SourceError):
    """Source workbook opened but the expected tab is absent."""


class NoSourceDataError(SourceError):
    """Source tab has no rows below the header."""


class InvariantViolationError(TrackerError):
    """
    Structural precondition violated in stored state.

    Raised when prior state holds duplicate composite keys. Treated as a
    bug signal: the cycle aborts before anything is written.
    """


class RunInProgressError(TrackerError):
    """Another sync/push holds the run lock."""


class StoreError(TrackerError):
    """Tracker workbook or history database could not be written."""
