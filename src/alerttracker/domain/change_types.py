"""
Change Types and Enums for the Sync Engine.

This module defines the core enums and dataclasses used throughout
the sync/push system. It is the single source of truth for all
status-related type definitions.

Architecture Note:
    This is a pure domain module with NO external dependencies.
    It should only contain enums, dataclasses, and type definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Group(str, Enum):
    """
    Lifecycle state of a logical issue.

    Recalculated on every sync; never meant to be hand-edited.
    """

    NEW = "New"
    UPDATED = "Updated"
    ONGOING = "Ongoing"
    RESOLVED = "Resolved"

    @property
    def is_open(self) -> bool:
        """Open groups appear in the daily digest."""
        return self is not Group.RESOLVED

    @classmethod
    def from_string(cls, value: str | None) -> Group | None:
        """Parse a stored group value, tolerating case and whitespace."""
        if value is None:
            return None
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


class TransitionReason(str, Enum):
    """Why a record landed in its group this cycle."""

    FIRST_SEEN = "first_seen"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    CHANGED_AFTER_RESOLUTION = "changed_after_resolution"


class PushOutcome(str, Enum):
    """Per-row outcome of a writeback cycle."""

    PUSHED = "pushed"
    SKIPPED_NO_MESSAGE = "skipped_no_message"
    SKIPPED_NOT_READY = "skipped_not_ready"
    SKIPPED_NO_CHANGE = "skipped_no_change"
    FAILED = "failed"


class ResolutionFlagPolicy(str, Enum):
    """
    Clearing rule for the updated-after-resolution flag.

    STICKY: once raised, reconciliation never clears it.
    CLEAR_ON_UNMARK: cleared when a human unticks ReadyToResolve.
    """

    STICKY = "sticky"
    CLEAR_ON_UNMARK = "clear_on_unmark"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class TransitionResult:
    """
    Result of classifying a group transition.

    Attributes:
        group: Group for the new cycle
        reason: What drove the classification
        updated_after_resolution: Flag value for the new cycle
    """

    group: Group
    reason: TransitionReason
    updated_after_resolution: bool = False


@dataclass
class SyncStats:
    """Counters produced by one reconciliation cycle."""

    fetched: int = 0
    skipped_blank: int = 0
    mirrored: int = 0
    new: int = 0
    updated: int = 0
    ongoing: int = 0
    resolved: int = 0
    changed_after_resolution: int = 0

    def count(self, group: Group) -> None:
        """Increment the tally for a group."""
        if group is Group.NEW:
            self.new += 1
        elif group is Group.UPDATED:
            self.updated += 1
        elif group is Group.ONGOING:
            self.ongoing += 1
        else:
            self.resolved += 1


@dataclass
class PushSummary:
    """Aggregate counters for one writeback cycle."""

    run_id: str = ""
    mode: str = "manual"
    considered: int = 0
    pushed: int = 0
    skipped_no_change: int = 0
    skipped_not_ready: int = 0
    errors: list[str] = field(default_factory=list)
    writeback_enabled: bool = True

    @property
    def notes(self) -> str:
        """Free-text note stored with the push log record."""
        if not self.writeback_enabled:
            return "Writeback disabled in config"
        return f"Considered: {self.considered}, Pushed: {self.pushed}"
