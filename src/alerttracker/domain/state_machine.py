"""
State Machine for the Sync Engine.

This module provides THE authoritative logic for classifying group
transitions and writeback eligibility. The reconciler and the writeback
gate both delegate here.

Architecture Note:
    - Pure domain logic - no I/O, no workbook access
    - Single source of truth for transition classification
"""

from __future__ import annotations

import re

from alerttracker.domain.change_types import (
    Group,
    PushOutcome,
    ResolutionFlagPolicy,
    TransitionReason,
    TransitionResult,
)
from alerttracker.domain.models import WorkingRecord

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# Group Transitions (sync)
# =============================================================================


def classify_group(
    previous: WorkingRecord | None,
    new_row_hash: str,
    policy: ResolutionFlagPolicy = ResolutionFlagPolicy.STICKY,
) -> TransitionResult:
    """
    Classify the group of a record for the new sync cycle.

    Args:
        previous: Working record stored for the same composite key, if any
        new_row_hash: Row hash computed from the freshly fetched record
        policy: Clearing rule for the updated-after-resolution flag

    Returns:
        TransitionResult with group, reason and flag value

    Rules:
        1. No previous record -> New
        2. Same row hash -> previous group persists
        3. Changed, previously ready to resolve -> Resolved + flag raised
        4. Changed otherwise -> Updated
    """
    if previous is None:
        return TransitionResult(group=Group.NEW, reason=TransitionReason.FIRST_SEEN)

    flag = previous.updated_after_resolution
    if (
        flag
        and policy is ResolutionFlagPolicy.CLEAR_ON_UNMARK
        and not previous.ready_to_resolve
    ):
        flag = False

    if previous.row_hash == new_row_hash:
        return TransitionResult(
            group=previous.group,
            reason=TransitionReason.UNCHANGED,
            updated_after_resolution=flag,
        )

    if previous.ready_to_resolve:
        return TransitionResult(
            group=Group.RESOLVED,
            reason=TransitionReason.CHANGED_AFTER_RESOLUTION,
            updated_after_resolution=True,
        )

    return TransitionResult(
        group=Group.UPDATED,
        reason=TransitionReason.CHANGED,
        updated_after_resolution=flag,
    )


def compose_message(template: str, free_text: str) -> str:
    """
    Compose the outbound message from template and free text.

    "T, F" when both are set, otherwise whichever is set, else "".
    """
    template = (template or "").strip()
    free_text = (free_text or "").strip()
    if template and free_text:
        return f"{template}, {free_text}"
    return template or free_text


# =============================================================================
# Writeback Eligibility (push)
# =============================================================================


def normalize_message(text: str) -> str:
    """Lower-case and strip ALL whitespace for duplicate comparison."""
    return _WHITESPACE.sub("", (text or "").lower())


def is_resolution_label(template: str, resolution_label: str) -> bool:
    """True when the chosen template is the configured resolution label."""
    return bool(resolution_label) and (template or "").strip() == resolution_label.strip()


def is_push_eligible(record: WorkingRecord, resolution_label: str) -> bool:
    """
    Two-part eligibility predicate: explicit flag OR resolution label.

    Choosing the resolution label bypasses the PushReady checkbox.
    """
    return record.push_ready or is_resolution_label(record.template, resolution_label)


def is_duplicate(record: WorkingRecord) -> bool:
    """True when the composed message equals the last pushed text."""
    return normalize_message(record.composed) == normalize_message(record.last_pushed_text)


def resolves_on_push(record: WorkingRecord, resolution_label: str) -> bool:
    """A successful push of this record forces the Resolved group."""
    return record.ready_to_resolve or is_resolution_label(record.template, resolution_label)


def evaluate_push(record: WorkingRecord, resolution_label: str) -> PushOutcome | None:
    """
    Decide what the gate should do with a working record.

    Returns:
        SKIPPED_NO_MESSAGE, SKIPPED_NOT_READY, SKIPPED_NO_CHANGE,
        or None when the record should be pushed.
    """
    if not (record.composed or "").strip():
        return PushOutcome.SKIPPED_NO_MESSAGE
    if not is_push_eligible(record, resolution_label):
        return PushOutcome.SKIPPED_NOT_READY
    if is_duplicate(record):
        return PushOutcome.SKIPPED_NO_CHANGE
    return None


def group_after_push(record: WorkingRecord, resolution_label: str) -> Group:
    """
    Group after a successful push.

    Resolving pushes force Resolved; answering a New or Updated issue
    moves it to Ongoing; anything else keeps its group.
    """
    if resolves_on_push(record, resolution_label):
        return Group.RESOLVED
    if record.group in (Group.NEW, Group.UPDATED):
        return Group.ONGOING
    return record.group
