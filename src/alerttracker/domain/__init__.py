"""
Domain layer package.

Contains pure data models and rules with no I/O dependencies.
Models are serialized to/from the tracker workbook via the infrastructure layer.
"""

from alerttracker.domain.change_types import (
    Group,
    PushOutcome,
    PushSummary,
    ResolutionFlagPolicy,
    SyncStats,
    TransitionReason,
    TransitionResult,
)
from alerttracker.domain.errors import (
    ConfigurationError,
    InvariantViolationError,
    NoSourceDataError,
    RunInProgressError,
    SourceError,
    SourceTabMissingError,
    SourceUnavailableError,
    StoreError,
    TrackerError,
)
from alerttracker.domain.fingerprint import Fingerprinter, row_hash, thread_key
from alerttracker.domain.models import (
    HUMAN_FIELDS,
    ExternalRecord,
    MirroredRecord,
    Recipient,
    TemplateEntry,
    WorkingRecord,
    composite_key,
)
from alerttracker.domain.state_machine import (
    classify_group,
    compose_message,
    evaluate_push,
    group_after_push,
    is_push_eligible,
    normalize_message,
)

__all__ = [
    # Enums / results
    "Group",
    "PushOutcome",
    "PushSummary",
    "ResolutionFlagPolicy",
    "SyncStats",
    "TransitionReason",
    "TransitionResult",
    # Errors
    "ConfigurationError",
    "InvariantViolationError",
    "NoSourceDataError",
    "RunInProgressError",
    "SourceError",
    "SourceTabMissingError",
    "SourceUnavailableError",
    "StoreError",
    "TrackerError",
    # Fingerprints
    "Fingerprinter",
    "row_hash",
    "thread_key",
    # Models
    "HUMAN_FIELDS",
    "ExternalRecord",
    "MirroredRecord",
    "Recipient",
    "TemplateEntry",
    "WorkingRecord",
    "composite_key",
    # State machine
    "classify_group",
    "compose_message",
    "evaluate_push",
    "group_after_push",
    "is_push_eligible",
    "normalize_message",
]
