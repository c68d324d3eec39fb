"""
Application layer package.

Use cases (sync, push, digest) orchestrated over the domain core.
"""

from alerttracker.application.container import Container
from alerttracker.application.digest_service import DigestService
from alerttracker.application.push_service import PushService
from alerttracker.application.reconciler import Reconciler, ReconcileResult
from alerttracker.application.sync_service import SyncService
from alerttracker.application.writeback import WritebackGate, render_comment

__all__ = [
    "Container",
    "DigestService",
    "PushService",
    "Reconciler",
    "ReconcileResult",
    "SyncService",
    "WritebackGate",
    "render_comment",
]
