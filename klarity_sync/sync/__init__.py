"""Sync cycle orchestration, triggers, and the status surface seam."""

from klarity_sync.sync.orchestrator import (
    SyncOrchestrator,
    SyncResult,
    SyncStatus,
    SyncTrigger,
)
from klarity_sync.sync.scheduler import SyncScheduler
from klarity_sync.sync.status import ConsoleStatusSink, RecordingStatusSink, StatusSink

__all__ = [
    "ConsoleStatusSink",
    "RecordingStatusSink",
    "StatusSink",
    "SyncOrchestrator",
    "SyncResult",
    "SyncScheduler",
    "SyncStatus",
    "SyncTrigger",
]
