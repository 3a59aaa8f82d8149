"""Incremental sync of remote commit history.

This module mirrors only commits not yet stored locally and tracks a
per-project watermark marking how far the mirror is known complete.
"""

from commitclock.incremental.delta import Delta, DeltaDetector
from commitclock.incremental.manager import SyncController, get_status
from commitclock.incremental.state import ProjectSyncStatus, SyncState, classify_state, plan_sync

__all__ = [
    "SyncController",
    "get_status",
    "SyncState",
    "ProjectSyncStatus",
    "classify_state",
    "plan_sync",
    "Delta",
    "DeltaDetector",
]
