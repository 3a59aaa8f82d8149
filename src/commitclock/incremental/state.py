"""Per-project sync state.

A project is Unsynced until its first complete pass records a watermark,
Stale once that watermark is older than the freshness threshold, and Fresh
otherwise. The state and the requested mode together decide the sync plan.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from commitclock.models.analysis import SyncMode, SyncPlan
from commitclock.models.commit import Project


class SyncState(str, Enum):
    """Freshness of a project's local mirror."""

    UNSYNCED = "unsynced"
    STALE = "stale"
    FRESH = "fresh"


def classify_state(
    watermark: Optional[datetime],
    now: datetime,
    freshness_threshold_seconds: float,
) -> SyncState:
    """Classify a project's mirror from its watermark.

    A watermark ahead of ``now`` (clock skew) counts as fresh.
    """
    if watermark is None:
        return SyncState.UNSYNCED
    if now - watermark > timedelta(seconds=freshness_threshold_seconds):
        return SyncState.STALE
    return SyncState.FRESH


def plan_sync(state: SyncState, mode: SyncMode) -> SyncPlan:
    """Decide what a sync pass does.

    Args:
        state: Current state of the project's mirror
        mode: Mode requested by the caller

    Returns:
        FULL whenever the caller asks for it; otherwise INITIAL for an
        unsynced project, INCREMENTAL for a stale one and NOOP for a fresh one
    """
    if mode == SyncMode.FULL:
        return SyncPlan.FULL
    if state == SyncState.UNSYNCED:
        return SyncPlan.INITIAL
    if state == SyncState.STALE:
        return SyncPlan.INCREMENTAL
    return SyncPlan.NOOP


class ProjectSyncStatus(BaseModel):
    """Snapshot of a project's sync state for reporting."""

    project: Project
    state: SyncState = Field(..., description="Freshness of the local mirror")
    commits_stored: int = Field(0, description="Commits in the local store")
    checked_at: datetime = Field(..., description="Instant the state was classified at")

    @property
    def needs_full_sync(self) -> bool:
        return self.project.last_sync_watermark is None
