"""Models for sync results, feature groups and time attribution."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from commitclock.models.commit import Commit, Project


class SyncMode(str, Enum):
    """Sync mode requested by the caller."""

    INCREMENTAL = "incremental"
    FULL = "full"


class SyncPlan(str, Enum):
    """What a sync pass actually does once the project state is known."""

    NOOP = "noop"
    INITIAL = "initial"
    INCREMENTAL = "incremental"
    FULL = "full"


class SyncStats(BaseModel):
    """Outcome of one sync pass."""

    mode: SyncMode = Field(..., description="Mode requested by the caller")
    plan: SyncPlan = Field(..., description="Plan executed for this pass")
    total_fetched: int = Field(0, description="Summaries returned by the remote")
    saved: int = Field(0, description="Commits newly stored")
    skipped: int = Field(0, description="Commits already present in the store")
    failed: int = Field(0, description="Commits whose detail fetch failed")
    duplicates: int = Field(0, description="Summaries listed more than once within the pass")
    failed_shas: List[str] = Field(default_factory=list, description="SHAs whose detail fetch failed")
    pages_fetched: int = Field(0, description="Listing pages fetched")
    watermark_advanced: bool = Field(False, description="Whether the watermark moved")
    watermark: Optional[datetime] = Field(None, description="Watermark after the pass")
    partial: bool = Field(False, description="Whether the pass finished with recoverable failures")
    needs_full_sync: bool = Field(False, description="Whether the project still has no watermark")
    error: Optional[str] = Field(None, description="Reason a known project's pass stopped early")


class ClassifierInput(BaseModel):
    """One commit as presented to the feature classifier."""

    id: str = Field(..., description="Commit SHA")
    summary: str = Field(..., description="First line of the commit message")


class FeatureGroup(BaseModel):
    """A named bag of commit ids proposed by the classifier."""

    name: str = Field(..., description="Feature name")
    commit_ids: List[str] = Field(default_factory=list, description="Commit SHAs in the group")


class Attribution(BaseModel):
    """Actual-work estimate for one set of commits."""

    actual_work_seconds: float = Field(0.0, description="Session-based work estimate")
    total_elapsed_seconds: float = Field(0.0, description="First to last commit span")
    commits: List[Commit] = Field(default_factory=list, description="Commits sorted by authored_at")


class FeatureAttribution(Attribution):
    """Attribution result for one named feature group."""

    name: str = Field(..., description="Feature name")

    @property
    def actual_work_hours(self) -> float:
        return self.actual_work_seconds / 3600

    @property
    def total_elapsed_hours(self) -> float:
        return self.total_elapsed_seconds / 3600


class ProjectAnalysis(BaseModel):
    """Grouped features and their work estimates for one project."""

    project: Project
    commits: List[Commit] = Field(default_factory=list, description="Commits considered")
    features: List[FeatureAttribution] = Field(default_factory=list)


class EffortPrediction(BaseModel):
    """Predicted actual-work time for a new feature description."""

    predicted_hours: float = Field(..., ge=0, description="Predicted actual work time in hours")
    reason: str = Field(..., description="Explanation returned by the model")
