"""Data models for commit sync and time attribution."""

from commitclock.models.analysis import (
    Attribution,
    ClassifierInput,
    EffortPrediction,
    FeatureAttribution,
    FeatureGroup,
    ProjectAnalysis,
    SyncMode,
    SyncPlan,
    SyncStats,
)
from commitclock.models.commit import Commit, CommitDetail, CommitSummary, Project, RemoteRepository
from commitclock.models.config import AttributionConfig, LLMConfig, Settings, SyncConfig

__all__ = [
    "Commit",
    "CommitDetail",
    "CommitSummary",
    "Project",
    "RemoteRepository",
    "SyncMode",
    "SyncPlan",
    "SyncStats",
    "ClassifierInput",
    "FeatureGroup",
    "Attribution",
    "FeatureAttribution",
    "ProjectAnalysis",
    "EffortPrediction",
    "Settings",
    "SyncConfig",
    "AttributionConfig",
    "LLMConfig",
]
