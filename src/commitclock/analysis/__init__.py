"""Feature analysis and session-based time attribution."""

from commitclock.analysis.attribution import attribute, attribute_groups, with_work
from commitclock.analysis.service import AnalysisService

__all__ = [
    "AnalysisService",
    "attribute",
    "attribute_groups",
    "with_work",
]
