"""Prompt templates for feature grouping and effort prediction."""

import json
from typing import List

from commitclock.models.analysis import ClassifierInput, FeatureAttribution


class PromptTemplates:
    """Collection of prompt templates sent to the LLM."""

    GROUPING_SYSTEM = (
        "You are an expert software development analyst. Your specialty is "
        "identifying distinct features and work streams from commit histories. "
        "You always create multiple groups and never put every commit into a "
        "single feature."
    )

    PREDICTION_SYSTEM = "You are an assistant that predicts software development time."

    @staticmethod
    def feature_grouping(entries: List[ClassifierInput]) -> str:
        """Generate prompt for grouping commits into features.

        Args:
            entries: Commits as ``{id, summary}`` pairs

        Returns:
            Formatted prompt
        """
        commits_json = json.dumps([entry.model_dump() for entry in entries], indent=2)

        return f"""Analyze these commit summaries and group them into distinct features.

Requirements:
1. Create at least 3 groups when the history allows it
2. Keep new features, bug fixes, refactoring, UI changes, setup, documentation and tests apart
3. Split a large group into sub-features rather than returning one group
4. Use only the commit ids given below

Commits to analyze:
{commits_json}

Respond with a JSON object in exactly this format:
{{
  "features": [
    {{"featureName": "Initialize project setup", "commits": ["sha1", "sha2"]}},
    {{"featureName": "Implement user authentication", "commits": ["sha3"]}}
  ]
}}"""

    @staticmethod
    def effort_prediction(features: List[FeatureAttribution], description: str) -> str:
        """Generate prompt for predicting the work time of a new feature.

        Args:
            features: Historical features with attributed work
            description: Free-text description of the new feature

        Returns:
            Formatted prompt
        """
        history = [
            {
                "featureName": feature.name,
                "timeSpentHours": round(feature.actual_work_hours, 2),
                "totalElapsedHours": round(feature.total_elapsed_hours, 2),
            }
            for feature in features
        ]
        history_json = json.dumps(history, indent=2)

        return f"""Based on the following historical feature development times:

{history_json}

Each feature has two measurements:
- "timeSpentHours": actual work time (session-based, excluding breaks)
- "totalElapsedHours": total elapsed time (first to last commit)

Predict the actual work time in hours for a new feature described as: "{description}".

Consider similar features, the complexity of the description, and use
"timeSpentHours" as the basis for the prediction.

Respond with a JSON object in exactly this format:
{{
  "predictedTimeHours": 8.5,
  "reason": "Based on similar features like [feature name] which took [X] hours of actual work."
}}"""
