"""Project analysis and effort prediction on top of the commit store."""

import json
from typing import List, Optional

import structlog

from commitclock.analysis.attribution import attribute_groups, with_work
from commitclock.errors import PredictionError, RemoteNotFoundError
from commitclock.llm.base import BaseLLMProvider
from commitclock.llm.classifier import FeatureClassifier, prepare_commit_entries
from commitclock.llm.prompts import PromptTemplates
from commitclock.models.analysis import EffortPrediction, FeatureAttribution, ProjectAnalysis
from commitclock.models.config import AttributionConfig, LLMConfig
from commitclock.storage.commit_store import CommitStore

logger = structlog.get_logger(__name__)


class AnalysisService:
    """Groups stored commits into features and estimates their effort."""

    def __init__(
        self,
        store: CommitStore,
        provider: BaseLLMProvider,
        attribution_config: Optional[AttributionConfig] = None,
        llm_config: Optional[LLMConfig] = None,
    ):
        """Initialize the analysis service.

        Args:
            store: Local commit store
            provider: LLM provider for grouping and prediction
            attribution_config: Attribution tunables (loaded from environment if None)
            llm_config: LLM tunables (loaded from environment if None)
        """
        self.store = store
        self.provider = provider
        self.attribution_config = attribution_config or AttributionConfig()
        self.llm_config = llm_config or LLMConfig()
        self.classifier = FeatureClassifier(provider, self.llm_config)
        self.prompts = PromptTemplates()

    async def analyze_project(self, owner: str, repo: str) -> ProjectAnalysis:
        """Group a project's stored commits and attribute work to each group.

        Only the oldest ``max_commits_per_analysis`` commits are considered.

        Raises:
            RemoteNotFoundError: If the project has never been synced
            ClassificationError: If the classifier fails or replies in an unknown shape
        """
        full_name = f"{owner}/{repo}"
        project = await self.store.get_project_by_name(full_name)
        if project is None:
            raise RemoteNotFoundError(f"Project {full_name} has not been synced yet")

        limit = self.attribution_config.max_commits_per_analysis
        commits = await self.store.list_by_project(project.id, order="asc", limit=limit)
        entries = prepare_commit_entries(commits, limit)

        log = logger.bind(project=full_name)
        if not entries:
            log.info("analysis_skipped_no_commits", stored=len(commits))
            return ProjectAnalysis(project=project, commits=commits, features=[])

        groups = await self.classifier.classify(entries)
        features = attribute_groups(groups, commits, self.attribution_config)

        log.info("project_analyzed", commits=len(entries), features=len(features))
        return ProjectAnalysis(project=project, commits=commits, features=features)

    async def predict_effort(self, owner: str, repo: str, description: str) -> EffortPrediction:
        """Predict the actual work time of a new feature from project history.

        Raises:
            RemoteNotFoundError: If the project has never been synced
            ClassificationError: If grouping the history fails
            PredictionError: If the prediction reply cannot be used
        """
        analysis = await self.analyze_project(owner, repo)
        history = with_work(analysis.features)

        if not history:
            return EffortPrediction(
                predicted_hours=0.0,
                reason="No historical features with recorded work time to base a prediction on.",
            )

        return await self._predict(history, description)

    async def _predict(self, history: List[FeatureAttribution], description: str) -> EffortPrediction:
        try:
            content = await self.provider.complete(
                self.prompts.effort_prediction(history, description),
                max_tokens=self.llm_config.max_tokens,
                temperature=self.llm_config.prediction_temperature,
                system=self.prompts.PREDICTION_SYSTEM,
                json_mode=True,
            )
        except Exception as e:
            raise PredictionError(f"Prediction request failed: {e}") from e

        if not content or not content.strip():
            raise PredictionError("Prediction response was empty")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise PredictionError(f"Prediction response is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise PredictionError("Prediction response is not a JSON object")

        hours = payload.get("predictedTimeHours")
        reason = payload.get("reason")
        if isinstance(hours, bool) or not isinstance(hours, (int, float)) or hours < 0:
            raise PredictionError(f"Invalid predictedTimeHours: {hours!r}")
        if not isinstance(reason, str):
            raise PredictionError(f"Invalid reason: {reason!r}")

        logger.info("effort_predicted", hours=hours, history=len(history))
        return EffortPrediction(predicted_hours=float(hours), reason=reason)
