"""Feature classifier gateway.

Sends a bounded window of commit summaries to the LLM and normalizes the
reply into a list of ``FeatureGroup``. Accepted reply shapes:

- a bare array of group objects
- ``{"features": [...]}``
- a single group object
- an object where some key holds a non-empty array of group objects

A group object carries a name (``featureName`` or ``name``) and a list of
commit ids (``commits`` or ``commitIds``).
"""

import json
from typing import Any, Iterable, List, Optional

import structlog

from commitclock.errors import ClassificationError, ClassificationShapeInvalidError
from commitclock.llm.base import BaseLLMProvider
from commitclock.llm.prompts import PromptTemplates
from commitclock.models.analysis import ClassifierInput, FeatureGroup
from commitclock.models.commit import Commit, first_line
from commitclock.models.config import LLMConfig

logger = structlog.get_logger(__name__)

MERGE_PREFIXES = (
    "Merge pull request",
    "Merge branch",
    "Merge remote-tracking branch",
)

_NAME_KEYS = ("featureName", "name")
_IDS_KEYS = ("commits", "commitIds")


def is_merge_commit(message: str) -> bool:
    return first_line(message).startswith(MERGE_PREFIXES)


def prepare_commit_entries(commits: Iterable[Commit], limit: Optional[int] = None) -> List[ClassifierInput]:
    """Build classifier input from stored commits.

    Merge commits are dropped and each message is cut to its first line.
    Input order is preserved.

    Args:
        commits: Commits in the order they should be presented
        limit: Maximum number of entries to keep

    Returns:
        List of ClassifierInput
    """
    entries: List[ClassifierInput] = []
    for commit in commits:
        if limit is not None and len(entries) >= limit:
            break
        if is_merge_commit(commit.message):
            continue
        entries.append(ClassifierInput(id=commit.sha, summary=first_line(commit.message)))
    return entries


def _pick(obj: dict, keys) -> Any:
    for key in keys:
        if key in obj:
            return obj[key]
    return None


def _is_group_object(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and any(key in obj for key in _NAME_KEYS)
        and any(key in obj for key in _IDS_KEYS)
    )


def _to_group(obj: Any) -> FeatureGroup:
    if not _is_group_object(obj):
        raise ClassificationShapeInvalidError(f"Not a feature group: {obj!r}")

    name = _pick(obj, _NAME_KEYS)
    ids = _pick(obj, _IDS_KEYS)
    if not isinstance(name, str) or not name.strip():
        raise ClassificationShapeInvalidError(f"Feature group has no usable name: {obj!r}")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ClassificationShapeInvalidError(f"Feature group ids must be a list of strings: {obj!r}")

    return FeatureGroup(name=name.strip(), commit_ids=ids)


def normalize_groups(payload: Any) -> List[FeatureGroup]:
    """Normalize a decoded classifier reply into feature groups.

    Raises:
        ClassificationShapeInvalidError: If the reply matches no accepted shape
            or holds no groups
    """
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("features"), list):
        items = payload["features"]
    elif _is_group_object(payload):
        items = [payload]
    elif isinstance(payload, dict):
        items = next(
            (
                value
                for value in payload.values()
                if isinstance(value, list) and value and all(_is_group_object(v) for v in value)
            ),
            None,
        )
        if items is None:
            raise ClassificationShapeInvalidError(
                f"Unrecognized classifier response keys: {sorted(payload.keys())}"
            )
    else:
        raise ClassificationShapeInvalidError(
            f"Unrecognized classifier response type: {type(payload).__name__}"
        )

    if not items:
        raise ClassificationShapeInvalidError("Classifier returned no feature groups")

    return [_to_group(item) for item in items]


class FeatureClassifier:
    """Groups commit summaries into named features using an LLM."""

    def __init__(self, provider: BaseLLMProvider, config: Optional[LLMConfig] = None):
        """Initialize the classifier.

        Args:
            provider: LLM provider used for completions
            config: LLM tunables (loaded from environment if None)
        """
        self.provider = provider
        self.config = config or LLMConfig()
        self.prompts = PromptTemplates()

    async def classify(self, entries: List[ClassifierInput]) -> List[FeatureGroup]:
        """Classify commits into feature groups.

        Args:
            entries: Commits as ``{id, summary}`` pairs

        Returns:
            At least one FeatureGroup for non-empty input, [] for empty input

        Raises:
            ClassificationError: If the provider fails or returns unusable content
            ClassificationShapeInvalidError: If the reply shape is not accepted
        """
        if not entries:
            return []

        logger.info("classifying_commits", count=len(entries))

        try:
            content = await self.provider.complete(
                self.prompts.feature_grouping(entries),
                max_tokens=self.config.max_tokens,
                temperature=self.config.grouping_temperature,
                system=self.prompts.GROUPING_SYSTEM,
                json_mode=True,
            )
        except Exception as e:
            raise ClassificationError(f"Classifier request failed: {e}") from e

        if not content or not content.strip():
            raise ClassificationError("Classifier returned an empty response")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ClassificationError(f"Classifier returned invalid JSON: {e}") from e

        groups = normalize_groups(payload)
        logger.info("commits_classified", groups=len(groups))
        return groups
