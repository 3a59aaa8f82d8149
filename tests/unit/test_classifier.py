"""Tests for the feature classifier gateway."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from commitclock.errors import ClassificationError, ClassificationShapeInvalidError
from commitclock.llm.classifier import FeatureClassifier, normalize_groups, prepare_commit_entries
from commitclock.models import ClassifierInput, FeatureGroup, LLMConfig
from factories import make_commit


class TestPrepareCommitEntries:
    """Test classifier input preparation."""

    def test_first_line_only(self):
        commits = [make_commit("a", message="Add login page\n\nLong description")]

        entries = prepare_commit_entries(commits)

        assert entries == [ClassifierInput(id="a", summary="Add login page")]

    @pytest.mark.parametrize(
        "message",
        [
            "Merge pull request #12 from octo/feature",
            "Merge branch 'main' into feature",
            "Merge remote-tracking branch 'origin/main'",
        ],
    )
    def test_merge_commits_are_dropped(self, message):
        commits = [make_commit("m", message=message), make_commit("a", 1, message="Fix bug")]

        entries = prepare_commit_entries(commits)

        assert [e.id for e in entries] == ["a"]

    def test_limit_keeps_input_order(self):
        commits = [make_commit(sha, i) for i, sha in enumerate("abcde")]

        entries = prepare_commit_entries(commits, limit=3)

        assert [e.id for e in entries] == ["a", "b", "c"]


class TestNormalizeGroups:
    """Test the accepted reply shapes."""

    def test_bare_array(self):
        payload = [{"featureName": "Auth", "commits": ["a", "b"]}]

        assert normalize_groups(payload) == [FeatureGroup(name="Auth", commit_ids=["a", "b"])]

    def test_features_wrapper(self):
        payload = {
            "features": [
                {"featureName": "Auth", "commits": ["a"]},
                {"featureName": "UI", "commits": ["b"]},
            ]
        }

        groups = normalize_groups(payload)

        assert [g.name for g in groups] == ["Auth", "UI"]

    def test_single_group_object(self):
        payload = {"featureName": "Auth", "commits": ["a"]}

        assert normalize_groups(payload) == [FeatureGroup(name="Auth", commit_ids=["a"])]

    def test_arbitrary_wrapper_key(self):
        payload = {"groups": [{"name": "Auth", "commitIds": ["a", "b"]}], "note": "ok"}

        groups = normalize_groups(payload)

        assert groups == [FeatureGroup(name="Auth", commit_ids=["a", "b"])]

    def test_empty_group_ids_are_allowed(self):
        groups = normalize_groups([{"featureName": "Docs", "commits": []}])

        assert groups[0].commit_ids == []

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"features": []},
            {"result": "no groups"},
            {"groups": [{"title": "Auth"}]},
            "Auth: a, b",
            42,
            [{"featureName": "Auth"}],
            [{"featureName": "Auth", "commits": "a,b"}],
            [{"featureName": "Auth", "commits": [1, 2]}],
            [{"featureName": "", "commits": ["a"]}],
        ],
    )
    def test_invalid_shapes(self, payload):
        with pytest.raises(ClassificationShapeInvalidError):
            normalize_groups(payload)


class TestFeatureClassifier:
    """Test the classifier with a mocked provider."""

    @pytest.fixture
    def provider(self):
        provider = MagicMock()
        provider.complete = AsyncMock()
        return provider

    @pytest.fixture
    def entries(self):
        return [ClassifierInput(id="a", summary="Add login"), ClassifierInput(id="b", summary="Fix login")]

    @pytest.mark.asyncio
    async def test_empty_input_skips_provider(self, provider):
        classifier = FeatureClassifier(provider, LLMConfig())

        assert await classifier.classify([]) == []
        provider.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_classify_requests_json(self, provider, entries):
        provider.complete.return_value = json.dumps(
            {"features": [{"featureName": "Login", "commits": ["a", "b"]}]}
        )
        classifier = FeatureClassifier(provider, LLMConfig(grouping_temperature=0.3))

        groups = await classifier.classify(entries)

        assert groups == [FeatureGroup(name="Login", commit_ids=["a", "b"])]
        kwargs = provider.complete.call_args.kwargs
        assert kwargs["json_mode"] is True
        assert kwargs["temperature"] == 0.3
        assert '"id": "a"' in provider.complete.call_args.args[0]

    @pytest.mark.asyncio
    async def test_empty_response(self, provider, entries):
        provider.complete.return_value = ""
        classifier = FeatureClassifier(provider, LLMConfig())

        with pytest.raises(ClassificationError):
            await classifier.classify(entries)

    @pytest.mark.asyncio
    async def test_invalid_json(self, provider, entries):
        provider.complete.return_value = "not json"
        classifier = FeatureClassifier(provider, LLMConfig())

        with pytest.raises(ClassificationError):
            await classifier.classify(entries)

    @pytest.mark.asyncio
    async def test_unknown_shape_is_not_retried(self, provider, entries):
        provider.complete.return_value = json.dumps({"answer": 3})
        classifier = FeatureClassifier(provider, LLMConfig())

        with pytest.raises(ClassificationShapeInvalidError):
            await classifier.classify(entries)

        assert provider.complete.call_count == 1

    @pytest.mark.asyncio
    async def test_provider_failure(self, provider, entries):
        provider.complete.side_effect = RuntimeError("API down")
        classifier = FeatureClassifier(provider, LLMConfig())

        with pytest.raises(ClassificationError, match="API down"):
            await classifier.classify(entries)
