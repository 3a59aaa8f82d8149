"""Tests for the command-line interface."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from structlog.testing import capture_logs
from typer.testing import CliRunner

from commitclock.cli import EXIT_AUTH, EXIT_CONFIG, EXIT_PARTIAL, EXIT_REMOTE, app
from commitclock.errors import DetailFetchFailedError, RemoteApiError, RemoteNotFoundError
from commitclock.models import RemoteRepository
from factories import make_detail, make_summary

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """Point the store at a temp file and keep log output out of the results."""
    monkeypatch.setenv("STORE_DATABASE_PATH", str(tmp_path / "clock.db"))
    monkeypatch.setenv("GITHUB_TOKEN", "test-token")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with patch("commitclock.cli.configure_logging"), capture_logs():
        yield


def _detail(owner, repo, sha):
    return make_detail(sha, 1 if sha.startswith("b") else 0)


@pytest.fixture
def github():
    with patch("commitclock.cli.GitHubClient") as client_cls:
        client = client_cls.return_value
        client.get_repository.return_value = RemoteRepository(id="42", name="widgets", full_name="octo/widgets")
        client.list_commits.return_value = [make_summary("b" * 40, 1), make_summary("a" * 40, 0)]
        client.get_commit_detail.side_effect = _detail
        yield client


@pytest.fixture
def llm():
    with patch("commitclock.cli.OpenAIProvider") as provider_cls:
        provider = MagicMock()
        provider.complete = AsyncMock()
        provider_cls.return_value = provider
        yield provider


def test_sync_without_token(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "")

    result = runner.invoke(app, ["sync", "octo/widgets"])

    assert result.exit_code == EXIT_AUTH
    assert "GITHUB_TOKEN" in result.output


def test_bad_project_argument(github):
    result = runner.invoke(app, ["sync", "widgets"])

    assert result.exit_code == EXIT_CONFIG
    assert "OWNER/REPO" in result.output


def test_invalid_sync_config(github, monkeypatch):
    monkeypatch.setenv("SYNC_PAGE_SIZE", "500")

    result = runner.invoke(app, ["sync", "octo/widgets"])

    assert result.exit_code == EXIT_CONFIG


def test_sync_saves_commits(github):
    result = runner.invoke(app, ["sync", "octo/widgets"])

    assert result.exit_code == 0
    assert "Saved: 2" in result.output
    assert "Sync complete" in result.output


def test_second_sync_is_noop(github):
    runner.invoke(app, ["sync", "octo/widgets"])

    result = runner.invoke(app, ["sync", "octo/widgets"])

    assert result.exit_code == 0
    assert "Up to date" in result.output


def test_sync_partial_with_strict(github):
    def detail(owner, repo, sha):
        if sha.startswith("b"):
            raise DetailFetchFailedError(sha, "500")
        return _detail(owner, repo, sha)

    github.get_commit_detail.side_effect = detail

    lenient = runner.invoke(app, ["sync", "octo/widgets"])
    strict = runner.invoke(app, ["sync", "octo/widgets", "--strict"])

    assert lenient.exit_code == 0
    assert "Partial sync" in lenient.output
    assert strict.exit_code == EXIT_PARTIAL


def test_sync_listing_failure_on_later_page(github, monkeypatch):
    monkeypatch.setenv("SYNC_PAGE_SIZE", "2")

    def list_commits(owner, repo, since=None, until=None, per_page=100, page=1):
        if page == 1:
            return [make_summary("b" * 40, 1), make_summary("a" * 40, 0)]
        raise RemoteApiError("page 2 timed out")

    github.list_commits.side_effect = list_commits

    result = runner.invoke(app, ["sync", "octo/widgets", "--full"])

    assert result.exit_code == 0
    assert "Partial sync: page 2 timed out" in result.output
    assert "commit(s) failed" not in result.output


def test_sync_unknown_repository(github):
    github.get_repository.side_effect = RemoteNotFoundError("GitHub resource not found")

    result = runner.invoke(app, ["sync", "octo/missing"])

    assert result.exit_code == EXIT_REMOTE


def test_status_before_and_after_sync(github):
    before = runner.invoke(app, ["status", "octo/widgets"])
    runner.invoke(app, ["sync", "octo/widgets"])
    after = runner.invoke(app, ["status", "octo/widgets"])

    assert before.exit_code == 0
    assert "not been synced" in before.output
    assert after.exit_code == 0
    assert "fresh" in after.output
    assert "Commits stored: 2" in after.output


def test_commits_lists_newest_first(github):
    result = runner.invoke(app, ["commits", "octo/widgets", "--limit", "1"])

    assert result.exit_code == 0
    assert "bbbbbbbb" in result.output
    assert "aaaaaaaa" not in result.output


def test_repos(github):
    github.list_user_repositories.return_value = [
        RemoteRepository(id="1", name="widgets", full_name="octo/widgets", language="Python")
    ]

    result = runner.invoke(app, ["repos"])

    assert result.exit_code == 0
    assert "octo/widgets" in result.output


def test_analyze_requires_openai_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")

    result = runner.invoke(app, ["analyze", "octo/widgets"])

    assert result.exit_code == EXIT_CONFIG


def test_analyze_unsynced_project(llm):
    result = runner.invoke(app, ["analyze", "octo/widgets"])

    assert result.exit_code == EXIT_REMOTE


def test_analyze_json(github, llm):
    runner.invoke(app, ["sync", "octo/widgets"])
    llm.complete.return_value = json.dumps(
        {"features": [{"featureName": "Widgets", "commits": ["a" * 40, "b" * 40]}]}
    )

    result = runner.invoke(app, ["analyze", "octo/widgets", "--json"])

    assert result.exit_code == 0
    features = json.loads(result.stdout)
    assert features[0]["featureName"] == "Widgets"
    assert features[0]["actualWorkHours"] == 1.0


def test_analyze_bad_shape_exit_code(github, llm):
    runner.invoke(app, ["sync", "octo/widgets"])
    llm.complete.return_value = json.dumps({"oops": True})

    result = runner.invoke(app, ["analyze", "octo/widgets"])

    assert result.exit_code == 5


def test_predict(github, llm):
    runner.invoke(app, ["sync", "octo/widgets"])
    llm.complete.side_effect = [
        json.dumps([{"featureName": "Widgets", "commits": ["a" * 40, "b" * 40]}]),
        json.dumps({"predictedTimeHours": 3.0, "reason": "Like Widgets"}),
    ]

    result = runner.invoke(app, ["predict", "octo/widgets", "Add gadgets"])

    assert result.exit_code == 0
    assert "3.0 h" in result.output
    assert "Like Widgets" in result.output
