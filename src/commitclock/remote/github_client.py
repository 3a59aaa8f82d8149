"""GitHub REST API client for commit history retrieval."""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import requests
import structlog

from commitclock.errors import (
    AuthenticationMissingError,
    DetailFetchFailedError,
    RemoteApiError,
    RemoteNotFoundError,
)
from commitclock.models.commit import CommitDetail, CommitSummary, RemoteRepository

logger = structlog.get_logger(__name__)

JsonPayload = Union[Dict[str, Any], List[Any]]


def format_datetime(value: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO-8601 timestamps into timezone-aware UTC datetimes."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class GitHubClient:
    """Small, typed client for the GitHub commits API."""

    _API_VERSION = "2022-11-28"
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(
        self,
        token: str,
        timeout_seconds: int = 30,
        base_url: str = "https://api.github.com",
    ) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            token: GitHub access token
            timeout_seconds: Per-request timeout in seconds
            base_url: API root, overridable for GitHub Enterprise

        Raises:
            AuthenticationMissingError: If the token is empty
        """
        if not token or not token.strip():
            raise AuthenticationMissingError(
                "Missing GitHub access token. Set the 'GITHUB_TOKEN' environment variable."
            )

        self._timeout_seconds = timeout_seconds
        self._base_url = base_url.rstrip("/")

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token.strip()}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": self._API_VERSION,
            }
        )

    def _build_url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _is_rate_limited(self, response: requests.Response) -> bool:
        return response.status_code == 429 or (
            response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        )

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> JsonPayload:
        """Execute a GET request with retry logic for rate limits and 5xx responses.

        Raises:
            AuthenticationMissingError: On 401, or 403 that is not a rate limit.
            RemoteNotFoundError: On 404.
            RemoteApiError: If the request repeatedly fails, returns another
                HTTP >= 400, or does not return valid JSON.
        """
        url = self._build_url(path)
        query = dict(params or {})
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=query, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise RemoteApiError(f"GitHub request failed after retries: GET {url}") from exc
                logger.debug("github_request_retry", url=url, attempt=attempt, error=str(exc))
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = self._is_rate_limited(response) or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.debug("github_request_retry", url=url, attempt=attempt, status=status_code)
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code == 401 or (status_code == 403 and not self._is_rate_limited(response)):
                raise AuthenticationMissingError(
                    f"GitHub rejected the access token: GET {url} returned {status_code}"
                )

            if status_code == 404:
                raise RemoteNotFoundError(f"GitHub resource not found: GET {url}")

            if status_code >= 400:
                raise RemoteApiError(
                    f"GitHub API request failed: GET {url} returned {status_code} - {response.text}"
                )

            try:
                return response.json()
            except ValueError as exc:
                raise RemoteApiError(f"GitHub API returned invalid JSON: GET {url}") from exc

        raise RemoteApiError(f"GitHub request failed after retries: GET {url}") from last_error

    def _get_object(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = self._get_json(path, params)
        if not isinstance(payload, dict):
            raise RemoteApiError(f"GitHub API returned unexpected payload shape: GET {path}")
        return payload

    def _get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        payload = self._get_json(path, params)
        if not isinstance(payload, list):
            raise RemoteApiError(f"GitHub API returned unexpected payload shape: GET {path}")
        return payload

    def _to_repository(self, item: Dict[str, Any]) -> RemoteRepository:
        repo_id = item.get("id")
        name = item.get("name")
        full_name = item.get("full_name")
        if repo_id is None or not name or not full_name:
            raise RemoteApiError(f"GitHub repository payload is missing required fields: {item}")

        return RemoteRepository(
            id=str(repo_id),
            name=str(name),
            full_name=str(full_name),
            description=item.get("description"),
            private=bool(item.get("private", False)),
            language=item.get("language"),
            updated_at=parse_datetime(item.get("updated_at")),
        )

    def get_repository(self, owner: str, repo: str) -> RemoteRepository:
        """Resolve ``owner/repo`` to the repository record on GitHub.

        Raises:
            RemoteNotFoundError: If the repository does not exist or is not visible.
        """
        return self._to_repository(self._get_object(f"repos/{owner}/{repo}"))

    def list_user_repositories(self, per_page: int = 100) -> List[RemoteRepository]:
        """List repositories the authenticated user owns or collaborates on."""
        items = self._get_list(
            "user/repos",
            params={
                "per_page": per_page,
                "sort": "updated",
                "affiliation": "owner,collaborator",
            },
        )
        return [self._to_repository(item) for item in items]

    def list_commits(
        self,
        owner: str,
        repo: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[CommitSummary]:
        """List one page of commit summaries, newest first.

        ``since`` and ``until`` are only sent when provided.
        """
        params: Dict[str, Any] = {"per_page": per_page, "page": page}
        if since is not None:
            params["since"] = format_datetime(since)
        if until is not None:
            params["until"] = format_datetime(until)

        items = self._get_list(f"repos/{owner}/{repo}/commits", params=params)
        summaries: List[CommitSummary] = []

        for item in items:
            sha = item.get("sha")
            if not sha:
                raise RemoteApiError(
                    f"GitHub commit payload is missing its sha: repo={owner}/{repo}, payload={item}"
                )
            commit = item.get("commit") or {}
            author = commit.get("author") or {}
            summaries.append(
                CommitSummary(
                    sha=str(sha),
                    message=commit.get("message") or "",
                    authored_at=parse_datetime(author.get("date")),
                )
            )

        return summaries

    def get_commit_detail(self, owner: str, repo: str, sha: str) -> CommitDetail:
        """Fetch change statistics for a single commit.

        Raises:
            AuthenticationMissingError: If the token was rejected.
            DetailFetchFailedError: For any other failure of this one commit.
        """
        try:
            payload = self._get_object(f"repos/{owner}/{repo}/commits/{sha}")
        except (RemoteApiError, RemoteNotFoundError) as exc:
            raise DetailFetchFailedError(sha, str(exc)) from exc

        commit = payload.get("commit") or {}
        author = commit.get("author") or {}
        committer = commit.get("committer") or {}
        stats = payload.get("stats") or {}
        files = payload.get("files") or []

        authored_at = (
            parse_datetime(author.get("date"))
            or parse_datetime(committer.get("date"))
            or datetime.now(timezone.utc)
        )

        return CommitDetail(
            sha=str(payload.get("sha") or sha),
            message=commit.get("message") or "",
            authored_at=authored_at,
            additions=int(stats.get("additions") or 0),
            deletions=int(stats.get("deletions") or 0),
            files_changed=len(files),
        )
