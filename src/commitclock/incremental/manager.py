"""Sync controller - keeps the local commit store in step with remote history."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Set

import structlog

from commitclock.errors import (
    AuthenticationMissingError,
    RemoteApiError,
    RemoteNotFoundError,
    SyncError,
)
from commitclock.incremental.delta import DeltaDetector
from commitclock.incremental.state import ProjectSyncStatus, classify_state, plan_sync
from commitclock.models.analysis import SyncMode, SyncPlan, SyncStats
from commitclock.models.commit import Commit, CommitSummary, Project
from commitclock.models.config import SyncConfig
from commitclock.remote.github_client import GitHubClient
from commitclock.storage.commit_store import CommitStore, InsertResult

logger = structlog.get_logger(__name__)


class SyncController:
    """Mirrors a project's remote commit history into the commit store.

    A pass never re-stores a known commit and never advances the watermark
    unless the pass provably saw all history after it. Overlapping passes for
    the same project are safe without a lock: inserts are first-writer-wins
    and the watermark only moves forward.
    """

    def __init__(
        self,
        client: GitHubClient,
        store: CommitStore,
        config: Optional[SyncConfig] = None,
    ):
        """Initialize the sync controller.

        Args:
            client: Remote history client
            store: Local commit store
            config: Sync tunables (loaded from environment if None)
        """
        self.client = client
        self.store = store
        self.config = config or SyncConfig()
        self.detector = DeltaDetector(store)

    async def sync_project(
        self,
        owner: str,
        repo: str,
        mode: SyncMode = SyncMode.INCREMENTAL,
        now: Optional[datetime] = None,
    ) -> SyncStats:
        """Run one sync pass for ``owner/repo``.

        Args:
            owner: Repository owner on the remote host
            repo: Repository name
            mode: INCREMENTAL honors freshness and walks the pages after the
                watermark; FULL walks every page without a lower bound
            now: Pass start instant (defaults to the current time); becomes
                the new watermark when the pass is complete

        Returns:
            SyncStats for the pass

        Raises:
            AuthenticationMissingError: If the remote rejects the credential
            RemoteNotFoundError: If the project cannot be resolved remotely
            SyncError: If the first page of a brand-new project fails
        """
        started_at = now or datetime.now(timezone.utc)
        log = logger.bind(project=f"{owner}/{repo}", mode=mode.value)

        remote = await asyncio.to_thread(self.client.get_repository, owner, repo)
        project = await self.store.get_project(remote.id)
        is_new = project is None
        watermark = project.last_sync_watermark if project else None

        state = classify_state(watermark, started_at, self.config.freshness_threshold_seconds)
        plan = plan_sync(state, mode)
        log.info("sync_planned", state=state.value, plan=plan.value)

        stats = SyncStats(
            mode=mode,
            plan=plan,
            watermark=watermark,
            needs_full_sync=watermark is None,
        )
        if plan == SyncPlan.NOOP:
            return stats

        since = watermark if plan == SyncPlan.INCREMENTAL else None
        # INITIAL reads one page; INCREMENTAL and FULL walk until a short page.
        max_pages = 1 if plan == SyncPlan.INITIAL else self.config.max_full_sync_pages

        try:
            page = await self._fetch_page(owner, repo, since, 1)
        except (AuthenticationMissingError, RemoteNotFoundError):
            raise
        except RemoteApiError as exc:
            if is_new:
                log.error("initial_page_failed", error=str(exc))
                raise SyncError(
                    f"Could not fetch the first page of history for new project {owner}/{repo}: {exc}"
                ) from exc
            log.warning("sync_listing_failed", page=1, error=str(exc))
            stats.partial = True
            stats.error = str(exc)
            return stats

        project = await self.store.ensure_project(remote.id, remote.full_name, remote.name)

        seen: Set[str] = set()
        page_number = 1
        complete = False

        while True:
            stats.pages_fetched += 1
            stats.total_fetched += len(page)
            await self._persist_page(project, owner, repo, page, seen, stats)

            if len(page) < self.config.page_size:
                complete = True
                break
            if page_number >= max_pages:
                if plan != SyncPlan.INITIAL:
                    log.warning("sync_page_limit_reached", pages=page_number)
                    stats.partial = True
                    stats.error = (
                        f"Stopped after {page_number} page(s) of {self.config.page_size} commits; "
                        "older history was not fetched (raise SYNC_MAX_FULL_SYNC_PAGES)"
                    )
                break

            page_number += 1
            try:
                page = await self._fetch_page(owner, repo, since, page_number)
            except (AuthenticationMissingError, RemoteNotFoundError):
                raise
            except RemoteApiError as exc:
                log.warning("sync_listing_failed", page=page_number, error=str(exc))
                stats.partial = True
                stats.error = str(exc)
                break

        if stats.failed:
            stats.partial = True

        # Sequenced after every insert of this pass has completed.
        if complete and not stats.partial:
            stats.watermark_advanced = await self.store.set_watermark(project.id, started_at)

        stats.watermark = await self.store.get_watermark(project.id)
        stats.needs_full_sync = stats.watermark is None

        log.info(
            "sync_completed",
            fetched=stats.total_fetched,
            saved=stats.saved,
            skipped=stats.skipped,
            duplicates=stats.duplicates,
            failed=stats.failed,
            pages=stats.pages_fetched,
            watermark_advanced=stats.watermark_advanced,
            partial=stats.partial,
        )
        return stats

    async def get_status(
        self, owner: str, repo: str, now: Optional[datetime] = None
    ) -> Optional[ProjectSyncStatus]:
        """Report the local sync state of a project without calling the remote."""
        return await get_status(self.store, owner, repo, self.config, now)

    async def _fetch_page(
        self, owner: str, repo: str, since: Optional[datetime], page: int
    ) -> List[CommitSummary]:
        logger.debug("fetching_commit_page", project=f"{owner}/{repo}", page=page, since=since)
        return await asyncio.to_thread(
            self.client.list_commits,
            owner,
            repo,
            since=since,
            per_page=self.config.page_size,
            page=page,
        )

    async def _persist_page(
        self,
        project: Project,
        owner: str,
        repo: str,
        page: List[CommitSummary],
        seen: Set[str],
        stats: SyncStats,
    ) -> None:
        """Store every commit of ``page`` not already in the store."""
        delta = await self.detector.split(page, seen)
        stats.skipped += len(delta.known)
        stats.duplicates += delta.duplicates

        batch_size = self.config.detail_batch_size
        for i in range(0, len(delta.new), batch_size):
            batch = delta.new[i : i + batch_size]
            tasks = [
                asyncio.to_thread(self.client.get_commit_detail, owner, repo, summary.sha)
                for summary in batch
            ]
            batch_results = await asyncio.gather(*tasks, return_exceptions=True)

            for summary, result in zip(batch, batch_results):
                if isinstance(result, AuthenticationMissingError):
                    raise result
                if isinstance(result, BaseException) and not isinstance(result, Exception):
                    raise result
                if isinstance(result, Exception):
                    logger.warning(
                        "commit_detail_fetch_failed",
                        project=project.full_name,
                        sha=summary.sha,
                        error=str(result),
                    )
                    stats.failed += 1
                    stats.failed_shas.append(summary.sha)
                    continue

                outcome = await self.store.insert(Commit.from_detail(result, project.id))
                if outcome == InsertResult.INSERTED:
                    stats.saved += 1
                else:
                    stats.skipped += 1


async def get_status(
    store: CommitStore,
    owner: str,
    repo: str,
    config: Optional[SyncConfig] = None,
    now: Optional[datetime] = None,
) -> Optional[ProjectSyncStatus]:
    """Report the local sync state of a project from the store alone.

    Returns:
        ProjectSyncStatus, or None if the project has never been synced
    """
    config = config or SyncConfig()
    project = await store.get_project_by_name(f"{owner}/{repo}")
    if project is None:
        return None

    checked_at = now or datetime.now(timezone.utc)
    return ProjectSyncStatus(
        project=project,
        state=classify_state(
            project.last_sync_watermark,
            checked_at,
            config.freshness_threshold_seconds,
        ),
        commits_stored=await store.count_by_project(project.id),
        checked_at=checked_at,
    )
