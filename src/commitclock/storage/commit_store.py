"""SQLite-backed commit store with per-project sync watermarks."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

import aiosqlite
import structlog

from commitclock.models.commit import Commit, Project
from commitclock.storage.config import StoreConfig
from commitclock.storage.schema import run_migrations

logger = structlog.get_logger(__name__)


class InsertResult(str, Enum):
    """Outcome of inserting a commit. A duplicate id is not an error."""

    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


def _to_epoch(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _from_epoch(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class CommitStore:
    """Durable keyed record of commits per project.

    Commit writes are keyed by sha and never touch other rows, so concurrent
    inserts need no transaction beyond the primary-key constraint. Watermark
    writes are keyed by project and only ever move forward.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db

    @classmethod
    async def open(cls, config: Optional[StoreConfig] = None) -> "CommitStore":
        """Connect to the configured database and run migrations.

        Args:
            config: Store configuration. If None, loads from environment.

        Returns:
            A ready-to-use CommitStore
        """
        config = config or StoreConfig()
        config.ensure_parent_dir()

        db = await aiosqlite.connect(str(config.database_path))
        db.row_factory = aiosqlite.Row
        if not config.is_memory:
            await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA foreign_keys=ON")
        await db.execute(f"PRAGMA busy_timeout={int(config.busy_timeout_ms)}")
        logger.info("store_opened", path=str(config.database_path))

        store = cls(db)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Create the schema if needed."""
        await run_migrations(self.db)

    async def close(self) -> None:
        await self.db.close()

    async def __aenter__(self) -> "CommitStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ============================================================================
    # Projects
    # ============================================================================

    async def ensure_project(self, external_id: str, full_name: str, display_name: str) -> Project:
        """Create the project record if it does not exist yet.

        A renamed repository keeps its record (keyed by ``external_id``) and
        only has its names refreshed.
        """
        now = datetime.now(timezone.utc).isoformat()
        await self.db.execute(
            """INSERT INTO projects (external_id, full_name, display_name, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(external_id) DO UPDATE SET
                full_name=excluded.full_name,
                display_name=excluded.display_name
            """,
            (external_id, full_name, display_name, now),
        )
        await self.db.commit()

        project = await self.get_project(external_id)
        if project is None:
            raise RuntimeError(f"Project {external_id} vanished after insert")
        return project

    async def get_project(self, external_id: str) -> Optional[Project]:
        async with self.db.execute(
            "SELECT * FROM projects WHERE external_id = ?", (external_id,)
        ) as cur:
            row = await cur.fetchone()
        return self._row_to_project(row) if row else None

    async def get_project_by_name(self, full_name: str) -> Optional[Project]:
        """Look up a project by ``owner/name`` (case-insensitive)."""
        async with self.db.execute(
            "SELECT * FROM projects WHERE lower(full_name) = lower(?) ORDER BY id LIMIT 1",
            (full_name,),
        ) as cur:
            row = await cur.fetchone()
        return self._row_to_project(row) if row else None

    async def list_projects(self) -> List[Project]:
        async with self.db.execute("SELECT * FROM projects ORDER BY full_name") as cur:
            rows = await cur.fetchall()
        return [self._row_to_project(row) for row in rows]

    async def get_watermark(self, project_id: int) -> Optional[datetime]:
        async with self.db.execute(
            "SELECT last_sync_watermark FROM projects WHERE id = ?", (project_id,)
        ) as cur:
            row = await cur.fetchone()
        return _from_epoch(row[0]) if row else None

    async def set_watermark(self, project_id: int, instant: datetime) -> bool:
        """Advance the project's watermark to ``instant``.

        Returns:
            True if the watermark moved, False if it was already at or past
            ``instant``.
        """
        value = _to_epoch(instant)
        async with self.db.execute(
            """UPDATE projects SET last_sync_watermark = ?
            WHERE id = ? AND (last_sync_watermark IS NULL OR last_sync_watermark < ?)""",
            (value, project_id, value),
        ) as cur:
            moved = cur.rowcount > 0
        await self.db.commit()
        return moved

    # ============================================================================
    # Commits
    # ============================================================================

    async def exists(self, sha: str) -> bool:
        async with self.db.execute("SELECT 1 FROM commits WHERE sha = ?", (sha,)) as cur:
            row = await cur.fetchone()
        return row is not None

    async def insert(self, commit: Commit) -> InsertResult:
        """Insert a commit; the first writer of a given sha wins."""
        async with self.db.execute(
            """INSERT INTO commits (
                sha, project_id, message, authored_at,
                additions, deletions, files_changed, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(sha) DO NOTHING""",
            (
                commit.sha,
                commit.project_id,
                commit.message,
                _to_epoch(commit.authored_at),
                commit.additions,
                commit.deletions,
                commit.files_changed,
                datetime.now(timezone.utc).isoformat(),
            ),
        ) as cur:
            inserted = cur.rowcount > 0
        await self.db.commit()

        if not inserted:
            logger.debug("commit_already_present", sha=commit.sha)
            return InsertResult.ALREADY_PRESENT
        return InsertResult.INSERTED

    async def list_by_project(
        self,
        project_id: int,
        order: str = "asc",
        limit: Optional[int] = None,
    ) -> List[Commit]:
        """List a project's commits ordered by author timestamp.

        Args:
            project_id: Local project id
            order: "asc" (oldest first) or "desc" (newest first)
            limit: Maximum number of commits to return
        """
        direction = "DESC" if order.lower() == "desc" else "ASC"
        query = (
            "SELECT * FROM commits WHERE project_id = ? "
            f"ORDER BY authored_at {direction}, sha {direction}"
        )
        params: tuple = (project_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (project_id, limit)

        async with self.db.execute(query, params) as cur:
            rows = await cur.fetchall()
        return [self._row_to_commit(row) for row in rows]

    async def count_by_project(self, project_id: int) -> int:
        async with self.db.execute(
            "SELECT COUNT(*) FROM commits WHERE project_id = ?", (project_id,)
        ) as cur:
            row = await cur.fetchone()
        return row[0] if row else 0

    def _row_to_commit(self, row: aiosqlite.Row) -> Commit:
        return Commit(
            sha=row["sha"],
            project_id=row["project_id"],
            message=row["message"],
            authored_at=_from_epoch(row["authored_at"]),
            additions=row["additions"],
            deletions=row["deletions"],
            files_changed=row["files_changed"],
        )

    def _row_to_project(self, row: aiosqlite.Row) -> Project:
        return Project(
            id=row["id"],
            external_id=row["external_id"],
            full_name=row["full_name"],
            display_name=row["display_name"],
            last_sync_watermark=_from_epoch(row["last_sync_watermark"]),
        )
