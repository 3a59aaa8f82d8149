"""Commit store schema creation and versioning.

Uses IF NOT EXISTS for idempotent runs.
"""

import aiosqlite
import structlog

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 1

_TABLES = """
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied   TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS projects (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id          TEXT NOT NULL UNIQUE,
    full_name            TEXT NOT NULL,
    display_name         TEXT NOT NULL,
    last_sync_watermark  REAL,
    created_at           TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_projects_full_name ON projects(full_name);

-- Append-only: rows are never updated or deleted.
CREATE TABLE IF NOT EXISTS commits (
    sha            TEXT PRIMARY KEY,
    project_id     INTEGER NOT NULL REFERENCES projects(id),
    message        TEXT NOT NULL,
    authored_at    REAL NOT NULL,
    additions      INTEGER NOT NULL DEFAULT 0,
    deletions      INTEGER NOT NULL DEFAULT 0,
    files_changed  INTEGER NOT NULL DEFAULT 0,
    created_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_commits_project_time ON commits(project_id, authored_at);
"""


async def run_migrations(db: aiosqlite.Connection) -> None:
    """Create all tables. Idempotent."""
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cur:
            row = await cur.fetchone()
            current_version = row[0] if row and row[0] else 0
    except aiosqlite.OperationalError:
        current_version = 0

    if current_version >= SCHEMA_VERSION:
        logger.debug("schema_up_to_date", version=current_version)
        return

    logger.info("running_migrations", current=current_version, target=SCHEMA_VERSION)
    await db.executescript(_TABLES)
    await db.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    await db.commit()
