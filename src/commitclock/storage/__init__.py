"""Storage layer for synced commits."""

from commitclock.storage.commit_store import CommitStore, InsertResult
from commitclock.storage.config import StoreConfig
from commitclock.storage.schema import SCHEMA_VERSION, run_migrations

__all__ = [
    "CommitStore",
    "InsertResult",
    "StoreConfig",
    "SCHEMA_VERSION",
    "run_migrations",
]
