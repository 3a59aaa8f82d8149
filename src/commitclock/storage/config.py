"""Commit store configuration."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseSettings):
    """Configuration for the SQLite commit store.

    Settings can be loaded from environment variables or .env file.
    All settings are prefixed with STORE_ (e.g., STORE_DATABASE_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("./.commitclock/commitclock.db"),
        description="SQLite database file (':memory:' for an ephemeral store)",
    )

    busy_timeout_ms: int = Field(
        default=5000,
        gt=0,
        description="How long a writer waits on a locked database",
    )

    @property
    def is_memory(self) -> bool:
        return str(self.database_path) == ":memory:"

    def ensure_parent_dir(self) -> None:
        """Ensure the database directory exists."""
        if not self.is_memory:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
