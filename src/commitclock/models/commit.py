"""Data models for commits and tracked projects."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def first_line(message: str) -> str:
    """Return the summary line of a commit message."""
    return message.split("\n", 1)[0].strip()


class RemoteRepository(BaseModel):
    """A repository as reported by the remote hosting API."""

    id: str = Field(..., description="Stable repository id on the remote host")
    name: str = Field(..., description="Repository name")
    full_name: str = Field(..., description="owner/name")
    description: Optional[str] = Field(None, description="Repository description")
    private: bool = Field(False, description="Whether the repository is private")
    language: Optional[str] = Field(None, description="Primary language")
    updated_at: Optional[datetime] = Field(None, description="Last update on the remote")


class CommitSummary(BaseModel):
    """One entry of a remote commit listing page."""

    sha: str = Field(..., description="Full commit SHA")
    message: str = Field("", description="Full commit message")
    authored_at: Optional[datetime] = Field(None, description="Author-reported timestamp")


class CommitDetail(BaseModel):
    """Per-commit change statistics fetched from the remote."""

    sha: str = Field(..., description="Full commit SHA")
    message: str = Field(..., description="Full commit message")
    authored_at: datetime = Field(..., description="Author-reported timestamp")
    additions: int = Field(0, ge=0, description="Number of lines added")
    deletions: int = Field(0, ge=0, description="Number of lines deleted")
    files_changed: int = Field(0, ge=0, description="Number of changed files")

    @field_validator("authored_at")
    @classmethod
    def normalize_authored_at(cls, value: datetime) -> datetime:
        return _ensure_utc(value)


class Commit(BaseModel):
    """A commit persisted in the local store. Immutable once stored."""

    model_config = ConfigDict(frozen=True)

    sha: str = Field(..., description="Content-addressed commit id")
    project_id: int = Field(..., description="Id of the owning project")
    message: str = Field(..., description="Full commit message")
    authored_at: datetime = Field(..., description="Author-reported timestamp")
    additions: int = Field(0, ge=0, description="Number of lines added")
    deletions: int = Field(0, ge=0, description="Number of lines deleted")
    files_changed: int = Field(0, ge=0, description="Number of changed files")

    @field_validator("authored_at")
    @classmethod
    def normalize_authored_at(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return first_line(self.message)

    @classmethod
    def from_detail(cls, detail: CommitDetail, project_id: int) -> "Commit":
        """Build a storable commit from a remote detail payload."""
        return cls(
            sha=detail.sha,
            project_id=project_id,
            message=detail.message,
            authored_at=detail.authored_at,
            additions=detail.additions,
            deletions=detail.deletions,
            files_changed=detail.files_changed,
        )


class Project(BaseModel):
    """A remote repository tracked by the local store."""

    id: int = Field(..., description="Local project id")
    external_id: str = Field(..., description="Stable id from the remote host")
    full_name: str = Field(..., description="owner/name on the remote host")
    display_name: str = Field(..., description="Human-readable name")
    last_sync_watermark: Optional[datetime] = Field(
        None, description="Instant before which the local mirror is known complete"
    )

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.full_name.split("/", 1)[-1]
