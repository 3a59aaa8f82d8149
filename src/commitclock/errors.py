"""Exception types for commitclock."""


class CommitClockError(Exception):
    """Base exception for all recoverable commitclock errors."""


class ConfigurationError(CommitClockError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationMissingError(CommitClockError):
    """Raised when no valid remote credential is available."""


class RemoteNotFoundError(CommitClockError):
    """Raised when a project cannot be resolved on the remote host."""


class RemoteApiError(CommitClockError):
    """Raised when a remote API request fails or returns an unexpected response."""


class DetailFetchFailedError(RemoteApiError):
    """Raised when the detail fetch for a single commit fails."""

    def __init__(self, sha: str, reason: str) -> None:
        super().__init__(f"Failed to fetch details for commit {sha}: {reason}")
        self.sha = sha
        self.reason = reason


class SyncError(CommitClockError):
    """Raised when a sync pass cannot make any progress at all."""


class ClassificationError(CommitClockError):
    """Raised when the feature classifier fails or returns no usable content."""


class ClassificationShapeInvalidError(ClassificationError):
    """Raised when the classifier response is not one of the accepted shapes."""


class PredictionError(CommitClockError):
    """Raised when an effort prediction response cannot be used."""
