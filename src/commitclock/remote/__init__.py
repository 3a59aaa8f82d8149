"""Remote history clients."""

from commitclock.remote.github_client import GitHubClient

__all__ = ["GitHubClient"]
