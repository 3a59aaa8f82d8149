"""Delta detection for incremental sync.

Splits fetched commit summaries into those already mirrored locally and
those that still need a detail fetch.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from commitclock.models.commit import CommitSummary
from commitclock.storage.commit_store import CommitStore


@dataclass
class Delta:
    """Result of comparing fetched summaries against the store."""

    new: List[CommitSummary] = field(default_factory=list)
    known: List[str] = field(default_factory=list)
    duplicates: int = 0


class DeltaDetector:
    """Detects which remote commits are missing from the local store."""

    def __init__(self, store: CommitStore):
        self.store = store

    async def split(
        self, summaries: Iterable[CommitSummary], seen: Set[str]
    ) -> Delta:
        """Split summaries into new and known commits.

        Args:
            summaries: Summaries from one listing page, in remote order
            seen: SHAs already handled earlier in the same pass; updated in place

        Returns:
            Delta with new summaries in remote order and known SHAs
        """
        delta = Delta()

        for summary in summaries:
            if summary.sha in seen:
                delta.duplicates += 1
                continue
            seen.add(summary.sha)

            if await self.store.exists(summary.sha):
                delta.known.append(summary.sha)
            else:
                delta.new.append(summary)

        return delta
