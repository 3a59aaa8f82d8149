"""Session-based time attribution.

Converts the commits of one unit of work into an actual-work estimate.
Consecutive commits closer than the session gap count as continuous work;
a longer gap is a break and only contributes a fixed wrap-up allowance. One
more allowance follows the final commit. For more than one commit the
estimate is clamped to the first-to-last span; a single commit always
yields exactly one allowance.
"""

from typing import Dict, Iterable, List, Optional

from commitclock.models.analysis import Attribution, FeatureAttribution, FeatureGroup
from commitclock.models.commit import Commit
from commitclock.models.config import AttributionConfig


def _sort_key(commit: Commit):
    return (commit.authored_at, commit.sha)


def attribute(
    commits: Iterable[Commit],
    config: Optional[AttributionConfig] = None,
) -> Attribution:
    """Estimate actual work time for a set of commits.

    The result does not depend on input order.

    Args:
        commits: Commits belonging to one unit of work
        config: Gap threshold and wrap-up allowance (defaults: 3h and 30m)

    Returns:
        Attribution with actual work, total elapsed span and sorted commits
    """
    config = config or AttributionConfig()
    ordered = sorted(commits, key=_sort_key)

    if not ordered:
        return Attribution(actual_work_seconds=0.0, total_elapsed_seconds=0.0, commits=[])

    total_elapsed = (ordered[-1].authored_at - ordered[0].authored_at).total_seconds()

    actual_work = 0.0
    for prev, curr in zip(ordered, ordered[1:]):
        gap = (curr.authored_at - prev.authored_at).total_seconds()
        if gap < config.session_gap_seconds:
            actual_work += gap
        else:
            actual_work += config.wrap_up_seconds

    actual_work += config.wrap_up_seconds

    if len(ordered) > 1:
        actual_work = min(actual_work, total_elapsed)

    return Attribution(
        actual_work_seconds=actual_work,
        total_elapsed_seconds=total_elapsed,
        commits=ordered,
    )


def attribute_groups(
    groups: Iterable[FeatureGroup],
    commits: Iterable[Commit],
    config: Optional[AttributionConfig] = None,
) -> List[FeatureAttribution]:
    """Attribute work time to every feature group.

    Ids that are not in ``commits`` are dropped silently; a group that
    resolves to no commits gets a zero attribution. Group order is preserved.
    """
    by_sha: Dict[str, Commit] = {commit.sha: commit for commit in commits}
    results: List[FeatureAttribution] = []

    for group in groups:
        resolved = {sha: by_sha[sha] for sha in group.commit_ids if sha in by_sha}
        attribution = attribute(resolved.values(), config)
        results.append(
            FeatureAttribution(
                name=group.name,
                actual_work_seconds=attribution.actual_work_seconds,
                total_elapsed_seconds=attribution.total_elapsed_seconds,
                commits=attribution.commits,
            )
        )

    return results


def with_work(results: Iterable[FeatureAttribution]) -> List[FeatureAttribution]:
    """Keep only the groups that have some attributed work."""
    return [result for result in results if result.actual_work_seconds > 0]
