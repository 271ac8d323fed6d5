"""Contributor score metric."""

from typing import Any

from oss_reputation.metrics.base import ScoreComponent, to_score
from oss_reputation.models import ContributorProfile

RANK_POINTS = 40
RANK_SPREAD_CAP = 10
UNLISTED_COMMIT_POINTS_CAP = 10
PR_POINTS = 20
PR_POINTS_PER_MERGE = 2
OWNER_POINTS = 20
MAINTAINER_POINTS = 15
RECENT_ACTIVITY_POINTS = 20
ISSUE_POINTS = 10


def commit_rank(
    contributors: list[dict[str, Any]], username: str, commit_count: int
) -> int:
    """
    1-based position of ``username`` among contributors by commit count.

    A user who has commits but is missing from the (top-N) contributor list
    ranks just behind the last known contributor. A user with neither is
    unranked (0).
    """
    ordered = sorted(
        contributors, key=lambda entry: entry.get("contributions") or 0, reverse=True
    )
    wanted = username.lower()
    for position, entry in enumerate(ordered, start=1):
        if (entry.get("login") or "").lower() == wanted:
            return position
    if commit_count > 0:
        return len(contributors) + 1
    return 0


def rank_points(rank: int, contributor_count: int, commit_count: int) -> float:
    """
    Points for commit rank, up to 40.

    Rank 1 earns 40 and each further rank loses 40 / min(contributors, 10).
    Without a contributor list, committers get min(10, commits).
    """
    if contributor_count <= 0:
        if commit_count > 0:
            return float(min(UNLISTED_COMMIT_POINTS_CAP, commit_count))
        return 0.0
    if rank <= 0:
        return 0.0
    if rank == 1:
        return float(RANK_POINTS)
    step = RANK_POINTS / min(contributor_count, RANK_SPREAD_CAP)
    return max(0.0, RANK_POINTS - (rank - 1) * step)


def pull_request_points(total_prs: int, merged_prs: int) -> float:
    """min(20, merged x 2) scaled by the merge rate; 0 without PRs."""
    if total_prs <= 0:
        return 0.0
    merged = max(0, min(merged_prs, total_prs))
    return min(PR_POINTS, merged * PR_POINTS_PER_MERGE) * (merged / total_prs)


def role_points(is_owner: bool, is_maintainer: bool) -> float:
    """20 for the owner, otherwise 15 for a maintainer."""
    if is_owner:
        return float(OWNER_POINTS)
    if is_maintainer:
        return float(MAINTAINER_POINTS)
    return 0.0


def rank_detail(rank: int, contributor_count: int) -> str:
    """Label of a commit rank, which may fall outside the contributor list."""
    if rank <= 0:
        return "Unranked"
    if rank > contributor_count:
        return "Not in contributor list"
    return f"Rank {rank} of {contributor_count}"


def check_contributor(profile: ContributorProfile) -> list[ScoreComponent]:
    """Break a contributor profile down into its scored components."""
    ratio = max(0.0, min(1.0, profile.recent_activity_ratio))
    role = role_points(profile.is_owner, profile.is_maintainer)
    if profile.is_owner:
        role_detail = "Owner"
    elif profile.is_maintainer:
        role_detail = "Maintainer"
    else:
        role_detail = "Contributor"

    return [
        ScoreComponent(
            "Commit Rank",
            rank_points(
                profile.commit_rank, profile.contributor_count, profile.commit_count
            ),
            RANK_POINTS,
            rank_detail(profile.commit_rank, profile.contributor_count),
        ),
        ScoreComponent(
            "Pull Requests",
            pull_request_points(profile.pr_count, profile.merged_pr_count),
            PR_POINTS,
            f"{profile.merged_pr_count}/{profile.pr_count} PRs merged",
        ),
        ScoreComponent("Role", role, OWNER_POINTS, role_detail),
        ScoreComponent(
            "Recent Activity",
            ratio * RECENT_ACTIVITY_POINTS,
            RECENT_ACTIVITY_POINTS,
            f"{ratio:.0%} of commits in the last 3 months",
        ),
        ScoreComponent(
            "Issues Created",
            float(min(ISSUE_POINTS, max(0, profile.issues_created))),
            ISSUE_POINTS,
            f"{profile.issues_created} issues opened",
        ),
    ]


def calculate_contributor_points(profile: ContributorProfile) -> int:
    """Sum the components, clamp to 0-100 and round."""
    return to_score(sum(component.value for component in check_contributor(profile)))


def calculate_total_score(health_score: int, contributor_score: int) -> int:
    """round(health x contributor / 100), with both inputs clamped first."""
    health = to_score(health_score)
    contributor = to_score(contributor_score)
    return to_score(health * contributor / 100)
