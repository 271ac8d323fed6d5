"""Repository health metric."""

from oss_reputation.metrics.base import ScoreComponent, to_score
from oss_reputation.models import HealthBreakdown, PartitionedActivity

# A repository with no issues at all is not penalized for it
NO_ISSUES_RESOLUTION_POINTS = 30
RESOLUTION_RATIO_POINTS = 40
RESOLUTION_TIME_POINTS = 30
RESOLUTION_TIME_HORIZON_DAYS = 30
MERGE_RATIO_POINTS = 30


def check_repo_health(activity: PartitionedActivity) -> HealthBreakdown:
    """
    Evaluates issue and pull request maintenance hygiene.

    Components:
    - Issue resolution ratio: closed / (open + closed) x 40,
      or 30 when the repository has no issues
    - Resolution latency: (1 - min(avg days, 30) / 30) x 30,
      or 0 when no resolution time is known
    - PR merge ratio: merged / all PRs x 30, or 0 without PRs

    The sum is rounded (half up) and clamped to 0-100.
    """
    issues = activity.issues
    pull_requests = activity.pull_requests

    total_issues = len(issues.open) + len(issues.closed)
    if total_issues > 0:
        resolution = len(issues.closed) / total_issues * RESOLUTION_RATIO_POINTS
        resolution_detail = f"{len(issues.closed)}/{total_issues} issues closed"
    else:
        resolution = NO_ISSUES_RESOLUTION_POINTS
        resolution_detail = "No issues"

    avg_resolution = issues.avg_resolution_time
    if avg_resolution > 0:
        capped = min(avg_resolution, RESOLUTION_TIME_HORIZON_DAYS)
        resolution_time = (
            1 - capped / RESOLUTION_TIME_HORIZON_DAYS
        ) * RESOLUTION_TIME_POINTS
        resolution_time_detail = f"Avg resolution {avg_resolution:.1f} days"
    else:
        resolution_time = 0.0
        resolution_time_detail = "No resolution time data"

    total_prs = len(pull_requests.all)
    if total_prs > 0:
        merge = len(pull_requests.merged) / total_prs * MERGE_RATIO_POINTS
        merge_detail = f"{len(pull_requests.merged)}/{total_prs} PRs merged"
    else:
        merge = 0.0
        merge_detail = "No pull requests"

    components = [
        ScoreComponent(
            "Issue Resolution", resolution, RESOLUTION_RATIO_POINTS, resolution_detail
        ),
        ScoreComponent(
            "Resolution Time",
            resolution_time,
            RESOLUTION_TIME_POINTS,
            resolution_time_detail,
        ),
        ScoreComponent("PR Merge Ratio", merge, MERGE_RATIO_POINTS, merge_detail),
    ]
    score = to_score(sum(component.value for component in components))
    return HealthBreakdown(score=score, components=components)


def calculate_repo_health_score(activity: PartitionedActivity) -> int:
    """Return the 0-100 health score of a repository."""
    return check_repo_health(activity).score
