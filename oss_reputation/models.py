"""
Result types produced by the scoring pipeline.

All types are plain NamedTuples: immutable, behavior-free and serializable
with to_serializable().
"""

from datetime import date, datetime
from typing import Any, NamedTuple

from oss_reputation.metrics.base import ScoreComponent


class RepositoryMetadata(NamedTuple):
    """Normalized repository metadata."""

    owner: str
    name: str
    full_name: str
    is_private: bool
    is_fork: bool
    parent_owner: str | None
    parent_name: str | None
    stars: int
    forks: int
    watchers: int
    open_issues: int
    has_license: bool
    license_spdx: str | None
    size_kb: int
    created_at: str | None
    updated_at: str | None
    pushed_at: str | None
    default_branch: str | None
    html_url: str
    description: str | None


class RawRepoActivity(NamedTuple):
    """Snapshot of one repository's raw activity, fetched once per request."""

    metadata: RepositoryMetadata
    contributors: list[dict[str, Any]]
    issues: list[dict[str, Any]]
    pull_requests: list[dict[str, Any]]


class MonthlyTrend(NamedTuple):
    """Counts for one calendar month."""

    month: str  # e.g. "Mar 2026"
    start: date
    opened: int
    closed: int
    merged: int


class IssueActivity(NamedTuple):
    all: list[dict[str, Any]]
    open: list[dict[str, Any]]
    closed: list[dict[str, Any]]
    monthly_trends: list[MonthlyTrend]
    avg_resolution_time: float  # days


class PullRequestActivity(NamedTuple):
    all: list[dict[str, Any]]
    open: list[dict[str, Any]]
    closed: list[dict[str, Any]]  # closed without merge
    merged: list[dict[str, Any]]
    monthly_trends: list[MonthlyTrend]
    avg_merge_time: float  # days


class PartitionedActivity(NamedTuple):
    issues: IssueActivity
    pull_requests: PullRequestActivity


class EligibilityVerdict(NamedTuple):
    """Whether a repository counts as open source, and why."""

    is_eligible: bool
    score: float
    threshold: float
    factors: list[ScoreComponent]
    reason: str  # "private" or "scored"


class HealthBreakdown(NamedTuple):
    score: int
    components: list[ScoreComponent]


class RepositoryReport(NamedTuple):
    """Activity, health and eligibility of one repository."""

    metadata: RepositoryMetadata
    contributors: list[dict[str, Any]]
    activity: PartitionedActivity
    health: HealthBreakdown
    eligibility: EligibilityVerdict


class ContributorProfile(NamedTuple):
    """A user's standing within one repository at fetch time."""

    username: str
    repository: str  # owner/name
    commit_count: int
    pr_count: int
    merged_pr_count: int
    issues_created: int
    is_owner: bool
    is_maintainer: bool
    commit_rank: int  # 0 when unranked
    contributor_count: int
    recent_activity_ratio: float  # 0..1


class UserDetails(NamedTuple):
    login: str
    avatar_url: str
    html_url: str
    name: str | None = None
    bio: str | None = None


class ContributorScoreResult(NamedTuple):
    """Scores of one user in one repository."""

    profile: ContributorProfile
    contributor_score: int
    repo_health_score: int
    total_score: int
    eligibility: EligibilityVerdict
    user: UserDetails
    components: list[ScoreComponent]

    @property
    def is_eligible(self) -> bool:
        return self.eligibility.is_eligible


class ScoreSuccess(NamedTuple):
    """Scoring completed; the result may be the all-zero ineligible result."""

    result: ContributorScoreResult

    @property
    def ok(self) -> bool:
        return True


class ScoreFailure(NamedTuple):
    """Scoring could not be completed."""

    owner: str
    repo: str
    reason: str

    @property
    def ok(self) -> bool:
        return False


ScoreOutcome = ScoreSuccess | ScoreFailure


class RepositorySummary(NamedTuple):
    name: str
    full_name: str
    contributor_score: int
    is_eligible: bool
    url: str


class OpenSourceValue(NamedTuple):
    """A user's contributor scores summed over eligible repositories."""

    username: str
    total_score: int
    repositories: list[RepositorySummary]
    failures: list[ScoreFailure]


def to_serializable(value: Any) -> Any:
    """Convert result types into JSON-compatible structures."""
    if isinstance(value, tuple) and hasattr(value, "_asdict"):
        return {key: to_serializable(item) for key, item in value._asdict().items()}
    if isinstance(value, dict):
        return {str(key): to_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
