"""
Contributor scoring for one (user, repository) pair.

Lookups that fail degrade to their defaults, and a repository whose metadata
cannot be fetched yields a ScoreFailure. Only an out-of-range policy raises.
"""

import asyncio
from datetime import datetime
from typing import Any

from oss_reputation.activity import (
    aggregate_activity,
    fetch_issue_and_pr_lists,
    normalize_repository,
    parse_timestamp,
    subtract_months,
    utc_now,
)
from oss_reputation.config import (
    EligibilityPolicy,
    FetchLimits,
    get_eligibility_policy,
    get_fetch_limits,
    validate_eligibility_policy,
)
from oss_reputation.diagnostics import (
    ConsoleDiagnostics,
    DiagnosticEvent,
    DiagnosticSink,
    report_failure,
)
from oss_reputation.lookups import with_default
from oss_reputation.metrics.contributor import (
    calculate_contributor_points,
    calculate_total_score,
    check_contributor,
    commit_rank,
)
from oss_reputation.metrics.eligibility import classify_repository
from oss_reputation.metrics.repo_health import check_repo_health
from oss_reputation.models import (
    ContributorProfile,
    ContributorScoreResult,
    EligibilityVerdict,
    RepositoryMetadata,
    RepositoryReport,
    ScoreFailure,
    ScoreOutcome,
    ScoreSuccess,
    UserDetails,
)
from oss_reputation.vcs.base import BaseDataSource

RECENT_ACTIVITY_MONTHS = 3


def fallback_user_details(username: str) -> UserDetails:
    """User details derived from the username alone."""
    return UserDetails(
        login=username,
        avatar_url="",
        html_url=f"https://github.com/{username}",
    )


def parse_user_details(raw: dict[str, Any] | None, username: str) -> UserDetails:
    if not raw:
        return fallback_user_details(username)
    return UserDetails(
        login=raw.get("login") or username,
        avatar_url=raw.get("avatar_url") or "",
        html_url=raw.get("html_url") or f"https://github.com/{username}",
        name=raw.get("name") or None,
        bio=raw.get("bio") or None,
    )


def ineligible_result(
    username: str, metadata: RepositoryMetadata, eligibility: EligibilityVerdict
) -> ContributorScoreResult:
    """The all-zero result of a repository that is not open source."""
    return ContributorScoreResult(
        profile=ContributorProfile(
            username=username,
            repository=metadata.full_name,
            commit_count=0,
            pr_count=0,
            merged_pr_count=0,
            issues_created=0,
            is_owner=False,
            is_maintainer=False,
            commit_rank=0,
            contributor_count=0,
            recent_activity_ratio=0.0,
        ),
        contributor_score=0,
        repo_health_score=0,
        total_score=0,
        eligibility=eligibility,
        user=fallback_user_details(username),
        components=[],
    )


def commit_date(commit: dict[str, Any]) -> datetime | None:
    """Author date of a commit, falling back to the committer date."""
    details = commit.get("commit") or {}
    for role in ("author", "committer"):
        moment = parse_timestamp((details.get(role) or {}).get("date"))
        if moment is not None:
            return moment
    return None


def recent_activity_ratio(
    commits: list[dict[str, Any]], now: datetime | None = None
) -> float:
    """Share of ``commits`` made in the trailing three months."""
    if not commits:
        return 0.0
    cutoff = subtract_months(utc_now(now), RECENT_ACTIVITY_MONTHS)
    recent = 0
    for commit in commits:
        moment = commit_date(commit)
        if moment is not None and moment > cutoff:
            recent += 1
    return recent / len(commits)


async def _check_maintainer(
    source: BaseDataSource,
    owner: str,
    repo: str,
    username: str,
    diagnostics: DiagnosticSink,
) -> bool:
    """True when the user is a direct collaborator with push permission."""
    collaborators = await with_default(
        source.list_collaborators(owner, repo),
        [],
        diagnostics,
        "collaborators_unavailable",
        f"{owner}/{repo}",
    )
    wanted = username.lower()
    for collaborator in collaborators:
        if (collaborator.get("login") or "").lower() == wanted:
            permissions = collaborator.get("permissions") or {}
            return permissions.get("push") is True
    return False


async def _search_count(
    source: BaseDataSource, query: str, diagnostics: DiagnosticSink, target: str
) -> int:
    """Total count of a search, or 0 if the search fails."""
    result = await with_default(
        source.search_issues_or_prs(query), {}, diagnostics, "search_failed", target
    )
    count = result.get("total_count") if isinstance(result, dict) else None
    if isinstance(count, int) and count > 0:
        return count
    return 0


async def _score_eligible_repository(
    source: BaseDataSource,
    username: str,
    owner: str,
    repo: str,
    metadata: RepositoryMetadata,
    eligibility: EligibilityVerdict,
    contributors: list[dict[str, Any]],
    limits: FetchLimits,
    diagnostics: DiagnosticSink,
    now: datetime | None,
) -> ContributorScoreResult:
    target = f"{owner}/{repo}"
    repo_query = f"repo:{owner}/{repo}"

    (
        (issues, pull_requests),
        is_maintainer,
        user_commits,
        pr_count,
        merged_pr_count,
        issues_created,
        raw_user,
    ) = await asyncio.gather(
        fetch_issue_and_pr_lists(source, owner, repo, limits, diagnostics),
        _check_maintainer(source, owner, repo, username, diagnostics),
        with_default(
            source.list_commits(owner, repo, author=username, limit=limits.commits),
            [],
            diagnostics,
            "user_commits_unavailable",
            target,
        ),
        _search_count(
            source, f"type:pr author:{username} {repo_query}", diagnostics, target
        ),
        _search_count(
            source,
            f"type:pr author:{username} {repo_query} is:merged",
            diagnostics,
            target,
        ),
        _search_count(
            source, f"type:issue author:{username} {repo_query}", diagnostics, target
        ),
        with_default(
            source.get_user(username), None, diagnostics, "user_unavailable", username
        ),
    )

    health = check_repo_health(aggregate_activity(issues, pull_requests, now))

    profile = ContributorProfile(
        username=username,
        repository=metadata.full_name,
        commit_count=len(user_commits),
        pr_count=pr_count,
        merged_pr_count=merged_pr_count,
        issues_created=issues_created,
        is_owner=username.lower() == owner.lower(),
        is_maintainer=is_maintainer,
        commit_rank=commit_rank(contributors, username, len(user_commits)),
        contributor_count=len(contributors),
        recent_activity_ratio=recent_activity_ratio(user_commits, now),
    )
    contributor_score = calculate_contributor_points(profile)

    return ContributorScoreResult(
        profile=profile,
        contributor_score=contributor_score,
        repo_health_score=health.score,
        total_score=calculate_total_score(health.score, contributor_score),
        eligibility=eligibility,
        user=parse_user_details(raw_user, username),
        components=check_contributor(profile),
    )


async def calculate_contributor_score(
    source: BaseDataSource,
    username: str,
    owner: str,
    repo: str,
    *,
    policy: EligibilityPolicy | None = None,
    limits: FetchLimits | None = None,
    diagnostics: DiagnosticSink | None = None,
    now: datetime | None = None,
) -> ScoreOutcome:
    """
    Score one user's contribution to one repository.

    Eligibility is decided first; an ineligible repository short-circuits to
    the all-zero result without further lookups. Otherwise the collaborator,
    commit, search and profile lookups run concurrently and each falls back
    to its default on failure.

    Args:
        source: Data source to query
        username: User to score
        owner: Repository owner
        repo: Repository name
        policy: Eligibility policy (defaults to the configured one)
        limits: Page sizes (defaults to the configured ones)
        diagnostics: Sink for degraded lookups (defaults to the console)
        now: Reference time for the recency windows

    Returns:
        ScoreSuccess with the result, or ScoreFailure if the repository
        metadata could not be fetched or scoring failed unexpectedly

    Raises:
        ValueError: If ``policy`` has out-of-range settings
    """
    policy = validate_eligibility_policy(policy or get_eligibility_policy())
    limits = limits or get_fetch_limits()
    diagnostics = diagnostics or ConsoleDiagnostics()
    target = f"{owner}/{repo}"

    try:
        raw_repo = await source.get_repository(owner, repo)
    except Exception as e:
        report_failure(diagnostics, "repository_unavailable", target, e)
        return ScoreFailure(owner=owner, repo=repo, reason=str(e))

    try:
        metadata = normalize_repository(raw_repo, owner, repo)
        eligibility, contributors = await classify_repository(
            source, metadata, policy, limits, diagnostics, now
        )
        if not eligibility.is_eligible:
            return ScoreSuccess(ineligible_result(username, metadata, eligibility))

        result = await _score_eligible_repository(
            source,
            username,
            owner,
            repo,
            metadata,
            eligibility,
            contributors,
            limits,
            diagnostics,
            now,
        )
    except Exception as e:
        diagnostics.emit(
            DiagnosticEvent(
                "error", "scoring_failed", target, f"{type(e).__name__}: {e}"
            )
        )
        return ScoreFailure(owner=owner, repo=repo, reason=f"{type(e).__name__}: {e}")

    return ScoreSuccess(result)


async def analyze_repository(
    source: BaseDataSource,
    owner: str,
    repo: str,
    *,
    policy: EligibilityPolicy | None = None,
    limits: FetchLimits | None = None,
    diagnostics: DiagnosticSink | None = None,
    now: datetime | None = None,
) -> RepositoryReport | None:
    """
    Collect activity, health and eligibility of a repository.

    Returns None when the repository metadata cannot be fetched.
    """
    policy = validate_eligibility_policy(policy or get_eligibility_policy())
    limits = limits or get_fetch_limits()
    diagnostics = diagnostics or ConsoleDiagnostics()
    target = f"{owner}/{repo}"

    try:
        metadata = normalize_repository(
            await source.get_repository(owner, repo), owner, repo
        )
    except Exception as e:
        report_failure(diagnostics, "repository_unavailable", target, e)
        return None

    eligibility, contributors = await classify_repository(
        source, metadata, policy, limits, diagnostics, now
    )
    issues, pull_requests = await fetch_issue_and_pr_lists(
        source, owner, repo, limits, diagnostics
    )
    activity = aggregate_activity(issues, pull_requests, now)

    return RepositoryReport(
        metadata=metadata,
        contributors=contributors,
        activity=activity,
        health=check_repo_health(activity),
        eligibility=eligibility,
    )
