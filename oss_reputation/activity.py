"""
Repository activity aggregation.

Turns raw issue and pull request records into partitioned views with
average-duration statistics and a six month trend series.
"""

import asyncio
import calendar
from datetime import date, datetime, timezone
from typing import Any

from oss_reputation.config import FetchLimits
from oss_reputation.diagnostics import DiagnosticSink, NullDiagnostics
from oss_reputation.lookups import with_default
from oss_reputation.models import (
    IssueActivity,
    MonthlyTrend,
    PartitionedActivity,
    PullRequestActivity,
    RawRepoActivity,
    RepositoryMetadata,
)
from oss_reputation.vcs.base import BaseDataSource

TREND_MONTHS = 6
SECONDS_PER_DAY = 60 * 60 * 24


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp. Naive values are treated as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def subtract_months(moment: datetime, months: int) -> datetime:
    """Move back ``months`` calendar months, clamping the day to the month end."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month0 = divmod(month_index, 12)
    month = month0 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def utc_now(now: datetime | None = None) -> datetime:
    """Return ``now`` as an aware UTC datetime, defaulting to the current time."""
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def normalize_repository(
    raw: dict[str, Any], owner: str | None = None, name: str | None = None
) -> RepositoryMetadata:
    """
    Normalize a raw repository record.

    Args:
        raw: Repository object as returned by the data source
        owner: Owner to use when the record does not carry one
        name: Name to use when the record does not carry one

    Returns:
        RepositoryMetadata with missing counts defaulted to 0
    """
    owner_data = raw.get("owner") or {}
    owner = owner_data.get("login") or owner or ""
    name = raw.get("name") or name or ""
    full_name = raw.get("full_name") or f"{owner}/{name}"

    parent = raw.get("parent") or {}
    parent_owner = (parent.get("owner") or {}).get("login") if parent else None
    parent_name = parent.get("name") if parent else None

    license_data = raw.get("license")
    visibility = raw.get("visibility")

    return RepositoryMetadata(
        owner=owner,
        name=name,
        full_name=full_name,
        is_private=bool(raw.get("private", False)) or visibility == "private",
        is_fork=bool(raw.get("fork", False)),
        parent_owner=parent_owner,
        parent_name=parent_name,
        stars=int(raw.get("stargazers_count") or 0),
        forks=int(raw.get("forks_count") or 0),
        watchers=int(raw.get("watchers_count") or 0),
        open_issues=int(raw.get("open_issues_count") or 0),
        has_license=bool(license_data),
        license_spdx=license_data.get("spdx_id") if license_data else None,
        size_kb=int(raw.get("size") or 0),
        created_at=raw.get("created_at"),
        updated_at=raw.get("updated_at"),
        pushed_at=raw.get("pushed_at"),
        default_branch=raw.get("default_branch"),
        html_url=raw.get("html_url") or f"https://github.com/{full_name}",
        description=raw.get("description"),
    )


def filter_issues(raw_issues: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop pull requests, which the issues endpoint also returns."""
    return [issue for issue in raw_issues if issue.get("pull_request") is None]


def partition_issues(
    issues: list[dict[str, Any]],
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split issues into (open, closed) by state."""
    open_issues = [issue for issue in issues if issue.get("state") == "open"]
    closed_issues = [issue for issue in issues if issue.get("state") == "closed"]
    return open_issues, closed_issues


def partition_pull_requests(
    pull_requests: list[dict[str, Any]],
) -> tuple[list[dict[str, Any]], list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Split pull requests into (open, closed without merge, merged).

    A pull request counts as merged when it has a merge timestamp, whatever
    its state says.
    """
    open_prs = [pr for pr in pull_requests if pr.get("state") == "open"]
    closed_prs = [
        pr
        for pr in pull_requests
        if pr.get("state") == "closed" and not pr.get("merged_at")
    ]
    merged_prs = [pr for pr in pull_requests if pr.get("merged_at")]
    return open_prs, closed_prs, merged_prs


def average_duration_days(items: list[dict[str, Any]], end_field: str) -> float:
    """
    Mean of (end_field - created_at) in days.

    Items missing either timestamp are skipped. Returns 0 when nothing is left.
    """
    durations = []
    for item in items:
        created = parse_timestamp(item.get("created_at"))
        ended = parse_timestamp(item.get(end_field))
        if created is None or ended is None:
            continue
        durations.append((ended - created).total_seconds() / SECONDS_PER_DAY)

    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def generate_month_starts(now: datetime | None = None) -> list[date]:
    """First day of the current month and the five before it, oldest first."""
    current = utc_now(now)
    starts = []
    for offset in range(TREND_MONTHS - 1, -1, -1):
        month_index = current.year * 12 + (current.month - 1) - offset
        year, month0 = divmod(month_index, 12)
        starts.append(date(year, month0 + 1, 1))
    return starts


def generate_monthly_trends(
    items: list[dict[str, Any]],
    include_merged: bool = False,
    now: datetime | None = None,
) -> list[MonthlyTrend]:
    """
    Bucket items into the trailing six calendar months.

    Each item increments the "opened" bucket of its creation month, the
    "closed" bucket of its closing month and, for pull requests, the "merged"
    bucket of its merge month. Timestamps outside the window are ignored.
    """
    starts = generate_month_starts(now)
    index = {(start.year, start.month): i for i, start in enumerate(starts)}
    opened = [0] * len(starts)
    closed = [0] * len(starts)
    merged = [0] * len(starts)

    def bump(counts: list[int], value: Any) -> None:
        moment = parse_timestamp(value)
        if moment is None:
            return
        moment = moment.astimezone(timezone.utc)
        position = index.get((moment.year, moment.month))
        if position is not None:
            counts[position] += 1

    for item in items:
        bump(opened, item.get("created_at"))
        bump(closed, item.get("closed_at"))
        if include_merged:
            bump(merged, item.get("merged_at"))

    return [
        MonthlyTrend(
            month=start.strftime("%b %Y"),
            start=start,
            opened=opened[i],
            closed=closed[i],
            merged=merged[i],
        )
        for i, start in enumerate(starts)
    ]


def aggregate_activity(
    raw_issues: list[dict[str, Any]],
    raw_pull_requests: list[dict[str, Any]],
    now: datetime | None = None,
) -> PartitionedActivity:
    """Build the partitioned issue and pull request views of one repository."""
    issues = filter_issues(raw_issues)
    open_issues, closed_issues = partition_issues(issues)
    open_prs, closed_prs, merged_prs = partition_pull_requests(raw_pull_requests)

    return PartitionedActivity(
        issues=IssueActivity(
            all=issues,
            open=open_issues,
            closed=closed_issues,
            monthly_trends=generate_monthly_trends(issues, now=now),
            avg_resolution_time=average_duration_days(closed_issues, "closed_at"),
        ),
        pull_requests=PullRequestActivity(
            all=list(raw_pull_requests),
            open=open_prs,
            closed=closed_prs,
            merged=merged_prs,
            monthly_trends=generate_monthly_trends(
                raw_pull_requests, include_merged=True, now=now
            ),
            avg_merge_time=average_duration_days(merged_prs, "merged_at"),
        ),
    )


async def fetch_issue_and_pr_lists(
    source: BaseDataSource,
    owner: str,
    repo: str,
    limits: FetchLimits,
    diagnostics: DiagnosticSink,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Fetch raw issues and pull requests concurrently, each defaulting to []."""
    target = f"{owner}/{repo}"
    issues, pull_requests = await asyncio.gather(
        with_default(
            source.list_issues(owner, repo, "all", limits.issues),
            [],
            diagnostics,
            "issues_unavailable",
            target,
        ),
        with_default(
            source.list_pull_requests(owner, repo, "all", limits.pull_requests),
            [],
            diagnostics,
            "pull_requests_unavailable",
            target,
        ),
    )
    return issues, pull_requests


async def fetch_repo_activity(
    source: BaseDataSource,
    owner: str,
    repo: str,
    limits: FetchLimits | None = None,
    diagnostics: DiagnosticSink | None = None,
) -> RawRepoActivity:
    """
    Fetch a raw activity snapshot of one repository.

    Args:
        source: Data source to query
        owner: Repository owner
        repo: Repository name
        limits: Page sizes (defaults to FetchLimits())
        diagnostics: Sink for degraded lookups

    Returns:
        RawRepoActivity with contributors, issues and pull requests

    Raises:
        DataSourceError: If the repository metadata cannot be fetched
    """
    limits = limits or FetchLimits()
    diagnostics = diagnostics or NullDiagnostics()
    target = f"{owner}/{repo}"

    metadata = normalize_repository(
        await source.get_repository(owner, repo), owner, repo
    )

    contributors, (issues, pull_requests) = await asyncio.gather(
        with_default(
            source.list_contributors(owner, repo, limits.contributors),
            [],
            diagnostics,
            "contributors_unavailable",
            target,
        ),
        fetch_issue_and_pr_lists(source, owner, repo, limits, diagnostics),
    )

    return RawRepoActivity(
        metadata=metadata,
        contributors=contributors,
        issues=issues,
        pull_requests=pull_requests,
    )
