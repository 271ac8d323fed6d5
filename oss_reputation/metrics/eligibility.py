"""Open-source eligibility classifier."""

import asyncio
from datetime import datetime
from typing import Any

from oss_reputation.activity import subtract_months, utc_now
from oss_reputation.config import (
    EligibilityPolicy,
    FetchLimits,
    validate_eligibility_policy,
)
from oss_reputation.diagnostics import DiagnosticSink, NullDiagnostics
from oss_reputation.lookups import with_default
from oss_reputation.metrics.base import ScoreComponent
from oss_reputation.models import EligibilityVerdict, RepositoryMetadata
from oss_reputation.vcs.base import BaseDataSource


def evaluate_eligibility(
    metadata: RepositoryMetadata,
    contributor_count: int,
    recent_commits: int,
    policy: EligibilityPolicy | None = None,
) -> EligibilityVerdict:
    """
    Decide whether a repository counts as an open-source project.

    Private repositories are ineligible without scoring. Public ones get a
    weighted score over community interest and activity:

    - forks (capped at 50) x 0.5
    - stars (capped at 100) x 0.3
    - contributors (capped at 10) x 5
    - license present: 20
    - open issues (capped at 50) x 0.4
    - commits in the trailing 6 months (capped at 100) x 0.2
    - size in KB / 1000 (capped at 10)

    The repository is eligible when the score exceeds the threshold (35).
    Caps, weights and threshold come from ``policy``.
    """
    policy = policy or EligibilityPolicy()

    if metadata.is_private:
        return EligibilityVerdict(
            is_eligible=False,
            score=0.0,
            threshold=policy.threshold,
            factors=[],
            reason="private",
        )

    forks = min(metadata.forks, policy.fork_cap)
    stars = min(metadata.stars, policy.star_cap)
    contributors = min(max(contributor_count, 0), policy.contributor_cap)
    open_issues = min(metadata.open_issues, policy.open_issue_cap)
    commits = min(max(recent_commits, 0), policy.recent_commit_cap)
    size = min(metadata.size_kb / policy.size_divisor_kb, policy.size_cap)

    factors = [
        ScoreComponent(
            "Forks",
            forks * policy.fork_weight,
            policy.fork_cap * policy.fork_weight,
            f"{metadata.forks} forks",
        ),
        ScoreComponent(
            "Stars",
            stars * policy.star_weight,
            policy.star_cap * policy.star_weight,
            f"{metadata.stars} stars",
        ),
        ScoreComponent(
            "Contributors",
            contributors * policy.contributor_weight,
            policy.contributor_cap * policy.contributor_weight,
            f"{contributor_count} contributors",
        ),
        ScoreComponent(
            "License",
            policy.license_points if metadata.has_license else 0.0,
            policy.license_points,
            metadata.license_spdx or ("licensed" if metadata.has_license else "none"),
        ),
        ScoreComponent(
            "Open Issues",
            open_issues * policy.open_issue_weight,
            policy.open_issue_cap * policy.open_issue_weight,
            f"{metadata.open_issues} open issues",
        ),
        ScoreComponent(
            "Recent Commits",
            commits * policy.recent_commit_weight,
            policy.recent_commit_cap * policy.recent_commit_weight,
            f"{recent_commits} commits in {policy.recent_commit_months} months",
        ),
        ScoreComponent(
            "Size",
            max(size, 0.0),
            policy.size_cap,
            f"{metadata.size_kb} KB",
        ),
    ]
    score = sum(factor.value for factor in factors)

    return EligibilityVerdict(
        is_eligible=score > policy.threshold,
        score=score,
        threshold=policy.threshold,
        factors=factors,
        reason="scored",
    )


async def fetch_eligibility_inputs(
    source: BaseDataSource,
    metadata: RepositoryMetadata,
    policy: EligibilityPolicy,
    limits: FetchLimits,
    diagnostics: DiagnosticSink,
    now: datetime | None = None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Fetch the contributor list and the commits of the trailing window.

    Each lookup degrades to an empty list on failure.
    """
    owner, repo = metadata.owner, metadata.name
    since = subtract_months(utc_now(now), policy.recent_commit_months)

    contributors, commits = await asyncio.gather(
        with_default(
            source.list_contributors(owner, repo, limits.contributors),
            [],
            diagnostics,
            "contributors_unavailable",
            metadata.full_name,
        ),
        with_default(
            source.list_commits(
                owner, repo, since=since.isoformat(), limit=limits.commits
            ),
            [],
            diagnostics,
            "recent_commits_unavailable",
            metadata.full_name,
        ),
    )
    return contributors, commits


async def classify_repository(
    source: BaseDataSource,
    metadata: RepositoryMetadata,
    policy: EligibilityPolicy | None = None,
    limits: FetchLimits | None = None,
    diagnostics: DiagnosticSink | None = None,
    now: datetime | None = None,
) -> tuple[EligibilityVerdict, list[dict[str, Any]]]:
    """
    Fetch the eligibility sub-factors and classify the repository.

    Private repositories are classified without any lookup. A failed
    contributor or commit lookup counts as 0 for its factor.

    Returns:
        The verdict and the fetched contributor list, which callers reuse
        for commit ranking

    Raises:
        ValueError: If ``policy`` has out-of-range settings
    """
    policy = validate_eligibility_policy(policy or EligibilityPolicy())
    if metadata.is_private:
        return evaluate_eligibility(metadata, 0, 0, policy), []

    contributors, commits = await fetch_eligibility_inputs(
        source,
        metadata,
        policy,
        limits or FetchLimits(),
        diagnostics or NullDiagnostics(),
        now,
    )
    verdict = evaluate_eligibility(metadata, len(contributors), len(commits), policy)
    return verdict, contributors
