"""
Open-source value of a user across all of their repositories.

Each repository is scored in its own task. Tasks return outcomes instead of
writing to a shared list, and a pure reducer turns the outcomes into the
final value.
"""

import asyncio
from datetime import datetime
from typing import Any

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
from oss_reputation.models import (
    OpenSourceValue,
    RepositorySummary,
    ScoreFailure,
    ScoreOutcome,
)
from oss_reputation.scoring import calculate_contributor_score
from oss_reputation.vcs.base import BaseDataSource


async def resolve_upstream(
    source: BaseDataSource,
    repository: dict[str, Any],
    diagnostics: DiagnosticSink,
) -> tuple[str, str]:
    """
    Return the (owner, name) to score for a listed repository.

    Forks resolve to their parent repository. If the parent cannot be
    determined the fork is scored under its own identity.
    """
    owner = (repository.get("owner") or {}).get("login", "")
    name = repository.get("name", "")
    if not repository.get("fork"):
        return owner, name

    try:
        details = await source.get_repository(owner, name)
    except Exception as e:
        report_failure(diagnostics, "fork_unresolved", f"{owner}/{name}", e)
        return owner, name

    parent = details.get("parent") or {}
    parent_owner = (parent.get("owner") or {}).get("login")
    parent_name = parent.get("name")
    if parent_owner and parent_name:
        return parent_owner, parent_name

    diagnostics.emit(
        DiagnosticEvent(
            "info", "fork_unresolved", f"{owner}/{name}", "no parent repository"
        )
    )
    return owner, name


async def _score_listed_repository(
    source: BaseDataSource,
    username: str,
    repository: dict[str, Any],
    semaphore: asyncio.Semaphore,
    policy: EligibilityPolicy,
    limits: FetchLimits,
    diagnostics: DiagnosticSink,
    now: datetime | None,
) -> ScoreOutcome:
    async with semaphore:
        owner, name = await resolve_upstream(source, repository, diagnostics)
        return await calculate_contributor_score(
            source,
            username,
            owner,
            name,
            policy=policy,
            limits=limits,
            diagnostics=diagnostics,
            now=now,
        )


def summarize_outcomes(
    username: str,
    outcomes: list[ScoreOutcome],
    url_for=lambda owner, repo: f"https://github.com/{owner}/{repo}",
) -> OpenSourceValue:
    """
    Reduce per-repository outcomes into an OpenSourceValue.

    Failures are kept aside and never counted. Repositories are ordered by
    contributor score, highest first; the total sums the contributor scores
    of eligible repositories only.
    """
    summaries: list[RepositorySummary] = []
    failures: list[ScoreFailure] = []

    for outcome in outcomes:
        if not outcome.ok:
            failures.append(outcome)
            continue
        result = outcome.result
        owner, _, repo = result.profile.repository.partition("/")
        summaries.append(
            RepositorySummary(
                name=repo or result.profile.repository,
                full_name=result.profile.repository,
                contributor_score=result.contributor_score,
                is_eligible=result.is_eligible,
                url=url_for(owner, repo),
            )
        )

    summaries.sort(key=lambda summary: summary.contributor_score, reverse=True)
    total_score = sum(
        summary.contributor_score for summary in summaries if summary.is_eligible
    )

    return OpenSourceValue(
        username=username,
        total_score=total_score,
        repositories=summaries,
        failures=failures,
    )


async def calculate_open_source_value(
    source: BaseDataSource,
    username: str,
    *,
    policy: EligibilityPolicy | None = None,
    limits: FetchLimits | None = None,
    diagnostics: DiagnosticSink | None = None,
    now: datetime | None = None,
) -> OpenSourceValue:
    """
    Score a user across all of their non-private repositories.

    Repositories are scored concurrently (at most ``limits.max_concurrency``
    at a time). A repository that fails is left out of the result without
    affecting the others. If the repository list itself cannot be fetched
    the zero value is returned.

    Args:
        source: Data source to query
        username: User to evaluate
        policy: Eligibility policy (defaults to the configured one)
        limits: Page sizes and concurrency (defaults to the configured ones)
        diagnostics: Sink for degraded lookups (defaults to the console)
        now: Reference time for the recency windows

    Returns:
        OpenSourceValue, always well-formed

    Raises:
        ValueError: If ``policy`` has out-of-range settings
    """
    policy = validate_eligibility_policy(policy or get_eligibility_policy())
    limits = limits or get_fetch_limits()
    diagnostics = diagnostics or ConsoleDiagnostics()

    try:
        repositories = await source.list_repositories_for_user(
            username, limits.repositories
        )
    except Exception as e:
        report_failure(diagnostics, "repositories_unavailable", username, e)
        return OpenSourceValue(
            username=username, total_score=0, repositories=[], failures=[]
        )

    candidates = [repo for repo in repositories if not repo.get("private")]
    semaphore = asyncio.Semaphore(max(1, limits.max_concurrency))

    results = await asyncio.gather(
        *(
            _score_listed_repository(
                source,
                username,
                repository,
                semaphore,
                policy,
                limits,
                diagnostics,
                now,
            )
            for repository in candidates
        ),
        return_exceptions=True,
    )

    outcomes: list[ScoreOutcome] = []
    for repository, result in zip(candidates, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            owner = (repository.get("owner") or {}).get("login", "")
            name = repository.get("name", "")
            diagnostics.emit(
                DiagnosticEvent(
                    "error", "scoring_failed", f"{owner}/{name}", str(result)
                )
            )
            outcomes.append(ScoreFailure(owner=owner, repo=name, reason=str(result)))
        else:
            outcomes.append(result)

    return summarize_outcomes(
        username,
        outcomes,
        url_for=source.get_repository_url,
    )
