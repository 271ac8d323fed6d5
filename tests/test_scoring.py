"""
Tests for contributor scoring of a single repository.
"""

import asyncio
from unittest.mock import patch

import pytest

from oss_reputation.config import EligibilityPolicy
from oss_reputation.diagnostics import CollectingDiagnostics
from oss_reputation.metrics.contributor import calculate_contributor_points
from oss_reputation.scoring import (
    analyze_repository,
    calculate_contributor_score,
    commit_date,
    parse_user_details,
    recent_activity_ratio,
)

REPO = "alice/proj"


@pytest.fixture
def project_source(make_source, make_repo, make_commit):
    """An eligible repository owned by alice with bob as a maintainer."""
    recent = make_commit("2026-09-01T00:00:00Z")
    old = make_commit("2026-03-01T00:00:00Z")
    return make_source(
        repositories={
            REPO: make_repo(
                "alice",
                "proj",
                stargazers_count=50,
                forks_count=10,
                open_issues_count=2,
                license={"spdx_id": "MIT"},
                size=1000,
            )
        },
        contributors={
            REPO: [
                {"login": "erin", "contributions": 1},
                {"login": "Alice", "contributions": 50},
                {"login": "carol", "contributions": 10},
                {"login": "bob", "contributions": 30},
                {"login": "dave", "contributions": 5},
            ]
        },
        commits={REPO: [recent] * 10},
        issues={
            REPO: [
                {
                    "state": "closed",
                    "created_at": "2026-09-01T00:00:00Z",
                    "closed_at": "2026-09-03T00:00:00Z",
                }
            ]
            * 3
            + [
                {"state": "open", "created_at": "2026-10-01T00:00:00Z"},
                {
                    "state": "open",
                    "created_at": "2026-10-01T00:00:00Z",
                    "pull_request": {"url": "https://api.github.com/pr/9"},
                },
            ]
        },
        pull_requests={
            REPO: [
                {
                    "state": "closed",
                    "created_at": "2026-09-01T00:00:00Z",
                    "merged_at": "2026-09-02T00:00:00Z",
                },
                {
                    "state": "closed",
                    "created_at": "2026-09-01T00:00:00Z",
                    "merged_at": "2026-09-04T00:00:00Z",
                },
                {"state": "closed", "created_at": "2026-09-01T00:00:00Z"},
                {"state": "open", "created_at": "2026-10-01T00:00:00Z"},
            ]
        },
        user_commits={
            (REPO, "alice"): [recent] * 10,
            (REPO, "bob"): [recent, recent, old, old],
        },
        collaborators={
            REPO: [
                {"login": "Bob", "permissions": {"push": True, "admin": False}},
                {"login": "carol", "permissions": {"push": False}},
            ]
        },
        users={
            "alice": {
                "login": "alice",
                "name": "Alice A",
                "avatar_url": "https://avatars.example/alice",
                "html_url": "https://github.com/alice",
            }
        },
        search_counts={
            f"type:pr author:alice repo:{REPO}": 10,
            f"type:pr author:alice repo:{REPO} is:merged": 10,
            f"type:issue author:alice repo:{REPO}": 3,
            f"type:pr author:bob repo:{REPO}": 4,
            f"type:pr author:bob repo:{REPO} is:merged": 2,
        },
    )


def _score(source, username, owner="alice", repo="proj", now=None, **kwargs):
    kwargs.setdefault("diagnostics", CollectingDiagnostics())
    return asyncio.run(
        calculate_contributor_score(source, username, owner, repo, now=now, **kwargs)
    )


def test_owner_with_top_rank(project_source, now):
    """Test the owner with the most commits gets the full contributor score."""
    outcome = _score(project_source, "alice", now=now)

    assert outcome.ok
    result = outcome.result
    assert result.is_eligible
    assert result.repo_health_score == 73
    assert result.contributor_score == 100
    assert result.total_score == 73
    assert result.profile.is_owner is True
    assert result.profile.commit_rank == 1
    assert result.profile.contributor_count == 5
    assert result.profile.recent_activity_ratio == 1.0
    assert result.user.name == "Alice A"


def test_maintainer_scores_below_owner(project_source, now):
    """Test a maintainer with push access scores below the owner."""
    result = _score(project_source, "bob", now=now).result

    components = {c.name: c.value for c in result.components}
    assert components == pytest.approx(
        {
            "Commit Rank": 32,
            "Pull Requests": 2,
            "Role": 15,
            "Recent Activity": 10,
            "Issues Created": 0,
        }
    )
    assert result.profile.is_maintainer is True
    assert result.contributor_score == 59
    assert result.total_score == 43
    assert result.user.login == "bob"


def test_collaborator_without_push_is_not_maintainer(project_source, now):
    """Test a collaborator without push permission is not a maintainer."""
    result = _score(project_source, "carol", now=now).result

    assert result.profile.is_maintainer is False
    assert result.profile.commit_rank == 3


def test_ineligible_repository_short_circuits(make_source, make_repo, now):
    """Test an ineligible repository scores zero without user lookups."""
    source = make_source(repositories={"octo/toy": make_repo("octo", "toy")})

    outcome = _score(source, "alice", "octo", "toy", now=now)

    assert outcome.ok
    result = outcome.result
    assert result.is_eligible is False
    assert (result.contributor_score, result.repo_health_score) == (0, 0)
    assert result.total_score == 0
    assert result.components == []
    assert sorted(source.operations()) == [
        "get_repository",
        "list_commits",
        "list_contributors",
    ]


def test_private_repository_needs_no_further_lookups(make_source, make_repo):
    """Test a private repository needs only the metadata lookup."""
    source = make_source(
        repositories={"octo/secret": make_repo("octo", "secret", private=True)}
    )

    result = _score(source, "octo", "octo", "secret").result

    assert result.eligibility.reason == "private"
    assert result.total_score == 0
    assert source.operations() == ["get_repository"]


def test_missing_repository_is_a_failure(make_source):
    """Test a failed metadata lookup yields a failure outcome."""
    diagnostics = CollectingDiagnostics()

    outcome = _score(make_source(), "alice", "octo", "gone", diagnostics=diagnostics)

    assert not outcome.ok
    assert (outcome.owner, outcome.repo) == ("octo", "gone")
    assert "HTTP 404" in outcome.reason
    assert len(diagnostics.by_event("repository_unavailable")) == 1


def test_failed_sub_lookups_fall_back_to_defaults(make_source, make_repo, now):
    """Test failed sub-lookups are reported and fall back to defaults."""
    source = make_source(
        repositories={
            REPO: make_repo(
                "alice", "proj", stargazers_count=100, license={"spdx_id": "MIT"}
            )
        },
        failures={
            ("list_contributors", "*"),
            ("list_commits", "*"),
            ("list_user_commits", "*"),
            ("list_issues", "*"),
            ("list_pull_requests", "*"),
            ("list_collaborators", "*"),
            ("search_issues_or_prs", "*"),
            ("get_user", "*"),
        },
    )
    diagnostics = CollectingDiagnostics()

    outcome = _score(source, "alice", now=now, diagnostics=diagnostics)

    assert outcome.ok
    result = outcome.result
    assert result.is_eligible
    assert result.repo_health_score == 30
    assert result.contributor_score == 20
    assert result.total_score == 6
    assert result.user.login == "alice"
    assert result.user.html_url == "https://github.com/alice"
    assert len(diagnostics.by_event("search_failed")) == 3
    for event in (
        "contributors_unavailable",
        "recent_commits_unavailable",
        "user_commits_unavailable",
        "issues_unavailable",
        "pull_requests_unavailable",
        "collaborators_unavailable",
        "user_unavailable",
    ):
        assert len(diagnostics.by_event(event)) == 1, event


@patch("oss_reputation.scoring.check_repo_health")
def test_unexpected_error_becomes_failure(mock_health, project_source, now):
    """Test an unexpected error during scoring becomes a failure outcome."""
    mock_health.side_effect = RuntimeError("boom")
    diagnostics = CollectingDiagnostics()

    outcome = _score(project_source, "alice", now=now, diagnostics=diagnostics)

    assert not outcome.ok
    assert outcome.reason == "RuntimeError: boom"
    assert diagnostics.by_event("scoring_failed")[0].level == "error"


def test_commit_date_falls_back_to_committer():
    """Test the committer date is used when the author date is missing."""
    commit = {"commit": {"committer": {"date": "2026-09-01T00:00:00Z"}}}

    assert commit_date(commit).month == 9
    assert commit_date({}) is None


def test_recent_activity_ratio(make_commit, now):
    """Test the share of commits in the last three months."""
    commits = [
        make_commit("2026-10-01T00:00:00Z"),
        make_commit("2026-07-19T00:00:00Z"),
        make_commit("2026-07-17T00:00:00Z"),
        make_commit("2025-01-01T00:00:00Z"),
    ]

    assert recent_activity_ratio(commits, now) == 0.5
    assert recent_activity_ratio([], now) == 0


def test_parse_user_details_defaults():
    """Test missing user fields fall back to defaults."""
    details = parse_user_details({"login": "bob", "name": ""}, "bob")

    assert details.name is None
    assert details.avatar_url == ""
    assert parse_user_details(None, "zoe").html_url == "https://github.com/zoe"


def test_analyze_repository_report(project_source, now):
    """Test the repository report of an eligible repository."""
    report = asyncio.run(
        analyze_repository(
            project_source,
            "alice",
            "proj",
            diagnostics=CollectingDiagnostics(),
            now=now,
        )
    )

    assert report.metadata.full_name == REPO
    assert report.health.score == 73
    assert report.eligibility.is_eligible
    assert len(report.contributors) == 5
    assert len(report.activity.issues.all) == 4
    assert len(report.activity.pull_requests.merged) == 2


def test_analyze_missing_repository_returns_none(make_source):
    """Test a missing repository gives no report."""
    report = asyncio.run(
        analyze_repository(
            make_source(), "octo", "gone", diagnostics=CollectingDiagnostics()
        )
    )

    assert report is None


def test_zero_size_divisor_raises_before_lookups(project_source, now):
    """Test a policy with a zero size divisor is rejected up front."""
    policy = EligibilityPolicy(size_divisor_kb=0.0)

    with pytest.raises(ValueError, match="size_divisor_kb"):
        _score(project_source, "alice", now=now, policy=policy)

    assert project_source.calls == []


def test_negative_weight_is_rejected_by_analyze_repository(project_source):
    """Test a negative weight is rejected before the report is built."""
    policy = EligibilityPolicy(star_weight=-0.3)

    with pytest.raises(ValueError, match="star_weight"):
        asyncio.run(
            analyze_repository(
                project_source,
                "alice",
                "proj",
                policy=policy,
                diagnostics=CollectingDiagnostics(),
            )
        )

    assert project_source.calls == []


def test_contributor_list_is_fetched_once(project_source, now):
    """Test the eligibility contributor list is reused for commit ranking."""
    result = _score(project_source, "bob", now=now).result

    assert project_source.operations().count("list_contributors") == 1
    assert result.contributor_score == calculate_contributor_points(result.profile)
