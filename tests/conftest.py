"""
Shared fixtures: an in-memory data source and raw record builders.
"""

from datetime import datetime, timezone
from typing import Any

import pytest

from oss_reputation.vcs.base import BaseDataSource, DataSourceError

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class FakeDataSource(BaseDataSource):
    """
    Data source backed by dictionaries keyed by 'owner/repo' (or username).

    ``failures`` holds (operation, target) pairs that raise DataSourceError;
    a target of '*' fails the operation for every target.
    """

    def __init__(
        self,
        repositories: dict[str, dict] | None = None,
        contributors: dict[str, list] | None = None,
        issues: dict[str, list] | None = None,
        pull_requests: dict[str, list] | None = None,
        commits: dict[str, list] | None = None,
        user_commits: dict[tuple[str, str], list] | None = None,
        collaborators: dict[str, list] | None = None,
        users: dict[str, dict] | None = None,
        user_repositories: dict[str, list] | None = None,
        search_counts: dict[str, int] | None = None,
        failures: set[tuple[str, str]] | None = None,
    ):
        self.repositories = repositories or {}
        self.contributors = contributors or {}
        self.issues = issues or {}
        self.pull_requests = pull_requests or {}
        self.commits = commits or {}
        self.user_commits = user_commits or {}
        self.collaborators = collaborators or {}
        self.users = users or {}
        self.user_repositories = user_repositories or {}
        self.search_counts = search_counts or {}
        self.failures = failures or set()
        self.calls: list[tuple[str, str]] = []

    def _enter(self, operation: str, target: str) -> None:
        self.calls.append((operation, target))
        if (operation, target) in self.failures or (operation, "*") in self.failures:
            raise DataSourceError(operation, target, "forced failure")

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.calls]

    def get_platform_name(self) -> str:
        return "fake"

    def get_repository_url(self, owner: str, repo: str) -> str:
        return f"https://github.com/{owner}/{repo}"

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        target = f"{owner}/{repo}"
        self._enter("get_repository", target)
        if target not in self.repositories:
            raise DataSourceError("get_repository", target, "HTTP 404")
        return self.repositories[target]

    async def list_contributors(self, owner, repo, limit):
        target = f"{owner}/{repo}"
        self._enter("list_contributors", target)
        return self.contributors.get(target, [])[:limit]

    async def list_issues(self, owner, repo, state, limit):
        target = f"{owner}/{repo}"
        self._enter("list_issues", target)
        return self.issues.get(target, [])[:limit]

    async def list_pull_requests(self, owner, repo, state, limit):
        target = f"{owner}/{repo}"
        self._enter("list_pull_requests", target)
        return self.pull_requests.get(target, [])[:limit]

    async def list_commits(self, owner, repo, *, author=None, since=None, limit=100):
        target = f"{owner}/{repo}"
        if author:
            self._enter("list_user_commits", target)
            return self.user_commits.get((target, author.lower()), [])[:limit]
        self._enter("list_commits", target)
        return self.commits.get(target, [])[:limit]

    async def list_collaborators(self, owner, repo):
        target = f"{owner}/{repo}"
        self._enter("list_collaborators", target)
        return self.collaborators.get(target, [])

    async def get_user(self, username):
        self._enter("get_user", username)
        if username not in self.users:
            raise DataSourceError("get_user", username, "HTTP 404")
        return self.users[username]

    async def list_repositories_for_user(self, username, limit):
        self._enter("list_repositories_for_user", username)
        return self.user_repositories.get(username, [])[:limit]

    async def search_issues_or_prs(self, query):
        self._enter("search_issues_or_prs", query)
        return {"total_count": self.search_counts.get(query, 0), "items": []}


def repo_record(owner: str, name: str, **overrides) -> dict[str, Any]:
    """Raw repository record shaped like the GitHub REST API."""
    record = {
        "name": name,
        "full_name": f"{owner}/{name}",
        "owner": {"login": owner},
        "private": False,
        "fork": False,
        "stargazers_count": 0,
        "forks_count": 0,
        "watchers_count": 0,
        "open_issues_count": 0,
        "license": None,
        "size": 0,
        "created_at": "2020-01-01T00:00:00Z",
        "updated_at": "2026-10-01T00:00:00Z",
        "pushed_at": "2026-10-01T00:00:00Z",
        "default_branch": "main",
        "html_url": f"https://github.com/{owner}/{name}",
        "description": None,
    }
    record.update(overrides)
    return record


def commit_record(date: str) -> dict[str, Any]:
    return {"sha": date, "commit": {"author": {"date": date}}}


@pytest.fixture
def make_source():
    """Factory for FakeDataSource instances."""
    return FakeDataSource


@pytest.fixture
def make_repo():
    """Factory for raw repository records."""
    return repo_record


@pytest.fixture
def make_commit():
    """Factory for raw commit records."""
    return commit_record


@pytest.fixture
def now():
    """Fixed reference time for recency windows."""
    return NOW
