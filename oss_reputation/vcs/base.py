"""
Abstract data source interface.

Every lookup is an independent coroutine that either returns raw API records
or raises DataSourceError. Scoring code treats each call as fallible.
"""

from abc import ABC, abstractmethod
from typing import Any


class DataSourceError(Exception):
    """A single remote lookup failed."""

    def __init__(self, operation: str, target: str, message: str):
        self.operation = operation
        self.target = target
        self.message = message
        super().__init__(f"{operation} failed for {target}: {message}")


class BaseDataSource(ABC):
    """Interface implemented by code-hosting data sources."""

    @abstractmethod
    def get_platform_name(self) -> str:
        """Return the platform identifier (e.g. 'github')."""

    @abstractmethod
    def get_repository_url(self, owner: str, repo: str) -> str:
        """Return the canonical web URL of a repository."""

    @abstractmethod
    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        """Fetch raw repository metadata."""

    @abstractmethod
    async def list_contributors(
        self, owner: str, repo: str, limit: int
    ) -> list[dict[str, Any]]:
        """List contributors ordered as the platform reports them."""

    @abstractmethod
    async def list_issues(
        self, owner: str, repo: str, state: str, limit: int
    ) -> list[dict[str, Any]]:
        """List issues, most recently created first. May include PR entries."""

    @abstractmethod
    async def list_pull_requests(
        self, owner: str, repo: str, state: str, limit: int
    ) -> list[dict[str, Any]]:
        """List pull requests, most recently created first."""

    @abstractmethod
    async def list_commits(
        self,
        owner: str,
        repo: str,
        *,
        author: str | None = None,
        since: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """List commits on the default branch, optionally filtered."""

    @abstractmethod
    async def list_collaborators(self, owner: str, repo: str) -> list[dict[str, Any]]:
        """List direct collaborators with their permissions."""

    @abstractmethod
    async def get_user(self, username: str) -> dict[str, Any]:
        """Fetch a user profile."""

    @abstractmethod
    async def list_repositories_for_user(
        self, username: str, limit: int
    ) -> list[dict[str, Any]]:
        """List repositories owned by a user."""

    @abstractmethod
    async def search_issues_or_prs(self, query: str) -> dict[str, Any]:
        """Run an issue/PR search. The result carries ``total_count``."""
