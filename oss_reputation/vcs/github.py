"""
GitHub data source implementation for OSS Reputation.

This module implements the GitHub-specific data source on top of the GitHub
REST API (v3). Every method is a single request; failures are raised as
DataSourceError and never retried here.
"""

import os
from typing import Any

import httpx
from dotenv import load_dotenv

from oss_reputation.http_client import _get_async_http_client
from oss_reputation.vcs.base import BaseDataSource, DataSourceError

# Load environment variables
load_dotenv()

# GitHub API endpoint
GITHUB_REST_API = "https://api.github.com"

# GitHub rejects per_page values above this
MAX_PAGE_SIZE = 100


def _page_size(limit: int) -> int:
    return max(1, min(limit, MAX_PAGE_SIZE))


class GitHubProvider(BaseDataSource):
    """GitHub data source using the REST API."""

    def __init__(self, token: str | None = None):
        """
        Initialize GitHub provider.

        Args:
            token: GitHub Personal Access Token. If not provided, reads from
                   GITHUB_TOKEN environment variable. Without a token requests
                   are anonymous and subject to much lower rate limits.
        """
        self.token = token or os.getenv("GITHUB_TOKEN") or None

    def get_platform_name(self) -> str:
        """Return 'github' as the platform identifier."""
        return "github"

    def validate_credentials(self) -> bool:
        """Check if a GitHub token is configured."""
        return self.token is not None and len(self.token) > 0

    def get_repository_url(self, owner: str, repo: str) -> str:
        """Construct GitHub repository URL."""
        return f"https://github.com/{owner}/{repo}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(
        self,
        operation: str,
        target: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send a GET request to the GitHub REST API.

        Args:
            operation: Name of the data source operation, for error reporting
            target: Repository or user the request is about
            path: API path starting with '/'
            params: Query parameters

        Returns:
            Parsed JSON body, or an empty list for 204 responses

        Raises:
            DataSourceError: On transport errors and non-2xx responses
        """
        client = await _get_async_http_client()
        try:
            response = await client.get(
                f"{GITHUB_REST_API}{path}",
                params=params,
                headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = "not found or inaccessible" if status == 404 else "API error"
            raise DataSourceError(operation, target, f"HTTP {status} ({detail})") from e
        except httpx.HTTPError as e:
            raise DataSourceError(operation, target, str(e) or type(e).__name__) from e

        # Contributors of an empty repository come back as 204 No Content
        if response.status_code == 204 or not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise DataSourceError(operation, target, "invalid JSON response") from e

    async def _get_list(
        self,
        operation: str,
        target: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        data = await self._get(operation, target, path, params)
        if not isinstance(data, list):
            raise DataSourceError(operation, target, "expected a list response")
        return data

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        target = f"{owner}/{repo}"
        data = await self._get("get_repository", target, f"/repos/{owner}/{repo}")
        if not isinstance(data, dict):
            raise DataSourceError("get_repository", target, "expected an object")
        return data

    async def list_contributors(
        self, owner: str, repo: str, limit: int
    ) -> list[dict[str, Any]]:
        return await self._get_list(
            "list_contributors",
            f"{owner}/{repo}",
            f"/repos/{owner}/{repo}/contributors",
            {"per_page": _page_size(limit)},
        )

    async def list_issues(
        self, owner: str, repo: str, state: str, limit: int
    ) -> list[dict[str, Any]]:
        return await self._get_list(
            "list_issues",
            f"{owner}/{repo}",
            f"/repos/{owner}/{repo}/issues",
            {
                "state": state,
                "per_page": _page_size(limit),
                "sort": "created",
                "direction": "desc",
            },
        )

    async def list_pull_requests(
        self, owner: str, repo: str, state: str, limit: int
    ) -> list[dict[str, Any]]:
        return await self._get_list(
            "list_pull_requests",
            f"{owner}/{repo}",
            f"/repos/{owner}/{repo}/pulls",
            {
                "state": state,
                "per_page": _page_size(limit),
                "sort": "created",
                "direction": "desc",
            },
        )

    async def list_commits(
        self,
        owner: str,
        repo: str,
        *,
        author: str | None = None,
        since: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"per_page": _page_size(limit)}
        if author:
            params["author"] = author
        if since:
            params["since"] = since
        return await self._get_list(
            "list_commits",
            f"{owner}/{repo}",
            f"/repos/{owner}/{repo}/commits",
            params,
        )

    async def list_collaborators(self, owner: str, repo: str) -> list[dict[str, Any]]:
        return await self._get_list(
            "list_collaborators",
            f"{owner}/{repo}",
            f"/repos/{owner}/{repo}/collaborators",
            {"affiliation": "direct", "per_page": MAX_PAGE_SIZE},
        )

    async def get_user(self, username: str) -> dict[str, Any]:
        data = await self._get("get_user", username, f"/users/{username}")
        if not isinstance(data, dict):
            raise DataSourceError("get_user", username, "expected an object")
        return data

    async def list_repositories_for_user(
        self, username: str, limit: int
    ) -> list[dict[str, Any]]:
        return await self._get_list(
            "list_repositories_for_user",
            username,
            f"/users/{username}/repos",
            {"per_page": _page_size(limit), "sort": "updated"},
        )

    async def search_issues_or_prs(self, query: str) -> dict[str, Any]:
        data = await self._get(
            "search_issues_or_prs", query, "/search/issues", {"q": query, "per_page": 1}
        )
        if not isinstance(data, dict) or "total_count" not in data:
            raise DataSourceError("search_issues_or_prs", query, "missing total_count")
        return data


PROVIDER = GitHubProvider
