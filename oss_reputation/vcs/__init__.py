"""
Data source abstraction layer for OSS Reputation.

This module provides a unified interface for fetching raw repository and user
activity from code-hosting platforms. Scoring code depends only on
BaseDataSource, so any platform (or an in-memory fake) can be injected.
"""

from oss_reputation.vcs.base import BaseDataSource, DataSourceError
from oss_reputation.vcs.github import GitHubProvider

__all__ = [
    "BaseDataSource",
    "DataSourceError",
    "GitHubProvider",
    "get_data_source",
    "register_data_source",
    "list_supported_platforms",
]

# Registry of supported data sources
_PROVIDERS: dict[str, type[BaseDataSource]] = {
    "github": GitHubProvider,
}


def get_data_source(platform: str = "github", **kwargs) -> BaseDataSource:
    """
    Factory function to get a data source instance.

    Args:
        platform: Platform name ('github', ...). Default: 'github'
        **kwargs: Provider-specific configuration (e.g., token)

    Returns:
        Initialized data source instance

    Raises:
        ValueError: If platform is not supported

    Example:
        >>> source = get_data_source("github", token="ghp_xxx")
        >>> repo = await source.get_repository("owner", "repo")
    """
    platform_lower = platform.lower()

    if platform_lower not in _PROVIDERS:
        supported = ", ".join(sorted(_PROVIDERS.keys()))
        raise ValueError(
            f"Unsupported platform: {platform}. Supported platforms: {supported}"
        )

    provider_class = _PROVIDERS[platform_lower]
    return provider_class(**kwargs)


def register_data_source(platform: str, provider_class: type[BaseDataSource]) -> None:
    """
    Register a custom data source.

    Args:
        platform: Platform identifier (e.g., 'gitlab', 'gitea')
        provider_class: Class implementing BaseDataSource interface

    Raises:
        TypeError: If provider_class doesn't inherit from BaseDataSource
    """
    if not isinstance(provider_class, type) or not issubclass(
        provider_class, BaseDataSource
    ):
        raise TypeError(
            f"Provider class must inherit from BaseDataSource, "
            f"got {provider_class!r}"
        )

    _PROVIDERS[platform.lower()] = provider_class


def list_supported_platforms() -> list[str]:
    """
    List all supported platforms.

    Returns:
        Sorted list of platform identifiers
    """
    return sorted(_PROVIDERS.keys())
