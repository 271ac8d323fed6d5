"""
Configuration management for OSS Reputation.

Loads scoring policy and fetch limits from:
1. .oss-reputation.toml (local config)
2. pyproject.toml (project-level config)

Both files use the ``[tool.oss-reputation]`` table.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, NamedTuple

# project_root is the parent directory of oss_reputation/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

TOOL_KEY = "oss-reputation"

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

# Global overrides (can be set explicitly, e.g. from the CLI)
_ELIGIBILITY_THRESHOLD: float | None = None
_MAX_CONCURRENCY: int | None = None


class EligibilityPolicy(NamedTuple):
    """Weights, caps and threshold of the open-source eligibility score."""

    fork_cap: int = 50
    fork_weight: float = 0.5
    star_cap: int = 100
    star_weight: float = 0.3
    contributor_cap: int = 10
    contributor_weight: float = 5.0
    license_points: float = 20.0
    open_issue_cap: int = 50
    open_issue_weight: float = 0.4
    recent_commit_cap: int = 100
    recent_commit_weight: float = 0.2
    size_divisor_kb: float = 1000.0
    size_cap: float = 10.0
    recent_commit_months: int = 6
    threshold: float = 35.0


class FetchLimits(NamedTuple):
    """Page sizes for data source lookups and the fan-out width."""

    contributors: int = 10
    issues: int = 100
    pull_requests: int = 100
    commits: int = 100
    repositories: int = 100
    max_concurrency: int = 8


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def get_tool_config() -> dict[str, Any]:
    """
    Load the ``[tool.oss-reputation]`` table.

    Priority:
    1. .oss-reputation.toml (local config, highest priority)
    2. pyproject.toml (project-level config, fallback)

    Returns:
        The tool table, or an empty dict when neither file configures it.
    """
    local_config_path = PROJECT_ROOT / ".oss-reputation.toml"
    if local_config_path.exists():
        config = load_config_file(local_config_path)
        tool_config = config.get("tool", {}).get(TOOL_KEY)
        if tool_config:
            return tool_config

    pyproject_path = PROJECT_ROOT / "pyproject.toml"
    if pyproject_path.exists():
        config = load_config_file(pyproject_path)
        return config.get("tool", {}).get(TOOL_KEY, {})

    return {}


def _coerce_section(section: dict[str, Any], defaults: NamedTuple, label: str) -> dict:
    """Validate a config section against the fields of ``defaults``."""
    unknown = sorted(set(section) - set(defaults._fields))
    if unknown:
        raise ValueError(f"Unknown {label} setting(s): {', '.join(unknown)}")

    values = {}
    for key, value in section.items():
        expected = type(getattr(defaults, key))
        try:
            values[key] = expected(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for {label}.{key}: {value!r}") from e
    return values


def validate_eligibility_policy(policy: EligibilityPolicy) -> EligibilityPolicy:
    """
    Check that a policy can be scored with.

    Caps, weights, points and the trailing window must not be negative, and
    the size divisor must be positive. The threshold is unrestricted.

    Raises:
        ValueError: If any setting is out of range.
    """
    negative = [
        name
        for name, value in policy._asdict().items()
        if name != "threshold" and value < 0
    ]
    if negative:
        raise ValueError(
            f"Eligibility setting(s) must not be negative: {', '.join(negative)}"
        )
    if policy.size_divisor_kb <= 0:
        raise ValueError(
            f"Eligibility setting size_divisor_kb must be positive, "
            f"got {policy.size_divisor_kb!r}"
        )
    return policy


def get_eligibility_policy() -> EligibilityPolicy:
    """
    Get the eligibility scoring policy.

    Priority for the threshold:
    1. Explicitly set value via set_eligibility_threshold()
    2. OSS_REPUTATION_ELIGIBILITY_THRESHOLD environment variable
    3. [tool.oss-reputation.eligibility] config
    4. Default: 35

    Weights and caps come from the config table or the defaults.
    """
    defaults = EligibilityPolicy()
    section = get_tool_config().get("eligibility", {})
    policy = defaults._replace(**_coerce_section(section, defaults, "eligibility"))

    env_threshold = os.getenv("OSS_REPUTATION_ELIGIBILITY_THRESHOLD")
    if env_threshold:
        try:
            policy = policy._replace(threshold=float(env_threshold))
        except ValueError:
            pass

    if _ELIGIBILITY_THRESHOLD is not None:
        policy = policy._replace(threshold=_ELIGIBILITY_THRESHOLD)

    return validate_eligibility_policy(policy)


def set_eligibility_threshold(threshold: float | None) -> None:
    """
    Set the eligibility threshold explicitly.

    Args:
        threshold: Score a public repository must exceed, or None to reset.
    """
    global _ELIGIBILITY_THRESHOLD
    _ELIGIBILITY_THRESHOLD = threshold


def get_fetch_limits() -> FetchLimits:
    """
    Get page sizes and the fan-out concurrency limit.

    Priority for max_concurrency:
    1. Explicitly set value via set_max_concurrency()
    2. OSS_REPUTATION_MAX_CONCURRENCY environment variable
    3. [tool.oss-reputation.limits] config
    4. Default: 8
    """
    defaults = FetchLimits()
    section = get_tool_config().get("limits", {})
    limits = defaults._replace(**_coerce_section(section, defaults, "limits"))
    negative = [name for name, value in limits._asdict().items() if value < 0]
    if negative:
        raise ValueError(
            f"Limit setting(s) must not be negative: {', '.join(negative)}"
        )

    env_concurrency = os.getenv("OSS_REPUTATION_MAX_CONCURRENCY")
    if env_concurrency:
        try:
            limits = limits._replace(max_concurrency=int(env_concurrency))
        except ValueError:
            pass

    if _MAX_CONCURRENCY is not None:
        limits = limits._replace(max_concurrency=_MAX_CONCURRENCY)

    return limits._replace(max_concurrency=max(1, limits.max_concurrency))


def set_max_concurrency(value: int | None) -> None:
    """
    Set the maximum number of repositories scored at once.

    Args:
        value: Concurrency limit, or None to reset.
    """
    global _MAX_CONCURRENCY
    _MAX_CONCURRENCY = value


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL
