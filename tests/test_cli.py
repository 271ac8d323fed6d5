"""
Tests for the command-line interface.
"""

import json
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from oss_reputation.cli import app, parse_repository
from oss_reputation.config import (
    set_eligibility_threshold,
    set_max_concurrency,
    set_verify_ssl,
)

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_global_options():
    """Undo options the CLI callback stores globally."""
    yield
    set_eligibility_threshold(None)
    set_max_concurrency(None)
    set_verify_ssl(True)


@pytest.fixture
def cli_source(make_source, make_repo):
    """A data source with one eligible repository owned by alice."""
    source = make_source(
        repositories={
            "alice/proj": make_repo(
                "alice", "proj", stargazers_count=100, license={"spdx_id": "MIT"}
            )
        },
        user_repositories={"alice": [{"name": "proj", "owner": {"login": "alice"}}]},
    )
    with patch("oss_reputation.cli.get_data_source", return_value=source):
        yield source


@pytest.mark.parametrize(
    "value",
    [
        "alice/proj",
        "https://github.com/alice/proj",
        "https://github.com/alice/proj.git",
        "github.com/alice/proj/",
    ],
)
def test_parse_repository_accepts_urls(value):
    """Test owner/repo pairs and GitHub URLs are accepted."""
    assert parse_repository(value) == ("alice", "proj")


@pytest.mark.parametrize("value", ["proj", "a/b/c", "/proj", ""])
def test_parse_repository_rejects_malformed_values(value):
    """Test values without exactly an owner and a name are rejected."""
    with pytest.raises(typer.BadParameter):
        parse_repository(value)


def test_contributor_json(cli_source):
    """Test the contributor command prints JSON."""
    result = runner.invoke(
        app, ["contributor", "alice", "alice/proj", "--json", "--quiet"]
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["profile"]["username"] == "alice"
    assert data["profile"]["is_owner"] is True
    assert data["eligibility"]["is_eligible"] is True
    assert data["repo_health_score"] == 30
    assert data["contributor_score"] == 20
    assert data["total_score"] == 6


def test_contributor_table(cli_source):
    """Test the contributor command prints a table."""
    result = runner.invoke(app, ["contributor", "alice", "alice/proj", "-q"])

    assert result.exit_code == 0, result.output
    assert "alice" in result.output
    assert "Contributor Score" in result.output


def test_contributor_missing_repository_fails(cli_source):
    """Test the contributor command fails for a missing repository."""
    result = runner.invoke(app, ["contributor", "alice", "alice/gone", "-q"])

    assert result.exit_code == 1
    assert "could not score" in result.output


def test_value_json(cli_source):
    """Test the value command prints JSON."""
    result = runner.invoke(app, ["value", "alice", "--json", "--quiet"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["username"] == "alice"
    assert data["total_score"] == 20
    assert [repo["full_name"] for repo in data["repositories"]] == ["alice/proj"]
    assert data["failures"] == []


def test_repo_json(cli_source):
    """Test the repo command prints JSON."""
    result = runner.invoke(app, ["repo", "alice/proj", "--json", "--quiet"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["metadata"]["full_name"] == "alice/proj"
    assert data["health"]["score"] == 30
    assert len(data["activity"]["issues"]["monthly_trends"]) == 6


def test_repo_missing_repository_fails(cli_source):
    """Test the repo command fails for a missing repository."""
    result = runner.invoke(app, ["repo", "alice/gone", "-q"])

    assert result.exit_code == 1
    assert "could not fetch" in result.output


def test_threshold_option_applies_to_scoring(cli_source):
    """Test the threshold option changes eligibility."""
    result = runner.invoke(
        app,
        ["--threshold", "60", "contributor", "alice", "alice/proj", "--json", "-q"],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["eligibility"]["is_eligible"] is False
    assert data["eligibility"]["threshold"] == 60
    assert data["total_score"] == 0


def test_unknown_platform_exits_with_usage_error():
    """Test an unsupported platform is a usage error."""
    result = runner.invoke(app, ["value", "alice", "--platform", "sourceforge"])

    assert result.exit_code == 2
    assert "Unsupported platform" in result.output


@patch("oss_reputation.cli.get_eligibility_policy")
def test_invalid_config_exits_with_usage_error(mock_policy, cli_source):
    """Test an out-of-range config is reported without a traceback."""
    mock_policy.side_effect = ValueError(
        "Eligibility setting size_divisor_kb must be positive, got 0.0"
    )

    result = runner.invoke(app, ["value", "alice", "-q"])

    assert result.exit_code == 2
    assert "size_divisor_kb must be positive" in result.output
    assert cli_source.calls == []
