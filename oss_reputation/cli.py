"""
Command-line interface for OSS Reputation.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from oss_reputation.aggregate import calculate_open_source_value
from oss_reputation.config import (
    get_eligibility_policy,
    get_fetch_limits,
    set_eligibility_threshold,
    set_max_concurrency,
    set_verify_ssl,
)
from oss_reputation.diagnostics import (
    ConsoleDiagnostics,
    DiagnosticSink,
    NullDiagnostics,
)
from oss_reputation.http_client import close_http_client
from oss_reputation.metrics.base import ScoreComponent, rate_score
from oss_reputation.models import (
    ContributorScoreResult,
    OpenSourceValue,
    RepositoryReport,
    to_serializable,
)
from oss_reputation.scoring import analyze_repository, calculate_contributor_score
from oss_reputation.vcs import (
    BaseDataSource,
    get_data_source,
    list_supported_platforms,
)

T = TypeVar("T")

# --- Typer App ---
app = typer.Typer(help="Reputation metrics for open-source contributors.")
console = Console()

# --- Helper Functions ---


def parse_repository(value: str) -> tuple[str, str]:
    """Split 'owner/repo' (or a repository URL) into its parts."""
    cleaned = value.strip().rstrip("/")
    if cleaned.endswith(".git"):
        cleaned = cleaned[: -len(".git")]
    for prefix in ("https://github.com/", "http://github.com/", "github.com/"):
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix) :]
    parts = cleaned.split("/")
    if len(parts) != 2 or not all(parts):
        raise typer.BadParameter(f"Expected OWNER/REPO, got '{value}'")
    return parts[0], parts[1]


def _score_color(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "cyan"
    if score >= 40:
        return "yellow"
    return "red"


def _format_score(score: int) -> str:
    color = _score_color(score)
    return f"[{color}]{score}/100 {rate_score(score)}[/{color}]"


def _make_diagnostics(quiet: bool) -> DiagnosticSink:
    return NullDiagnostics() if quiet else ConsoleDiagnostics()


def _make_source(platform: str) -> BaseDataSource:
    try:
        return get_data_source(platform)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=2) from e


def _run(factory: Callable[[], Awaitable[T]]) -> T:
    """Run a coroutine and release the shared HTTP client afterwards."""

    async def runner() -> T:
        try:
            return await factory()
        finally:
            await close_http_client()

    return asyncio.run(runner())


def _print_json(value: Any) -> None:
    console.print_json(json.dumps(to_serializable(value)))


def _components_table(title: str, components: list[ScoreComponent]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Factor", style="cyan", no_wrap=True)
    table.add_column("Points", justify="right", style="magenta")
    table.add_column("Max", justify="right", style="magenta")
    table.add_column("Observation", justify="left")
    for component in components:
        table.add_row(
            component.name,
            f"{component.value:.1f}",
            f"{component.max_value:.0f}",
            component.detail,
        )
    return table


def display_repository_report(report: RepositoryReport) -> None:
    """Display repository activity, health and eligibility."""
    metadata = report.metadata
    issues = report.activity.issues
    pull_requests = report.activity.pull_requests

    console.print(f"\n📦 [bold cyan]{metadata.full_name}[/bold cyan]")
    if metadata.description:
        console.print(f"   [dim]{metadata.description}[/dim]")
    console.print(
        f"   ⭐ {metadata.stars}  Forks {metadata.forks}  "
        f"Watchers {metadata.watchers}  Open issues {metadata.open_issues}"
    )
    console.print(f"   Health: {_format_score(report.health.score)}")
    verdict = report.eligibility
    if verdict.reason == "private":
        console.print("   Open source: [red]No (private repository)[/red]")
    else:
        status = "[green]Yes[/green]" if verdict.is_eligible else "[red]No[/red]"
        console.print(
            f"   Open source: {status} "
            f"(score {verdict.score:.1f}, threshold {verdict.threshold:g})"
        )

    console.print(_components_table("Repository Health", report.health.components))
    if verdict.factors:
        console.print(_components_table("Open Source Eligibility", verdict.factors))

    summary = Table(title="Activity", show_header=True, header_style="bold magenta")
    summary.add_column("Kind", style="cyan")
    summary.add_column("All", justify="right")
    summary.add_column("Open", justify="right")
    summary.add_column("Closed", justify="right")
    summary.add_column("Merged", justify="right")
    summary.add_column("Avg days", justify="right")
    summary.add_row(
        "Issues",
        str(len(issues.all)),
        str(len(issues.open)),
        str(len(issues.closed)),
        "-",
        f"{issues.avg_resolution_time:.1f}",
    )
    summary.add_row(
        "Pull requests",
        str(len(pull_requests.all)),
        str(len(pull_requests.open)),
        str(len(pull_requests.closed)),
        str(len(pull_requests.merged)),
        f"{pull_requests.avg_merge_time:.1f}",
    )
    console.print(summary)

    trends = Table(
        title="Monthly Trends", show_header=True, header_style="bold magenta"
    )
    trends.add_column("Month", style="cyan")
    trends.add_column("Issues opened", justify="right")
    trends.add_column("Issues closed", justify="right")
    trends.add_column("PRs opened", justify="right")
    trends.add_column("PRs merged", justify="right")
    for issue_month, pr_month in zip(
        issues.monthly_trends, pull_requests.monthly_trends
    ):
        trends.add_row(
            issue_month.month,
            str(issue_month.opened),
            str(issue_month.closed),
            str(pr_month.opened),
            str(pr_month.merged),
        )
    console.print(trends)


def display_contributor_score(result: ContributorScoreResult) -> None:
    """Display one contributor score with its breakdown."""
    profile = result.profile
    user = result.user
    display_name = f"{user.name} ({user.login})" if user.name else user.login

    console.print(
        f"\n👤 [bold cyan]{display_name}[/bold cyan] in "
        f"[bold]{profile.repository}[/bold]"
    )
    if not result.is_eligible:
        console.print(
            "   [yellow]Not an open-source repository; all scores are 0.[/yellow]"
        )

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score", style="cyan")
    table.add_column("Value", justify="left")
    table.add_row("Contributor", _format_score(result.contributor_score))
    table.add_row("Repository health", _format_score(result.repo_health_score))
    table.add_row("Total", _format_score(result.total_score))
    console.print(table)

    if result.components:
        console.print(_components_table("Contributor Score", result.components))
        console.print(
            f"   Commits {profile.commit_count} • PRs {profile.merged_pr_count}/"
            f"{profile.pr_count} merged • Issues {profile.issues_created}"
        )


def display_open_source_value(value: OpenSourceValue) -> None:
    """Display a user's open-source value."""
    console.print(
        f"\n🌍 [bold cyan]{value.username}[/bold cyan] "
        f"open source value: [bold]{value.total_score}[/bold]"
    )
    if not value.repositories:
        console.print("   [dim]No repositories could be scored.[/dim]")
        return

    table = Table(
        title="Repositories", show_header=True, header_style="bold magenta"
    )
    table.add_column("Repository", style="cyan", no_wrap=True)
    table.add_column("Contributor score", justify="center")
    table.add_column("Open source", justify="center")
    table.add_column("URL", justify="left")
    for summary in value.repositories:
        table.add_row(
            summary.full_name,
            _format_score(summary.contributor_score),
            "[green]Yes[/green]" if summary.is_eligible else "[dim]No[/dim]",
            summary.url,
        )
    console.print(table)

    if value.failures:
        console.print(
            f"   [yellow]{len(value.failures)} repository(ies) "
            "could not be scored.[/yellow]"
        )


# --- Commands ---

_PLATFORM_HELP = f"Data source platform ({', '.join(list_supported_platforms())})."


@app.callback()
def main(
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    threshold: float | None = typer.Option(
        None,
        "--threshold",
        help="Override the open-source eligibility threshold.",
    ),
    max_concurrency: int | None = typer.Option(
        None,
        "--max-concurrency",
        help="Maximum number of repositories scored at the same time.",
    ),
):
    """Reputation metrics for open-source contributors."""
    set_verify_ssl(not insecure)
    set_eligibility_threshold(threshold)
    set_max_concurrency(max_concurrency)
    try:
        get_eligibility_policy()
        get_fetch_limits()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=2) from e


@app.command()
def repo(
    repository: str = typer.Argument(..., help="Repository as OWNER/REPO."),
    platform: str = typer.Option("github", "--platform", help=_PLATFORM_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide diagnostics."),
):
    """Show activity, health and eligibility of a repository."""
    owner, name = parse_repository(repository)
    source = _make_source(platform)
    report = _run(
        lambda: analyze_repository(
            source, owner, name, diagnostics=_make_diagnostics(quiet)
        )
    )
    if report is None:
        console.print(f"[red]Error: could not fetch {owner}/{name}.[/red]")
        raise typer.Exit(code=1)

    if as_json:
        _print_json(report)
    else:
        display_repository_report(report)


@app.command()
def contributor(
    username: str = typer.Argument(..., help="User to score."),
    repository: str = typer.Argument(..., help="Repository as OWNER/REPO."),
    platform: str = typer.Option("github", "--platform", help=_PLATFORM_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide diagnostics."),
):
    """Score a user's contribution to one repository."""
    owner, name = parse_repository(repository)
    source = _make_source(platform)
    outcome = _run(
        lambda: calculate_contributor_score(
            source, username, owner, name, diagnostics=_make_diagnostics(quiet)
        )
    )
    if not outcome.ok:
        console.print(
            f"[red]Error: could not score {username} in {owner}/{name}: "
            f"{outcome.reason}[/red]"
        )
        raise typer.Exit(code=1)

    if as_json:
        _print_json(outcome.result)
    else:
        display_contributor_score(outcome.result)


@app.command()
def value(
    username: str = typer.Argument(..., help="User to evaluate."),
    platform: str = typer.Option("github", "--platform", help=_PLATFORM_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide diagnostics."),
):
    """Sum a user's contributor scores over their open-source repositories."""
    source = _make_source(platform)
    if not as_json:
        console.print(
            f"Evaluating repositories of [bold cyan]{username}[/bold cyan]...",
            style="dim",
        )
    result = _run(
        lambda: calculate_open_source_value(
            source, username, diagnostics=_make_diagnostics(quiet)
        )
    )
    if as_json:
        _print_json(result)
    else:
        display_open_source_value(result)


if __name__ == "__main__":
    app()
