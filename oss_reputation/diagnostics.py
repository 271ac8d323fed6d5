"""
Diagnostic sinks for recoverable lookup failures.

Scoring code never prints. It reports degraded lookups to a sink that the
caller injects, so the presentation layer decides whether and how they are
shown.
"""

from typing import NamedTuple, Protocol

from rich.console import Console
from rich.markup import escape


class DiagnosticEvent(NamedTuple):
    """A single diagnostic record."""

    level: str  # "debug", "info", "warning", "error"
    event: str  # e.g. "lookup_failed", "fork_unresolved"
    target: str  # e.g. "octocat/hello-world"
    message: str


class DiagnosticSink(Protocol):
    """Anything that accepts diagnostic events."""

    def emit(self, event: DiagnosticEvent) -> None: ...


_LEVEL_STYLES = {
    "debug": "dim",
    "info": "cyan",
    "warning": "yellow",
    "error": "red",
}


class ConsoleDiagnostics:
    """Write diagnostic events to stderr using rich markup."""

    def __init__(self, console: Console | None = None, min_level: str = "info"):
        self.console = console or Console(stderr=True)
        self.min_level = min_level

    def emit(self, event: DiagnosticEvent) -> None:
        levels = list(_LEVEL_STYLES)
        if levels.index(event.level) < levels.index(self.min_level):
            return
        style = _LEVEL_STYLES[event.level]
        prefix = "⚠️  " if event.level in ("warning", "error") else ""
        self.console.print(
            f"[{style}]{prefix}{escape(event.target)}: {event.event} - "
            f"{escape(event.message)}[/{style}]",
            highlight=False,
        )


class CollectingDiagnostics:
    """Keep diagnostic events in memory."""

    def __init__(self):
        self.events: list[DiagnosticEvent] = []

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def by_event(self, name: str) -> list[DiagnosticEvent]:
        return [event for event in self.events if event.event == name]


class NullDiagnostics:
    """Discard every event."""

    def emit(self, event: DiagnosticEvent) -> None:
        pass


def report_failure(
    sink: DiagnosticSink, event: str, target: str, error: BaseException
) -> None:
    """Report a recovered lookup failure as a warning."""
    sink.emit(DiagnosticEvent("warning", event, target, f"{error}"))
