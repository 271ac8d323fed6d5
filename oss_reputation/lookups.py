"""Helpers for running independently fallible lookups."""

from collections.abc import Awaitable
from typing import TypeVar

from oss_reputation.diagnostics import DiagnosticSink, report_failure

T = TypeVar("T")


async def with_default(
    lookup: Awaitable[T],
    default: T,
    sink: DiagnosticSink,
    event: str,
    target: str,
) -> T:
    """
    Await a lookup, returning ``default`` if it fails.

    The failure is reported to ``sink`` instead of propagating, so one failed
    sub-fetch never aborts the surrounding computation.
    """
    try:
        return await lookup
    except Exception as e:
        report_failure(sink, event, target, e)
        return default
