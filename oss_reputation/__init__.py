"""Reputation metrics for open-source contributors and repositories."""

__version__ = "0.1.0"
