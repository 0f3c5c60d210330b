"""Utility modules: retry/timeout helpers, database settings and logging setup."""

from dexduels.utils.resilience import with_exponential_backoff, with_timeout

__all__ = [
    "with_exponential_backoff",
    "with_timeout",
]
