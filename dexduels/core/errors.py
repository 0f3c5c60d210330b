"""Error taxonomy for the duel engine.

Only ``StoreFailure`` and ``ConfigurationError`` are allowed to escape a scan
cycle. ``QuoteUnavailable`` is absorbed by the scanner and ``SwapRejected`` is
never raised past the coordinator: a rejected swap is recorded as a
``Cancelled`` order instead.
"""

from __future__ import annotations


class DuelError(Exception):
    """Base class for all duel engine errors."""


class QuoteUnavailable(DuelError):
    """A venue could not price a pair this cycle."""

    def __init__(self, venue: str, sym_in: str, sym_out: str, reason: str = "no_route") -> None:
        self.venue = venue
        self.sym_in = sym_in
        self.sym_out = sym_out
        self.reason = reason
        super().__init__(f"{venue}: no quote for {sym_in}/{sym_out} ({reason})")


class SwapRejected(DuelError):
    """An on-chain swap attempt did not fill."""

    def __init__(self, venue: str, tx_hash: str | None = None, error: str | None = None) -> None:
        self.venue = venue
        self.tx_hash = tx_hash
        self.error = error
        super().__init__(f"{venue}: swap {tx_hash or '(unsent)'} rejected ({error or 'reverted'})")


class StoreFailure(DuelError):
    """A persistence call failed; the outcome of an order could not be recorded."""


class ConfigurationError(DuelError):
    """Invalid or missing required settings."""
