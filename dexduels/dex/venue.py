"""Venue capability consumed by the duel engine.

A venue hides its own routing and pricing behind two calls. The engine never
knows how a venue finds a path or talks to the chain.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

import structlog

from dexduels.core.orders import Pair, Quote, SwapResult
from dexduels.core.types import Symbol

log = structlog.get_logger()


@runtime_checkable
class Venue(Protocol):
    """Uniform quote/swap capability of one automated-market-maker venue."""

    name: str

    async def get_quotes(self, pair: Pair, amount: Decimal) -> Quote:
        """Return best (bid, ask) for trading ``amount`` of ``pair.base``.

        Raises:
            QuoteUnavailable: If the venue cannot price the pair right now
        """
        ...

    async def swap(
        self,
        sym_in: Symbol,
        sym_out: Symbol,
        amount_in: Decimal | None = None,
        amount_out: Decimal | None = None,
    ) -> SwapResult:
        """Attempt one exact-in or exact-out trade.

        Never raises for chain or network failures; those are reported as
        ``SwapResult(status=False)``.
        """
        ...


class PaperVenue:
    """Dry-run wrapper: live quotes, simulated fills.

    Example:
        >>> venue = PaperVenue(RouterVenue("benswap", ctx, router))
        >>> result = await venue.swap("BCH", "flexUSD", amount_in=Decimal("1"))
        >>> result.simulated
        True
    """

    def __init__(self, inner: Venue) -> None:
        self.inner = inner
        self.name = inner.name
        self.swaps: list[dict[str, object]] = []

    async def get_quotes(self, pair: Pair, amount: Decimal) -> Quote:
        return await self.inner.get_quotes(pair, amount)

    async def swap(
        self,
        sym_in: Symbol,
        sym_out: Symbol,
        amount_in: Decimal | None = None,
        amount_out: Decimal | None = None,
    ) -> SwapResult:
        self.swaps.append(
            {"sym_in": sym_in, "sym_out": sym_out, "amount_in": amount_in, "amount_out": amount_out}
        )
        log.info(
            "venue.paper_swap",
            venue=self.name,
            sym_in=sym_in,
            sym_out=sym_out,
            amount_in=str(amount_in) if amount_in is not None else None,
            amount_out=str(amount_out) if amount_out is not None else None,
        )
        return SwapResult(status=True, simulated=True)

    def __repr__(self) -> str:
        return f"PaperVenue({self.name!r})"
