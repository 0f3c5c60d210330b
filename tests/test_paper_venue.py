"""Tests for dry-run venue wrapping."""

from decimal import Decimal

import pytest

from dexduels.core.orders import Pair, Quote, SwapResult
from dexduels.dex.venue import PaperVenue, Venue


class DummyVenue:
    name = "benswap"

    def __init__(self) -> None:
        self.swaps = 0

    async def get_quotes(self, pair: Pair, amount: Decimal) -> Quote:
        return Quote(bid=Decimal("101"), ask=Decimal("102"))

    async def swap(self, sym_in, sym_out, amount_in=None, amount_out=None) -> SwapResult:
        self.swaps += 1
        return SwapResult(status=False)


def test_paper_venue_satisfies_protocol() -> None:
    paper = PaperVenue(DummyVenue())
    assert isinstance(paper, Venue)
    assert paper.name == "benswap"


@pytest.mark.asyncio
async def test_quotes_pass_through() -> None:
    paper = PaperVenue(DummyVenue())
    quote = await paper.get_quotes(Pair("BCH", "flexUSD"), Decimal("1"))
    assert quote == Quote(bid=Decimal("101"), ask=Decimal("102"))


@pytest.mark.asyncio
async def test_swaps_are_simulated_fills() -> None:
    inner = DummyVenue()
    paper = PaperVenue(inner)

    result = await paper.swap("flexUSD", "BCH", amount_out=Decimal("0.5"))

    assert result.status is True
    assert result.simulated is True
    assert result.tx_hash is None
    assert inner.swaps == 0
    assert paper.swaps == [
        {"sym_in": "flexUSD", "sym_out": "BCH", "amount_in": None, "amount_out": Decimal("0.5")}
    ]
