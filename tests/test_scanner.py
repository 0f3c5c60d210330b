"""Tests for opportunity detection across duels."""

from decimal import Decimal

import pytest

from dexduels.core.errors import QuoteUnavailable
from dexduels.core.orders import OrderAction, Pair, Quote, SwapResult
from dexduels.live.scanner import OpportunityScanner
from dexduels.live.universe import PairUniverse


class DummyVenue:
    def __init__(self, name: str, quotes: dict[tuple[str, str], Quote]) -> None:
        self.name = name
        self.quotes = quotes
        self.quote_calls: list[tuple[Pair, Decimal]] = []

    async def get_quotes(self, pair: Pair, amount: Decimal) -> Quote:
        self.quote_calls.append((pair, amount))
        try:
            return self.quotes[(pair.base, pair.quote)]
        except KeyError:
            raise QuoteUnavailable(self.name, pair.base, pair.quote) from None

    async def swap(self, sym_in, sym_out, amount_in=None, amount_out=None) -> SwapResult:
        raise AssertionError("scanner must never swap")


def q(bid: str, ask: str) -> Quote:
    return Quote(bid=Decimal(bid), ask=Decimal(ask))


def make_scanner(venues, quotes=("flexUSD",), trigger="2", **sizes) -> OpportunityScanner:
    universe = PairUniverse.from_symbols(
        "BCH",
        list(quotes),
        venues,
        base_qty=Decimal("1"),
        trade_sizes={k: Decimal(v) for k, v in sizes.items()},
    )
    return OpportunityScanner(universe, Decimal(trigger), "flexUSD")


@pytest.mark.asyncio
async def test_profitable_duel_builds_arb_and_hedge() -> None:
    x = DummyVenue("x", {("BCH", "flexUSD"): q("105", "106")})
    y = DummyVenue("y", {("BCH", "flexUSD"): q("99", "100")})
    scanner = make_scanner([x, y], trigger="2")

    opportunities = await scanner.scan()

    assert len(opportunities) == 1
    opp = opportunities[0]
    assert opp.estimated_profit == Decimal("5")
    arb, hedge = opp.arb.order, opp.hedge.order
    assert opp.arb.venue is x and arb.venue_name == "x"
    assert (arb.sym_in, arb.sym_out, arb.amount_in, arb.amount_out) == ("BCH", "flexUSD", Decimal("1"), None)
    assert arb.action is OrderAction.ARB
    assert opp.hedge.venue is y and hedge.venue_name == "y"
    assert (hedge.sym_in, hedge.sym_out, hedge.amount_in, hedge.amount_out) == ("flexUSD", "BCH", None, Decimal("1"))
    assert hedge.action is OrderAction.HEDGE
    assert hedge.hedge_to == arb.id


@pytest.mark.asyncio
async def test_profit_below_trigger_builds_nothing() -> None:
    x = DummyVenue("x", {("BCH", "flexUSD"): q("105", "106")})
    y = DummyVenue("y", {("BCH", "flexUSD"): q("99", "100")})
    scanner = make_scanner([x, y], trigger="10")

    assert await scanner.scan() == []


@pytest.mark.asyncio
async def test_trigger_is_strict() -> None:
    x = DummyVenue("x", {("BCH", "flexUSD"): q("105", "106")})
    y = DummyVenue("y", {("BCH", "flexUSD"): q("99", "100")})
    scanner = make_scanner([x, y], trigger="5")

    assert await scanner.scan() == []


@pytest.mark.asyncio
async def test_reverse_direction_sells_on_second_venue() -> None:
    x = DummyVenue("x", {("BCH", "flexUSD"): q("99", "100")})
    y = DummyVenue("y", {("BCH", "flexUSD"): q("104", "106")})
    scanner = make_scanner([x, y], trigger="0")

    [opp] = await scanner.scan()

    assert opp.estimated_profit == Decimal("4")
    assert opp.arb.venue is y
    assert opp.hedge.venue is x


@pytest.mark.asyncio
async def test_quote_failure_skips_only_that_pair() -> None:
    x = DummyVenue(
        "x",
        {("BCH", "flexUSD"): q("105", "106"), ("BCH", "WBCH"): q("1.01", "1.02"), ("WBCH", "flexUSD"): q("100", "101")},
    )
    # y cannot price BCH/WBCH
    y = DummyVenue("y", {("BCH", "flexUSD"): q("99", "100")})
    scanner = make_scanner([x, y], quotes=("flexUSD", "WBCH"), trigger="2")

    opportunities = await scanner.scan()

    assert [str(opp.pair) for opp in opportunities] == ["BCH/flexUSD"]
    assert scanner.quote_failures == 1


@pytest.mark.asyncio
async def test_profit_is_converted_to_numeraire() -> None:
    x = DummyVenue("x", {("BCH", "WBCH"): q("1.05", "1.06"), ("WBCH", "flexUSD"): q("300", "301")})
    y = DummyVenue("y", {("BCH", "WBCH"): q("0.99", "1.00")})
    scanner = make_scanner([x, y], quotes=("WBCH",), trigger="2")

    [opp] = await scanner.scan()

    # (1.05 - 1.00) WBCH valued at 300 flexUSD each
    assert opp.estimated_profit == Decimal("15.00")
    assert (Pair("WBCH", "flexUSD"), Decimal(1)) in x.quote_calls


@pytest.mark.asyncio
async def test_trade_size_override_per_quote_symbol() -> None:
    x = DummyVenue("x", {("BCH", "flexUSD"): q("105", "106")})
    y = DummyVenue("y", {("BCH", "flexUSD"): q("99", "100")})
    scanner = make_scanner([x, y], trigger="2", flexUSD="0.25")

    [opp] = await scanner.scan()

    assert opp.arb.order.amount_in == Decimal("0.25")
    assert opp.hedge.order.amount_out == Decimal("0.25")
    assert (Pair("BCH", "flexUSD"), Decimal("0.25")) in y.quote_calls


@pytest.mark.asyncio
async def test_every_duel_is_scanned_in_combination_order() -> None:
    a = DummyVenue("a", {("BCH", "flexUSD"): q("110", "111")})
    b = DummyVenue("b", {("BCH", "flexUSD"): q("100", "101")})
    c = DummyVenue("c", {("BCH", "flexUSD"): q("100", "101")})
    scanner = make_scanner([a, b, c], trigger="2")

    opportunities = await scanner.scan()

    assert [opp.duel for opp in opportunities] == ["a<>b", "a<>c"]
