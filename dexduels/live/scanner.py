"""Opportunity scanner: quote every duel/pair and price both directions.

For a duel (A, B) and a pair (base, quote) the scanner estimates, in numeraire
units:

    profit_a2b = (bid_a - ask_b) * quote_price   # sell base on A, buy back on B
    profit_b2a = (bid_b - ask_a) * quote_price   # sell base on B, buy back on A

and builds an opportunity for each estimate strictly above the trigger.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal

import structlog

from dexduels.core.errors import QuoteUnavailable
from dexduels.core.orders import Order, OrderAction, Pair, new_order_id
from dexduels.core.types import Symbol
from dexduels.dex.venue import Venue
from dexduels.live.universe import Duel, PairUniverse

log = structlog.get_logger()

ONE = Decimal(1)


@dataclass(frozen=True)
class Leg:
    """A not-yet-persisted order together with the venue that will fill it."""

    order: Order
    venue: Venue


@dataclass(frozen=True)
class Opportunity:
    """Best-effort arbitrage found in one scan cycle (never persisted)."""

    estimated_profit: Decimal
    arb: Leg
    hedge: Leg
    pair: Pair
    duel: str

    @property
    def legs(self) -> tuple[Leg, Leg]:
        return self.arb, self.hedge


def build_opportunity(
    profit: Decimal,
    pair: Pair,
    size: Decimal,
    sell_venue: Venue,
    buy_venue: Venue,
    duel: str = "",
) -> Opportunity:
    """Arb sells ``size`` base exact-in on ``sell_venue``; hedge buys it back exact-out."""
    arb_order = Order(
        id=new_order_id(),
        venue_name=sell_venue.name,
        sym_in=pair.base,
        sym_out=pair.quote,
        amount_in=size,
        action=OrderAction.ARB,
    )
    hedge_order = Order(
        id=new_order_id(),
        hedge_to=arb_order.id,
        venue_name=buy_venue.name,
        sym_in=pair.quote,
        sym_out=pair.base,
        amount_out=size,
        action=OrderAction.HEDGE,
    )
    return Opportunity(
        estimated_profit=profit,
        arb=Leg(arb_order, sell_venue),
        hedge=Leg(hedge_order, buy_venue),
        pair=pair,
        duel=duel,
    )


class OpportunityScanner:
    """Scan all duels and pairs of a universe concurrently."""

    def __init__(self, universe: PairUniverse, trigger_profit: Decimal, numeraire: Symbol) -> None:
        self.universe = universe
        self.trigger_profit = trigger_profit
        self.numeraire = numeraire
        self.quote_failures = 0

    async def scan(self) -> list[Opportunity]:
        """Return every opportunity above trigger, in duel/pair/direction order."""
        jobs = [(duel, pair) for duel in self.universe.duels for pair in self.universe.pairs]
        batches = await asyncio.gather(*(self._scan_pair(duel, pair) for duel, pair in jobs))
        opportunities = [opp for batch in batches for opp in batch]
        log.debug("scanner.cycle_scanned", jobs=len(jobs), opportunities=len(opportunities))
        return opportunities

    async def _scan_pair(self, duel: Duel, pair: Pair) -> list[Opportunity]:
        size = self.universe.size_for(pair)
        try:
            quote_price, quote_a, quote_b = await asyncio.gather(
                self._quote_price(duel.a, pair.quote),
                duel.a.get_quotes(pair, size),
                duel.b.get_quotes(pair, size),
            )
        except QuoteUnavailable as e:
            self.quote_failures += 1
            log.debug(
                "scanner.quote_unavailable",
                duel=duel.label,
                pair=str(pair),
                venue=e.venue,
                reason=e.reason,
            )
            return []

        profit_a2b = (quote_a.bid - quote_b.ask) * quote_price
        profit_b2a = (quote_b.bid - quote_a.ask) * quote_price
        log.debug(
            "scanner.pair_priced",
            duel=duel.label,
            pair=str(pair),
            size=str(size),
            quote_price=str(quote_price),
            profit_a2b=str(profit_a2b),
            profit_b2a=str(profit_b2a),
        )

        found: list[Opportunity] = []
        if profit_a2b > self.trigger_profit:
            found.append(build_opportunity(profit_a2b, pair, size, duel.a, duel.b, duel.label))
        if profit_b2a > self.trigger_profit:
            found.append(build_opportunity(profit_b2a, pair, size, duel.b, duel.a, duel.label))
        for opp in found:
            log.info(
                "scanner.opportunity",
                duel=duel.label,
                pair=str(pair),
                arb_venue=opp.arb.venue.name,
                hedge_venue=opp.hedge.venue.name,
                estimated_profit=str(opp.estimated_profit),
            )
        return found

    async def _quote_price(self, venue: Venue, symbol: Symbol) -> Decimal:
        """Numeraire value of one unit of ``symbol`` on ``venue``."""
        if symbol == self.numeraire:
            return ONE
        quote = await venue.get_quotes(Pair(symbol, self.numeraire), ONE)
        return quote.bid
