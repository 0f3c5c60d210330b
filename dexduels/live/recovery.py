"""Startup recovery of hedge legs left pending by a previous run."""

from __future__ import annotations

import structlog

from dexduels.core.orders import Order, OrderAction, OrderStatus
from dexduels.live.coordinator import settle_order
from dexduels.live.universe import PairUniverse
from dexduels.storage.order_store import OrderStore

log = structlog.get_logger()


async def recover_pending_hedges(store: OrderStore, universe: PairUniverse) -> list[Order]:
    """Swap every ``New`` hedge order, oldest first, and persist its outcome.

    Venues are resolved up front so that a hedge on an inactive venue fails
    with ``ConfigurationError`` before any swap is sent.
    """
    pending = await store.find(status=OrderStatus.NEW, action=OrderAction.HEDGE)
    if not pending:
        log.info("recovery.nothing_pending")
        return []

    venues = [universe.venue(order.venue_name) for order in pending]
    log.warning("recovery.pending_hedges", count=len(pending))

    settled: list[Order] = []
    for order, venue in zip(pending, venues, strict=True):
        result = await settle_order(order, venue, store)
        settled.append(result)
        log.info(
            "recovery.hedge_resolved",
            order_id=result.id,
            hedge_to=result.hedge_to,
            status=result.status.value,
        )
    return settled


async def find_unhedged_arbs(store: OrderStore) -> list[Order]:
    """Filled arb orders that no hedge order references.

    These are left behind by a crash between the arb fill and the hedge insert
    and are never resolved automatically.
    """
    arbs = await store.find(status=OrderStatus.FILLED, action=OrderAction.ARB)
    hedges = await store.find(action=OrderAction.HEDGE)
    hedged = {hedge.hedge_to for hedge in hedges}
    return [arb for arb in arbs if arb.id not in hedged]
