"""Two-leg execution: arbitrage first, hedge only after a confirmed fill.

State machine::

    PENDING_ARB -> ARB_REJECTED                      (terminal, no hedge)
    PENDING_ARB -> ARB_FILLED -> HEDGE_FILLED        (terminal)
                               -> HEDGE_REJECTED     (terminal, un-hedged)

Every leg is persisted as ``New`` before its swap is attempted so that a crash
mid-sequence leaves a record that recovery can act on.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum

import structlog

from dexduels.core.orders import Order, OrderStatus
from dexduels.dex.venue import Venue
from dexduels.live.scanner import Opportunity
from dexduels.storage.order_store import OrderStore

log = structlog.get_logger()


class DuelState(StrEnum):
    PENDING_ARB = "pending_arb"
    ARB_FILLED = "arb_filled"
    ARB_REJECTED = "arb_rejected"
    HEDGE_FILLED = "hedge_filled"
    HEDGE_REJECTED = "hedge_rejected"


@dataclass(frozen=True)
class ExecutionReport:
    """Final state of one executed opportunity."""

    state: DuelState
    arb: Order
    hedge: Order | None = None

    @property
    def unhedged(self) -> bool:
        return self.state is DuelState.HEDGE_REJECTED


async def settle_order(order: Order, venue: Venue, store: OrderStore) -> Order:
    """Swap one persisted ``New`` order on ``venue`` and record its outcome."""
    result = await venue.swap(
        order.sym_in,
        order.sym_out,
        amount_in=order.amount_in,
        amount_out=order.amount_out,
    )
    settled = order.settled(result)
    await store.update_status(settled.id, settled.status, settled.tx)
    log.info(
        "coordinator.leg_settled",
        order_id=settled.id,
        action=settled.action.value,
        venue=venue.name,
        status=settled.status.value,
        tx_hash=result.tx_hash,
    )
    return settled


class ExecutionCoordinator:
    """Drive one opportunity through the arb/hedge sequence.

    ``StoreFailure`` is never caught here: if an outcome cannot be recorded the
    engine must stop.
    """

    def __init__(self, store: OrderStore, hedge_delay: float = 5.0) -> None:
        self.store = store
        self.hedge_delay = hedge_delay

    async def execute(self, opp: Opportunity) -> ExecutionReport:
        arb_leg, hedge_leg = opp.legs
        log.info(
            "coordinator.executing",
            duel=opp.duel,
            pair=str(opp.pair),
            estimated_profit=str(opp.estimated_profit),
            arb_id=arb_leg.order.id,
        )

        arb = arb_leg.order.stamped()
        await self.store.insert(arb)
        arb = await settle_order(arb, arb_leg.venue, self.store)
        if arb.status is not OrderStatus.FILLED:
            log.warning("coordinator.arb_rejected", arb_id=arb.id, venue=arb.venue_name)
            return ExecutionReport(DuelState.ARB_REJECTED, arb)

        hedge = hedge_leg.order.stamped()
        await self.store.insert(hedge)
        # Settlement delay between legs, not a confirmation poll
        await asyncio.sleep(self.hedge_delay)
        hedge = await settle_order(hedge, hedge_leg.venue, self.store)
        if hedge.status is not OrderStatus.FILLED:
            log.error(
                "coordinator.hedge_rejected",
                arb_id=arb.id,
                hedge_id=hedge.id,
                venue=hedge.venue_name,
                sym_in=hedge.sym_in,
                sym_out=hedge.sym_out,
                amount_out=str(hedge.amount_out),
            )
            return ExecutionReport(DuelState.HEDGE_REJECTED, arb, hedge)

        log.info("coordinator.duel_completed", arb_id=arb.id, hedge_id=hedge.id)
        return ExecutionReport(DuelState.HEDGE_FILLED, arb, hedge)
