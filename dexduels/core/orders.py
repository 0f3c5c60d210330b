"""Order model: pairs, quotes, swap results and persisted legs.

Uses msgspec for the value types so that orders can be converted to and from
plain storage records without hand-written field mapping.
"""

from __future__ import annotations

import time
import uuid
from decimal import Decimal
from enum import StrEnum
from typing import Any

import msgspec

from dexduels.core.types import OrderId


class OrderAction(StrEnum):
    """Role of a leg inside an arbitrage sequence."""

    ARB = "Arb"
    HEDGE = "Hedge"


class OrderStatus(StrEnum):
    """Order lifecycle status.

    The engine only ever writes ``NEW`` followed by exactly one of ``FILLED`` or
    ``CANCELLED``. ``PARTIALLY_FILLED`` can only be set by external systems.
    """

    NEW = "New"
    CANCELLED = "Cancelled"
    PARTIALLY_FILLED = "PartiallyFilled"
    FILLED = "Filled"


class Pair(msgspec.Struct, frozen=True):
    """Configured (base, quote) trading pair."""

    base: str
    quote: str

    def __str__(self) -> str:
        return f"{self.base}/{self.quote}"


class Quote(msgspec.Struct, frozen=True):
    """Best achievable rates for one (pair, amount, venue).

    Attributes:
        bid: Quote amount received when selling ``amount`` base (exact-in)
        ask: Quote amount paid when buying ``amount`` base (exact-out)
    """

    bid: Decimal
    ask: Decimal


class SwapResult(msgspec.Struct, frozen=True, kw_only=True):
    """Outcome of a single swap attempt as reported by a venue."""

    status: bool
    tx_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    error: str | None = None
    simulated: bool = False


def new_order_id() -> OrderId:
    """Time-based unique id for a freshly created leg."""
    return str(uuid.uuid1())


class Order(msgspec.Struct, frozen=True, kw_only=True):
    """One leg of an arbitrage sequence as persisted in the order store.

    Exactly one of ``amount_in`` (exact-in intent) or ``amount_out`` (exact-out
    intent) is set. A hedge leg carries the id of its arbitrage leg in
    ``hedge_to``. ``ts`` is the persistence time in nanoseconds; the
    coordinator restamps each leg as it inserts it and later updates keep it.
    """

    id: str
    venue_name: str
    sym_in: str
    sym_out: str
    action: OrderAction
    amount_in: Decimal | None = None
    amount_out: Decimal | None = None
    hedge_to: str | None = None
    status: OrderStatus = OrderStatus.NEW
    tx: dict[str, Any] | None = None
    ts: int = msgspec.field(default_factory=time.time_ns)

    def __post_init__(self) -> None:
        if (self.amount_in is None) == (self.amount_out is None):
            msg = f"order {self.id} must set exactly one of amount_in/amount_out"
            raise ValueError(msg)
        if self.action is OrderAction.HEDGE and self.hedge_to is None:
            msg = f"hedge order {self.id} must reference an arb order"
            raise ValueError(msg)
        if self.action is OrderAction.ARB and self.hedge_to is not None:
            msg = f"arb order {self.id} cannot hedge another order"
            raise ValueError(msg)

    @property
    def is_exact_in(self) -> bool:
        return self.amount_in is not None

    def stamped(self) -> Order:
        """Copy of this order timestamped now, taken as it is persisted."""
        return msgspec.structs.replace(self, ts=time.time_ns())

    def settled(self, result: SwapResult) -> Order:
        """Return the final form of this order after its swap attempt."""
        if self.status is not OrderStatus.NEW:
            msg = f"order {self.id} already settled as {self.status}"
            raise ValueError(msg)
        status = OrderStatus.FILLED if result.status else OrderStatus.CANCELLED
        return msgspec.structs.replace(self, status=status, tx=msgspec.to_builtins(result))


def order_to_record(order: Order) -> dict[str, Any]:
    """Flatten an order into a storage record (amounts as strings)."""
    return msgspec.to_builtins(order)


def order_from_record(record: dict[str, Any]) -> Order:
    """Rebuild an order from a storage record."""
    data = dict(record)
    for key in ("amount_in", "amount_out"):
        if data.get(key) is not None:
            # NUMERIC columns come back as Decimal, memory records as str
            data[key] = str(data[key])
    return msgspec.convert(data, Order, strict=False)
