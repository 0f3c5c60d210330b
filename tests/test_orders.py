"""Tests for the order model and its storage record codec."""

from decimal import Decimal

import pytest

from dexduels.core.orders import (
    Order,
    OrderAction,
    OrderStatus,
    SwapResult,
    new_order_id,
    order_from_record,
    order_to_record,
)


def make_arb(**overrides) -> Order:
    fields = dict(
        id=new_order_id(),
        venue_name="benswap",
        sym_in="BCH",
        sym_out="flexUSD",
        amount_in=Decimal("0.5"),
        action=OrderAction.ARB,
    )
    fields.update(overrides)
    return Order(**fields)


def test_order_requires_exactly_one_amount() -> None:
    with pytest.raises(ValueError):
        make_arb(amount_out=Decimal("1"))
    with pytest.raises(ValueError):
        make_arb(amount_in=None)


def test_hedge_must_reference_arb_and_arb_must_not() -> None:
    with pytest.raises(ValueError):
        Order(
            id="h1",
            venue_name="mistswap",
            sym_in="flexUSD",
            sym_out="BCH",
            amount_out=Decimal("0.5"),
            action=OrderAction.HEDGE,
        )
    with pytest.raises(ValueError):
        make_arb(hedge_to="someone")


def test_new_order_defaults() -> None:
    order = make_arb()
    assert order.status is OrderStatus.NEW
    assert order.tx is None
    assert order.is_exact_in
    assert order.ts > 0


def test_settled_sets_status_from_swap_result() -> None:
    order = make_arb()
    filled = order.settled(SwapResult(status=True, tx_hash="0xabc", block_number=7))
    cancelled = order.settled(SwapResult(status=False, error="reverted"))

    assert filled.status is OrderStatus.FILLED
    assert filled.tx is not None and filled.tx["tx_hash"] == "0xabc"
    assert cancelled.status is OrderStatus.CANCELLED
    assert cancelled.tx is not None and cancelled.tx["error"] == "reverted"
    # Original is untouched and keeps its creation timestamp
    assert order.status is OrderStatus.NEW
    assert filled.ts == order.ts


def test_settled_twice_is_rejected() -> None:
    filled = make_arb().settled(SwapResult(status=True))
    with pytest.raises(ValueError):
        filled.settled(SwapResult(status=True))


def test_record_codec_keeps_persisted_layout() -> None:
    arb = make_arb()
    hedge = Order(
        id=new_order_id(),
        hedge_to=arb.id,
        venue_name="mistswap",
        sym_in="flexUSD",
        sym_out="BCH",
        amount_out=Decimal("0.5"),
        action=OrderAction.HEDGE,
    )

    record = order_to_record(hedge)
    assert record["action"] == "Hedge"
    assert record["status"] == "New"
    assert record["amount_in"] is None
    assert record["amount_out"] == "0.5"
    assert record["hedge_to"] == arb.id

    # Postgres NUMERIC columns come back as Decimal
    record["amount_out"] = Decimal("0.5")
    assert order_from_record(record) == hedge
