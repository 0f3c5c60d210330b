"""Core order types and error taxonomy."""

from dexduels.core.errors import (
    ConfigurationError,
    DuelError,
    QuoteUnavailable,
    StoreFailure,
    SwapRejected,
)
from dexduels.core.orders import (
    Order,
    OrderAction,
    OrderStatus,
    Pair,
    Quote,
    SwapResult,
)

__all__ = [
    # Errors
    "ConfigurationError",
    "DuelError",
    "QuoteUnavailable",
    "StoreFailure",
    "SwapRejected",
    # Orders
    "Order",
    "OrderAction",
    "OrderStatus",
    "Pair",
    "Quote",
    "SwapResult",
]
