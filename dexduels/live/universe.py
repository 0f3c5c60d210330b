"""Pair universe: configured pairs, active venues and the duels between them."""

from __future__ import annotations

import itertools
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from dexduels.core.errors import ConfigurationError
from dexduels.core.orders import Pair
from dexduels.core.types import Symbol, VenueName
from dexduels.dex.venue import Venue


@dataclass(frozen=True)
class Duel:
    """Unordered pairing of two distinct venues."""

    a: Venue
    b: Venue

    def __post_init__(self) -> None:
        if self.a.name == self.b.name:
            raise ValueError(f"a duel needs two distinct venues, got {self.a.name} twice")

    @property
    def label(self) -> str:
        return f"{self.a.name}<>{self.b.name}"


@dataclass
class PairUniverse:
    """Pairs to scan, venues to scan them on, and the trade size per pair."""

    pairs: Sequence[Pair]
    venues: Mapping[str, Venue]
    base_qty: Decimal
    trade_sizes: Mapping[str, Decimal] = field(default_factory=dict)
    duels: list[Duel] = field(init=False)

    def __post_init__(self) -> None:
        if len(self.venues) < 2:
            raise ConfigurationError("at least two active venues are required for a duel")
        # Fixed at startup, combination order follows venue configuration order
        self.duels = [Duel(a, b) for a, b in itertools.combinations(self.venues.values(), 2)]

    @classmethod
    def from_symbols(
        cls,
        base_symbol: Symbol,
        quote_symbols: Sequence[Symbol],
        venues: Sequence[Venue],
        base_qty: Decimal,
        trade_sizes: Mapping[str, Decimal] | None = None,
    ) -> PairUniverse:
        return cls(
            pairs=[Pair(base_symbol, quote) for quote in quote_symbols],
            venues={venue.name: venue for venue in venues},
            base_qty=base_qty,
            trade_sizes=dict(trade_sizes or {}),
        )

    def size_for(self, pair: Pair) -> Decimal:
        return self.trade_sizes.get(pair.quote, self.base_qty)

    def venue(self, name: VenueName) -> Venue:
        """Resolve an active venue by name."""
        try:
            return self.venues[name]
        except KeyError as e:
            msg = f"venue {name} is not active (active: {', '.join(self.venues)})"
            raise ConfigurationError(msg) from e
