"""Pick the single opportunity to execute in a scan cycle."""

from __future__ import annotations

from collections.abc import Iterable

from dexduels.live.scanner import Opportunity


def select_best(opportunities: Iterable[Opportunity]) -> Opportunity | None:
    """Return the most profitable opportunity, or None when there is none.

    Ties keep the first-seen candidate.
    """
    best: Opportunity | None = None
    for opp in opportunities:
        if best is None or opp.estimated_profit > best.estimated_profit:
            best = opp
    return best
