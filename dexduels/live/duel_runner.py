"""Scan loop: recover, then scan/select/execute at a fixed interval."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from dexduels.live.coordinator import ExecutionCoordinator, ExecutionReport
from dexduels.live.recovery import recover_pending_hedges
from dexduels.live.scanner import OpportunityScanner
from dexduels.live.selector import select_best
from dexduels.live.universe import PairUniverse
from dexduels.storage.order_store import OrderStore

log = structlog.get_logger()


@dataclass
class DuelRunner:
    """Run the duel engine until stopped.

    Cycles never overlap and a stop request is only honoured between cycles.
    """

    universe: PairUniverse
    scanner: OpportunityScanner
    coordinator: ExecutionCoordinator
    store: OrderStore
    interval: float = 10.0

    cycles: int = 0
    scan_failures: int = 0
    executions: int = 0
    unhedged: int = 0
    _stop: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    async def run(self) -> None:
        """Resolve pending hedges, then loop until ``stop`` is called."""
        recovered = await recover_pending_hedges(self.store, self.universe)
        log.info(
            "duels.started",
            duels=[duel.label for duel in self.universe.duels],
            pairs=[str(pair) for pair in self.universe.pairs],
            recovered=len(recovered),
            interval=self.interval,
        )
        try:
            while not self._stop.is_set():
                await self.run_cycle()
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    continue
        except asyncio.CancelledError:
            log.info("duels.run_cancelled")
            raise
        finally:
            log.info(
                "duels.stopped",
                cycles=self.cycles,
                executions=self.executions,
                scan_failures=self.scan_failures,
                unhedged=self.unhedged,
            )

    async def run_cycle(self) -> ExecutionReport | None:
        """One scan, select and (at most one) execution."""
        self.cycles += 1
        try:
            opportunities = await self.scanner.scan()
        except Exception:
            log.exception("duels.scan_failed", cycle=self.cycles)
            self.scan_failures += 1
            return None

        best = select_best(opportunities)
        if best is None:
            log.debug("duels.no_opportunity", cycle=self.cycles)
            return None

        report = await self.coordinator.execute(best)
        self.executions += 1
        if report.unhedged:
            self.unhedged += 1
        return report

    def stop(self) -> None:
        """Request a graceful shutdown."""
        self._stop.set()
