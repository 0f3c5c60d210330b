"""Command line entry point.

Usage:
    dexduels run                 # recover pending hedges, then scan forever
    dexduels orders              # pending hedges and un-hedged arb fills
    dexduels balances            # wallet balance of every configured symbol
    dexduels --json-logs --log-level DEBUG run
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Sequence

import msgspec
import structlog
from dotenv import load_dotenv

from dexduels.core.errors import ConfigurationError, StoreFailure
from dexduels.core.orders import Order, OrderAction, OrderStatus, order_to_record
from dexduels.dex.chain import ChainContext
from dexduels.dex.config import load_chain_settings
from dexduels.dex.router_venue import RouterVenue
from dexduels.dex.venue import PaperVenue, Venue
from dexduels.live.config import DuelSettings, StoreBackend, load_duel_settings
from dexduels.live.coordinator import ExecutionCoordinator
from dexduels.live.duel_runner import DuelRunner
from dexduels.live.recovery import find_unhedged_arbs
from dexduels.live.scanner import OpportunityScanner
from dexduels.live.universe import PairUniverse
from dexduels.storage.order_store import InMemoryOrderStore, OrderStore, PostgresOrderStore
from dexduels.utils.db_config import get_database_settings
from dexduels.utils.logging import LOG_LEVELS, configure_logging

log = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dexduels", description="Cross-venue AMM arbitrage")
    parser.add_argument("--log-level", default="INFO", choices=LOG_LEVELS, type=str.upper)
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Recover pending hedges, then run the scan loop")
    orders = sub.add_parser("orders", help="Report pending hedges and un-hedged arb fills")
    orders.add_argument("--json", action="store_true", help="Output as JSON")
    sub.add_parser("balances", help="Show wallet balances of configured symbols")
    return parser


async def open_store(settings: DuelSettings, *, report: bool = False) -> OrderStore:
    """Order store for a command.

    A dry run always gets a process-local store: simulated legs must never be
    recovered by a live run, and live pending hedges must never be settled by
    a simulated swap. The report reads whatever the durable store holds.
    """
    if report:
        if settings.store_backend is StoreBackend.MEMORY:
            raise ConfigurationError("the orders report needs STORE_BACKEND=postgres")
    elif settings.dry_run:
        log.warning("duels.dry_run_store", detail="simulated orders are kept in memory only")
        return InMemoryOrderStore()
    elif settings.store_backend is StoreBackend.MEMORY:
        log.warning("duels.memory_store", detail="orders are lost on exit")
        return InMemoryOrderStore()
    store = PostgresOrderStore(get_database_settings())
    await store.connect()
    return store


async def close_store(store: OrderStore) -> None:
    if isinstance(store, PostgresOrderStore):
        await store.close()


def build_venues(settings: DuelSettings, ctx: ChainContext) -> list[Venue]:
    venues: list[Venue] = []
    for name in settings.venues:
        venue: Venue = RouterVenue.from_context(name, ctx)
        if settings.dry_run:
            venue = PaperVenue(venue)
        venues.append(venue)
    return venues


def build_runner(settings: DuelSettings, venues: Sequence[Venue], store: OrderStore) -> DuelRunner:
    universe = PairUniverse.from_symbols(
        settings.base_symbol,
        settings.quote_symbols,
        venues,
        base_qty=settings.base_qty,
        trade_sizes=settings.trade_sizes,
    )
    return DuelRunner(
        universe=universe,
        scanner=OpportunityScanner(universe, settings.trigger_profit, settings.numeraire),
        coordinator=ExecutionCoordinator(store, hedge_delay=settings.hedge_delay),
        store=store,
        interval=settings.interval,
    )


async def run_command() -> None:
    settings = load_duel_settings()
    ctx = ChainContext.from_settings(load_chain_settings())
    venues = build_venues(settings, ctx)
    store = await open_store(settings)
    runner = build_runner(settings, venues, store)

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGTERM, runner.stop)
    log.info("duels.configured", dry_run=settings.dry_run, store=settings.store_backend.value)
    try:
        await runner.run()
    finally:
        loop.remove_signal_handler(signal.SIGTERM)
        await close_store(store)


def _format_order(order: Order) -> str:
    amount = f"in={order.amount_in}" if order.is_exact_in else f"out={order.amount_out}"
    return (
        f"  {order.id}  {order.venue_name:<10} {order.sym_in}->{order.sym_out} "
        f"{amount} status={order.status}"
    )


async def orders_command(as_json: bool) -> None:
    settings = load_duel_settings()
    store = await open_store(settings, report=True)
    try:
        pending = await store.find(status=OrderStatus.NEW, action=OrderAction.HEDGE)
        unhedged = await find_unhedged_arbs(store)
    finally:
        await close_store(store)

    if as_json:
        report = {
            "pending_hedges": [order_to_record(order) for order in pending],
            "unhedged_arbs": [order_to_record(order) for order in unhedged],
        }
        print(msgspec.json.format(msgspec.json.encode(report)).decode())
        return

    print(f"Pending hedges ({len(pending)}):")
    for order in pending:
        print(_format_order(order))
    print(f"Un-hedged arb fills ({len(unhedged)}):")
    for order in unhedged:
        print(_format_order(order))


async def balances_command() -> None:
    settings = load_duel_settings()
    ctx = ChainContext.from_settings(load_chain_settings())
    symbols = [settings.base_symbol, *settings.quote_symbols]
    balances = await asyncio.gather(*(ctx.get_balance(symbol) for symbol in symbols))
    print(f"Wallet {ctx.wallet}")
    for symbol, balance in zip(symbols, balances, strict=True):
        print(f"  {symbol:<10} {balance}")


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(json_output=args.json_logs, level=args.log_level)

    if args.command == "run":
        command = run_command()
    elif args.command == "orders":
        command = orders_command(args.json)
    else:
        command = balances_command()

    try:
        asyncio.run(command)
    except KeyboardInterrupt:
        log.info("duels.interrupted")
    except ConfigurationError as e:
        log.error("duels.configuration_error", error=str(e))
        return 2
    except StoreFailure:
        log.exception("duels.store_failure")
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
