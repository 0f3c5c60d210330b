"""Tests for the command line entry point (no chain or database access)."""

from decimal import Decimal
from pathlib import Path

import pytest

from dexduels.cli import build_parser, build_runner, main, open_store
from dexduels.core.orders import Order, OrderAction, OrderStatus, Pair, Quote, SwapResult, order_to_record
from dexduels.dex.venue import PaperVenue
from dexduels.live.config import load_duel_settings
from dexduels.live.recovery import recover_pending_hedges
from dexduels.storage.order_store import InMemoryOrderStore


class DummyVenue:
    def __init__(self, name: str, quote: Quote) -> None:
        self.name = name
        self.quote = quote
        self.swaps: list[tuple] = []

    async def get_quotes(self, pair: Pair, amount: Decimal) -> Quote:
        return self.quote

    async def swap(self, sym_in, sym_out, amount_in=None, amount_out=None) -> SwapResult:
        self.swaps.append((sym_in, sym_out, amount_in, amount_out))
        return SwapResult(status=True, tx_hash="0x01")


class FakePostgresStore(InMemoryOrderStore):
    """Durable store stand-in; every instance sees the same rows."""

    rows: dict = {}
    opened = 0

    def __init__(self, settings=None) -> None:
        super().__init__()
        self._records = FakePostgresStore.rows
        self.connected = False

    async def connect(self) -> None:
        FakePostgresStore.opened += 1
        self.connected = True

    async def close(self) -> None:
        self.connected = False


def pending_hedge() -> Order:
    return Order(
        id="h-live",
        hedge_to="a-live",
        venue_name="mistswap",
        sym_in="flexUSD",
        sym_out="BCH",
        amount_out=Decimal("1"),
        action=OrderAction.HEDGE,
        ts=1,
    )


@pytest.fixture(autouse=True)
def keep_default_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    # Cached loggers would keep pytest's captured stdout after the test ends
    monkeypatch.setattr("dexduels.cli.configure_logging", lambda **_: None)


@pytest.fixture
def duel_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("QUOTE_SYMBOLS", "flexUSD")
    monkeypatch.setenv("BASE_SYMBOL", "BCH")
    monkeypatch.setenv("DEXDUELS_DEXES", "benswap,mistswap")
    monkeypatch.setenv("BASE_QTY", "1")
    monkeypatch.setenv("TRIGGER_PROFIT_IN_USD", "1")
    monkeypatch.setenv("HEDGE_DELAY", "0")
    monkeypatch.setenv("STORE_BACKEND", "postgres")
    monkeypatch.setattr(FakePostgresStore, "rows", {})
    monkeypatch.setattr(FakePostgresStore, "opened", 0)
    monkeypatch.setattr("dexduels.cli.PostgresOrderStore", FakePostgresStore)
    return monkeypatch


def test_parser_flags() -> None:
    args = build_parser().parse_args(["--log-level", "debug", "--json-logs", "orders", "--json"])
    assert args.command == "orders"
    assert args.log_level == "DEBUG"
    assert args.json_logs is True
    assert args.json is True


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.asyncio
async def test_dry_run_never_opens_durable_store(duel_env: pytest.MonkeyPatch) -> None:
    store = await open_store(load_duel_settings(dry_run=True))

    assert type(store) is InMemoryOrderStore
    assert FakePostgresStore.opened == 0


@pytest.mark.asyncio
async def test_live_run_opens_durable_store(duel_env: pytest.MonkeyPatch) -> None:
    store = await open_store(load_duel_settings(dry_run=False))

    assert isinstance(store, FakePostgresStore)
    assert store.connected


@pytest.mark.asyncio
async def test_dry_run_leaves_live_orders_alone(duel_env: pytest.MonkeyPatch) -> None:
    await FakePostgresStore().insert(pending_hedge())
    benswap = DummyVenue("benswap", Quote(bid=Decimal("105"), ask=Decimal("106")))
    mistswap = DummyVenue("mistswap", Quote(bid=Decimal("99"), ask=Decimal("100")))
    settings = load_duel_settings(dry_run=True)
    store = await open_store(settings)
    runner = build_runner(settings, [PaperVenue(benswap), PaperVenue(mistswap)], store)

    # Live pending hedge is not visible, so nothing is settled by a simulated swap
    assert await recover_pending_hedges(runner.store, runner.universe) == []
    report = await runner.run_cycle()

    assert report is not None and not report.unhedged
    assert benswap.swaps == [] and mistswap.swaps == []
    assert list(FakePostgresStore.rows) == ["h-live"]
    assert FakePostgresStore.rows["h-live"]["status"] == OrderStatus.NEW.value
    assert len(store) == 2


@pytest.mark.asyncio
async def test_live_recovery_sees_no_simulated_legs(duel_env: pytest.MonkeyPatch) -> None:
    benswap = DummyVenue("benswap", Quote(bid=Decimal("105"), ask=Decimal("106")))
    mistswap = DummyVenue("mistswap", Quote(bid=Decimal("99"), ask=Decimal("100")))
    dry = load_duel_settings(dry_run=True)
    dry_runner = build_runner(dry, [PaperVenue(benswap), PaperVenue(mistswap)], await open_store(dry))
    await dry_runner.run_cycle()

    live = load_duel_settings(dry_run=False)
    store = await open_store(live)
    await store.insert(pending_hedge())
    live_runner = build_runner(live, [benswap, mistswap], store)
    settled = await recover_pending_hedges(live_runner.store, live_runner.universe)

    assert [order.id for order in settled] == ["h-live"]
    assert mistswap.swaps == [("flexUSD", "BCH", None, Decimal("1"))]
    assert benswap.swaps == []


def test_orders_report_reads_durable_store(duel_env: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    FakePostgresStore.rows["h-live"] = order_to_record(pending_hedge())

    assert main(["orders"]) == 0
    out = capsys.readouterr().out
    assert "Pending hedges (1):" in out
    assert "h-live" in out
    assert "Un-hedged arb fills (0):" in out


def test_orders_report_refuses_memory_store(duel_env: pytest.MonkeyPatch) -> None:
    duel_env.setenv("STORE_BACKEND", "memory")
    assert main(["orders"]) == 2
    assert FakePostgresStore.opened == 0


def test_configuration_error_exit_code(duel_env: pytest.MonkeyPatch) -> None:
    duel_env.setenv("DEXDUELS_DEXES", "benswap")
    assert main(["orders"]) == 2
