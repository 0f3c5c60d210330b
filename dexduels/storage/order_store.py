"""Durable record of every leg attempted.

The engine needs only three operations from a store: insert a new order by id,
update the status/tx of an existing order, and list orders by (status, action)
oldest first. Every failure of those operations surfaces as ``StoreFailure``.
"""

from __future__ import annotations

from typing import Any, Protocol

import asyncpg
import msgspec
import structlog

from dexduels.core.errors import StoreFailure
from dexduels.core.orders import (
    Order,
    OrderAction,
    OrderStatus,
    order_from_record,
    order_to_record,
)
from dexduels.core.types import OrderId
from dexduels.utils.db_config import DatabaseSettings
from dexduels.utils.resilience import with_exponential_backoff

log = structlog.get_logger()


class OrderStore(Protocol):
    """Keyed insert/update/query capability consumed by the engine."""

    async def insert(self, order: Order) -> None:
        """Persist a new order; fails on duplicate id."""
        ...

    async def update_status(
        self, order_id: OrderId, status: OrderStatus, tx: dict[str, Any] | None
    ) -> None:
        """Set the final status and transaction result of an existing order."""
        ...

    async def find(
        self,
        *,
        status: OrderStatus | None = None,
        action: OrderAction | None = None,
    ) -> list[Order]:
        """Orders matching the filters, sorted by timestamp ascending."""
        ...


class InMemoryOrderStore:
    """Process-local store for dry runs and tests.

    Keeps storage records rather than ``Order`` objects so that reads go
    through the same codec as the Postgres store.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self.writes = 0

    async def insert(self, order: Order) -> None:
        if order.id in self._records:
            raise StoreFailure(f"duplicate order id {order.id}")
        self._records[order.id] = order_to_record(order)
        self.writes += 1

    async def update_status(
        self, order_id: OrderId, status: OrderStatus, tx: dict[str, Any] | None
    ) -> None:
        record = self._records.get(order_id)
        if record is None:
            raise StoreFailure(f"unknown order id {order_id}")
        record["status"] = status.value
        record["tx"] = tx
        self.writes += 1

    async def find(
        self,
        *,
        status: OrderStatus | None = None,
        action: OrderAction | None = None,
    ) -> list[Order]:
        rows = [
            record
            for record in self._records.values()
            if (status is None or record["status"] == status.value)
            and (action is None or record["action"] == action.value)
        ]
        rows.sort(key=lambda record: record["ts"])
        return [order_from_record(record) for record in rows]

    async def get(self, order_id: str) -> Order | None:
        record = self._records.get(order_id)
        return order_from_record(record) if record is not None else None

    def __len__(self) -> int:
        return len(self._records)


CREATE_ORDERS_TABLE = """
CREATE TABLE IF NOT EXISTS orders (
    id          TEXT PRIMARY KEY,
    hedge_to    TEXT,
    venue_name  TEXT NOT NULL,
    sym_in      TEXT NOT NULL,
    sym_out     TEXT NOT NULL,
    amount_in   NUMERIC,
    amount_out  NUMERIC,
    action      TEXT NOT NULL,
    status      TEXT NOT NULL,
    tx          JSONB,
    ts          BIGINT NOT NULL,
    CHECK ((amount_in IS NULL) <> (amount_out IS NULL))
);
CREATE INDEX IF NOT EXISTS orders_status_action_ts ON orders (status, action, ts);
"""

_COLUMNS = (
    "id",
    "hedge_to",
    "venue_name",
    "sym_in",
    "sym_out",
    "amount_in",
    "amount_out",
    "action",
    "status",
    "tx",
    "ts",
)


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb",
        encoder=lambda value: msgspec.json.encode(value).decode(),
        decoder=msgspec.json.decode,
        schema="pg_catalog",
    )


@with_exponential_backoff(
    max_retries=5,
    base_delay=1.0,
    max_delay=10.0,
    retry_on=(OSError, asyncpg.CannotConnectNowError),
)
async def _create_pool(settings: DatabaseSettings) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        **settings.asyncpg_kwargs(),
        min_size=settings.min_size,
        max_size=settings.max_size,
        command_timeout=settings.timeout,
        init=_init_connection,
    )


class PostgresOrderStore:
    """Order store backed by an asyncpg pool."""

    def __init__(self, settings: DatabaseSettings | None = None, pool: asyncpg.Pool | None = None) -> None:
        self.settings = settings or DatabaseSettings()
        self.pool = pool

    async def connect(self) -> None:
        """Create the pool and the orders table if needed."""
        if self.pool is None:
            try:
                self.pool = await _create_pool(self.settings)
            except (OSError, asyncpg.PostgresError) as e:
                raise StoreFailure(f"cannot connect to order store: {e}") from e
        try:
            await self.pool.execute(CREATE_ORDERS_TABLE)
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreFailure(f"cannot prepare orders table: {e}") from e
        log.info(
            "order_store.connected",
            dsn=self.settings.get_dsn(),
        )

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            log.info("order_store.closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise StoreFailure("order store is not connected")
        return self.pool

    async def insert(self, order: Order) -> None:
        pool = self._require_pool()
        values = [getattr(order, column) for column in _COLUMNS]
        values[_COLUMNS.index("action")] = order.action.value
        values[_COLUMNS.index("status")] = order.status.value
        placeholders = ", ".join(f"${i}" for i in range(1, len(_COLUMNS) + 1))
        try:
            await pool.execute(
                f"INSERT INTO orders ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                *values,
            )
        except asyncpg.UniqueViolationError as e:
            raise StoreFailure(f"duplicate order id {order.id}") from e
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreFailure(f"insert of order {order.id} failed: {e}") from e
        log.debug("order_store.inserted", order_id=order.id, action=order.action.value)

    async def update_status(
        self, order_id: OrderId, status: OrderStatus, tx: dict[str, Any] | None
    ) -> None:
        pool = self._require_pool()
        try:
            result = await pool.execute(
                "UPDATE orders SET status = $2, tx = $3 WHERE id = $1",
                order_id,
                status.value,
                tx,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreFailure(f"update of order {order_id} failed: {e}") from e
        if result == "UPDATE 0":
            raise StoreFailure(f"unknown order id {order_id}")
        log.debug("order_store.updated", order_id=order_id, status=status.value)

    async def find(
        self,
        *,
        status: OrderStatus | None = None,
        action: OrderAction | None = None,
    ) -> list[Order]:
        pool = self._require_pool()
        clauses: list[str] = []
        args: list[str] = []
        if status is not None:
            args.append(status.value)
            clauses.append(f"status = ${len(args)}")
        if action is not None:
            args.append(action.value)
            clauses.append(f"action = ${len(args)}")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            rows = await pool.fetch(
                f"SELECT {', '.join(_COLUMNS)} FROM orders{where} ORDER BY ts ASC",
                *args,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreFailure(f"order query failed: {e}") from e
        return [order_from_record(dict(row)) for row in rows]
