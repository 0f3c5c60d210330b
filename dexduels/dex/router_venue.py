"""Venue adapter for Uniswap-V2 style routers (BenSwap, MistSwap, ...).

Quotes come from the router's ``getAmountsOut``/``getAmountsIn`` over a small
set of candidate paths through the configured routing bases, which keeps the
multi-hop search on-chain instead of re-implementing pair reserves math here.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from decimal import Decimal
from typing import Any

import structlog

from dexduels.core.errors import QuoteUnavailable, SwapRejected
from dexduels.core.orders import Pair, Quote, SwapResult
from dexduels.dex.chain import ChainContext
from dexduels.utils.resilience import with_timeout

log = structlog.get_logger()

_PATH_ARGS = [
    {"internalType": "uint256", "name": "amount", "type": "uint256"},
    {"internalType": "address[]", "name": "path", "type": "address[]"},
]
_SWAP_TAIL = [
    {"internalType": "address[]", "name": "path", "type": "address[]"},
    {"internalType": "address", "name": "to", "type": "address"},
    {"internalType": "uint256", "name": "deadline", "type": "uint256"},
]
_AMOUNTS = [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}]


def _uint(name: str) -> dict[str, str]:
    return {"internalType": "uint256", "name": name, "type": "uint256"}


def _fn(name: str, inputs: list[dict[str, str]], mutability: str) -> dict[str, Any]:
    return {
        "inputs": inputs,
        "name": name,
        "outputs": _AMOUNTS,
        "stateMutability": mutability,
        "type": "function",
    }


ROUTER_V2_ABI: list[dict[str, Any]] = [
    _fn("getAmountsOut", _PATH_ARGS, "view"),
    _fn("getAmountsIn", _PATH_ARGS, "view"),
    _fn("swapExactTokensForTokens", [_uint("amountIn"), _uint("amountOutMin"), *_SWAP_TAIL], "nonpayable"),
    _fn("swapTokensForExactTokens", [_uint("amountOut"), _uint("amountInMax"), *_SWAP_TAIL], "nonpayable"),
    _fn("swapExactETHForTokens", [_uint("amountOutMin"), *_SWAP_TAIL], "payable"),
    _fn("swapETHForExactTokens", [_uint("amountOut"), *_SWAP_TAIL], "payable"),
    _fn("swapExactTokensForETH", [_uint("amountIn"), _uint("amountOutMin"), *_SWAP_TAIL], "nonpayable"),
    _fn("swapTokensForExactETH", [_uint("amountOut"), _uint("amountInMax"), *_SWAP_TAIL], "nonpayable"),
]

BPS = Decimal(10_000)


class RouterVenue:
    """Quote/swap capability backed by one Uniswap-V2 router contract.

    Attributes:
        name: Venue name used in configuration and persisted orders
        ctx: Shared chain context (web3 client, account, tokens)
        router: Router contract bound to ``ROUTER_V2_ABI``
        max_hops: Maximum number of pools a path may cross
    """

    def __init__(self, name: str, ctx: ChainContext, router_address: str, max_hops: int = 3) -> None:
        self.name = name
        self.ctx = ctx
        self.max_hops = max_hops
        self.router_address = ctx.w3.to_checksum_address(router_address)
        self.router = ctx.w3.eth.contract(address=self.router_address, abi=ROUTER_V2_ABI)

    @classmethod
    def from_context(cls, name: str, ctx: ChainContext) -> RouterVenue:
        return cls(name, ctx, ctx.settings.router_for(name))

    def __repr__(self) -> str:
        return f"RouterVenue({self.name!r}, router={self.router_address})"

    # ------------------------------------------------------------------ quotes

    async def get_quotes(self, pair: Pair, amount: Decimal) -> Quote:
        try:
            bid, ask = await with_timeout(
                asyncio.gather(
                    self._best_amount(pair.base, pair.quote, amount, exact_in=True),
                    self._best_amount(pair.quote, pair.base, amount, exact_in=False),
                ),
                timeout=self.ctx.settings.quote_timeout,
                error_message=f"{self.name} quote {pair} timed out",
            )
        except QuoteUnavailable:
            raise
        except Exception as e:
            log.warning("venue.quote_failed", venue=self.name, pair=str(pair), error=str(e)[:200])
            raise QuoteUnavailable(self.name, pair.base, pair.quote, reason=type(e).__name__) from e

        log.debug(
            "venue.quoted",
            venue=self.name,
            pair=str(pair),
            amount=str(amount),
            bid=str(bid[0]),
            ask=str(ask[0]),
        )
        return Quote(bid=bid[0], ask=ask[0])

    def candidate_paths(self, sym_in: str, sym_out: str) -> list[list[str]]:
        """Token address paths from ``sym_in`` to ``sym_out`` through routing bases."""
        start = self.ctx.address_of(sym_in)
        end = self.ctx.address_of(sym_out)
        bases = [self.ctx.address_of(sym) for sym in self.ctx.settings.routing_bases]
        paths: list[list[str]] = []
        for hops in range(1, self.max_hops + 1):
            for middle in itertools.permutations(bases, hops - 1):
                path = [start, *middle, end]
                if len({addr.lower() for addr in path}) == len(path):
                    paths.append(path)
        return paths

    async def _best_amount(
        self, sym_in: str, sym_out: str, amount: Decimal, exact_in: bool
    ) -> tuple[Decimal, list[str]]:
        """Best counter-amount over all candidate paths.

        For exact-in ``amount`` is spent in ``sym_in`` and the maximum received
        ``sym_out`` is returned; for exact-out ``amount`` of ``sym_out`` is
        received and the minimum ``sym_in`` spent is returned.
        """
        paths = self.candidate_paths(sym_in, sym_out)
        if exact_in:
            raw = self.ctx.to_units(sym_in, amount)
            calls = [self.router.functions.getAmountsOut(raw, path).call() for path in paths]
        else:
            raw = self.ctx.to_units(sym_out, amount)
            calls = [self.router.functions.getAmountsIn(raw, path).call() for path in paths]
        results = await asyncio.gather(*calls, return_exceptions=True)

        best: tuple[int, list[str]] | None = None
        for path, result in zip(paths, results):
            if isinstance(result, BaseException):
                # Missing pool or no liquidity makes the router revert
                continue
            counter = int(result[-1] if exact_in else result[0])
            if counter <= 0:
                continue
            if best is None or (counter > best[0] if exact_in else counter < best[0]):
                best = (counter, path)

        if best is None:
            raise QuoteUnavailable(self.name, sym_in, sym_out)
        symbol = sym_out if exact_in else sym_in
        return self.ctx.from_units(symbol, best[0]), best[1]

    # ------------------------------------------------------------------- swaps

    async def swap(
        self,
        sym_in: str,
        sym_out: str,
        amount_in: Decimal | None = None,
        amount_out: Decimal | None = None,
    ) -> SwapResult:
        if (amount_in is None) == (amount_out is None):
            return SwapResult(status=False, error="exactly one of amount_in/amount_out required")
        try:
            receipt = await self._swap(sym_in, sym_out, amount_in, amount_out)
        except SwapRejected as e:
            log.warning("venue.swap_rejected", venue=self.name, error=e.error)
            return SwapResult(status=False, tx_hash=e.tx_hash, error=e.error or "reverted")
        except Exception as e:
            log.exception("venue.swap_failed", venue=self.name, sym_in=sym_in, sym_out=sym_out)
            return SwapResult(status=False, error=f"{type(e).__name__}: {str(e)[:200]}")

        tx_hash = receipt["transactionHash"]
        result = SwapResult(
            status=True,
            tx_hash=tx_hash.hex() if hasattr(tx_hash, "hex") else str(tx_hash),
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )
        log.info(
            "venue.swap_filled",
            venue=self.name,
            sym_in=sym_in,
            sym_out=sym_out,
            tx_hash=result.tx_hash,
        )
        return result

    async def _swap(
        self,
        sym_in: str,
        sym_out: str,
        amount_in: Decimal | None,
        amount_out: Decimal | None,
    ) -> dict[str, Any]:
        settings = self.ctx.settings
        slippage = Decimal(settings.slippage_bps) / BPS
        deadline = int(time.time()) + settings.deadline_seconds
        recipient = self.ctx.w3.to_checksum_address(self.ctx.wallet)
        native_in = self.ctx.is_native(sym_in)
        native_out = self.ctx.is_native(sym_out)
        fns = self.router.functions

        if amount_in is not None:
            expected, path = await self._best_amount(sym_in, sym_out, amount_in, exact_in=True)
            raw_in = self.ctx.to_units(sym_in, amount_in)
            min_out = self.ctx.to_units(sym_out, expected * (1 - slippage))
            if native_in:
                call, value = fns.swapExactETHForTokens(min_out, path, recipient, deadline), raw_in
            elif native_out:
                call, value = fns.swapExactTokensForETH(raw_in, min_out, path, recipient, deadline), 0
            else:
                call, value = fns.swapExactTokensForTokens(raw_in, min_out, path, recipient, deadline), 0
            allowance = raw_in
        else:
            assert amount_out is not None
            expected, path = await self._best_amount(sym_in, sym_out, amount_out, exact_in=False)
            raw_out = self.ctx.to_units(sym_out, amount_out)
            max_in = self.ctx.to_units(sym_in, expected * (1 + slippage))
            if native_in:
                call, value = fns.swapETHForExactTokens(raw_out, path, recipient, deadline), max_in
            elif native_out:
                call, value = fns.swapTokensForExactETH(raw_out, max_in, path, recipient, deadline), 0
            else:
                call, value = fns.swapTokensForExactTokens(raw_out, max_in, path, recipient, deadline), 0
            allowance = max_in

        await self.ctx.ensure_allowance(sym_in, self.router_address, allowance)
        tx = await call.build_transaction(await self.ctx.tx_params(value=value))
        log.info(
            "venue.swap_submitting",
            venue=self.name,
            sym_in=sym_in,
            sym_out=sym_out,
            hops=len(path) - 1,
            expected=str(expected),
        )
        receipt = await self.ctx.send(tx)
        if receipt.get("status") != 1:
            tx_hash = receipt.get("transactionHash")
            raise SwapRejected(
                self.name,
                tx_hash.hex() if hasattr(tx_hash, "hex") else str(tx_hash),
                error="reverted",
            )
        return receipt
