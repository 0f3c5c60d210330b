"""Chain context shared by every venue adapter.

Built once at startup and passed by reference into each venue, so the engine
holds no module-level web3 client, wallet or contract handles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, cast

import structlog
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.types import Nonce, TxParams, Wei

from dexduels.core.errors import ConfigurationError
from dexduels.dex.config import ChainSettings, Token, load_tokens

log = structlog.get_logger()

ERC20_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "address", "name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

MAX_UINT256 = 2**256 - 1


@dataclass
class ChainContext:
    """Web3 client, signing account and token registry for one chain."""

    settings: ChainSettings
    w3: AsyncWeb3
    tokens: dict[str, Token]
    account: LocalAccount | None = None
    _nonce_floor: int = field(default=0, init=False, repr=False)

    @classmethod
    def from_settings(cls, settings: ChainSettings) -> ChainContext:
        """Build the context from environment-backed settings."""
        w3 = AsyncWeb3(AsyncHTTPProvider(settings.get_rpc_url(), request_kwargs={"timeout": 10}))
        tokens = load_tokens(settings.tokens_file)
        for symbol in (settings.wrapped_native_symbol, *settings.routing_bases):
            if symbol not in tokens:
                raise ConfigurationError(f"Token {symbol} missing from {settings.tokens_file}")
        account = None
        if settings.private_key is not None:
            account = Account.from_key(settings.private_key.get_secret_value())
        log.info(
            "chain.context_initialized",
            tokens=len(tokens),
            account=account.address if account else None,
        )
        return cls(settings=settings, w3=w3, tokens=tokens, account=account)

    @property
    def wallet(self) -> str:
        """Address that holds balances and receives swap outputs."""
        if self.settings.wallet_address:
            return self.settings.wallet_address
        if self.account is not None:
            return self.account.address
        raise ConfigurationError("No wallet configured (WALLET_ADDRESS or WALLET_PRIVATE_KEY)")

    def is_native(self, symbol: str) -> bool:
        return symbol == self.settings.native_symbol

    def token(self, symbol: str) -> Token:
        """Resolve a symbol to its token entry; the native coin maps to its wrapped token."""
        if self.is_native(symbol):
            symbol = self.settings.wrapped_native_symbol
        try:
            return self.tokens[symbol]
        except KeyError as e:
            raise ConfigurationError(f"Unknown token symbol {symbol}") from e

    def address_of(self, symbol: str) -> str:
        return self.w3.to_checksum_address(self.token(symbol).address)

    def to_units(self, symbol: str, amount: Decimal) -> int:
        return int(amount * (Decimal(10) ** self.token(symbol).decimals))

    def from_units(self, symbol: str, raw: int) -> Decimal:
        return Decimal(raw) / (Decimal(10) ** self.token(symbol).decimals)

    def erc20(self, symbol: str) -> Any:
        return self.w3.eth.contract(
            address=self.address_of(symbol),
            abi=ERC20_ABI,
        )

    async def get_balance(self, symbol: str) -> Decimal:
        """Wallet balance of ``symbol`` in whole units."""
        wallet = self.w3.to_checksum_address(self.wallet)
        if self.is_native(symbol):
            raw = await self.w3.eth.get_balance(wallet)
        else:
            raw = await self.erc20(symbol).functions.balanceOf(wallet).call()
        balance = self.from_units(symbol, raw)
        log.debug("chain.balance_fetched", symbol=symbol, balance=str(balance))
        return balance

    async def ensure_allowance(self, symbol: str, spender: str, amount: int) -> None:
        """Approve ``spender`` for the max amount when the allowance is short."""
        if self.is_native(symbol):
            return
        owner = self.w3.to_checksum_address(self._require_account().address)
        token = self.erc20(symbol)
        current = await token.functions.allowance(owner, spender).call()
        if current >= amount:
            return
        tx = await token.functions.approve(spender, MAX_UINT256).build_transaction(
            await self.tx_params()
        )
        receipt = await self.send(tx)
        log.info(
            "chain.token_approved",
            symbol=symbol,
            spender=spender,
            status=receipt.get("status"),
        )

    async def tx_params(self, value: int = 0) -> TxParams:
        """Base transaction parameters for the signing account."""
        account = self._require_account()
        pending = await self.w3.eth.get_transaction_count(account.address, "pending")
        nonce = max(pending, self._nonce_floor)
        params: TxParams = {
            "from": account.address,
            "nonce": cast(Nonce, nonce),
            "gasPrice": cast(Wei, self.settings.gas_price_wei),
            "value": cast(Wei, value),
        }
        return params

    async def send(self, tx: TxParams) -> dict[str, Any]:
        """Sign, send and wait for the receipt of ``tx``."""
        account = self._require_account()
        if "gas" not in tx:
            try:
                tx["gas"] = await self.w3.eth.estimate_gas(tx)
            except Exception as e:
                log.warning("chain.estimate_gas_failed", error=str(e)[:200])
                tx["gas"] = self.settings.gas_limit
        signed = account.sign_transaction(tx)
        self._nonce_floor = int(tx["nonce"]) + 1
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.settings.receipt_timeout
        )
        return dict(receipt)

    def _require_account(self) -> LocalAccount:
        if self.account is None:
            raise ConfigurationError("Private key required for transactions (WALLET_PRIVATE_KEY)")
        return self.account
