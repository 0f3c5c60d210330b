"""Chain and venue configuration for Uniswap-V2 style routers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import msgspec
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from web3 import Web3

from dexduels.core.errors import ConfigurationError


class Token(msgspec.Struct, frozen=True):
    """Entry of the token list shipped with the venue assets."""

    symbol: str
    address: str
    decimals: int = 18
    name: str | None = None


def _validate_address(v: str) -> str:
    if not v.startswith("0x"):
        raise ValueError(f"Address must start with 0x: {v}")
    if len(v) != 42:
        raise ValueError(f"Address must be 42 chars (0x + 40 hex): {v}")
    try:
        int(v[2:], 16)
    except ValueError as e:
        raise ValueError(f"Address must be valid hex string: {v}") from e
    return Web3.to_checksum_address(v)


class ChainSettings(BaseSettings):
    """Typed configuration for the chain client, wallet and venue routers.

    Example .env:
        SMART_BCH_HTTPS=https://smartbch.fountainhead.cash/mainnet
        WALLET_PRIVATE_KEY=0x...
        WALLET_ADDRESS=0x...
        TOKENS_FILE=assets/tokens.json
        VENUE_ROUTERS={"benswap": "0x...", "mistswap": "0x..."}
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    rpc_url: SecretStr | None = Field(default=None, alias="SMART_BCH_HTTPS")
    private_key: SecretStr | None = Field(default=None, alias="WALLET_PRIVATE_KEY")
    wallet_address: str | None = Field(default=None, alias="WALLET_ADDRESS")
    tokens_file: Path = Field(default=Path("assets/tokens.json"), alias="TOKENS_FILE")

    native_symbol: str = Field(default="BCH", alias="NATIVE_SYMBOL")
    wrapped_native_symbol: str = Field(default="WBCH", alias="WRAPPED_NATIVE_SYMBOL")
    routing_bases: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["WBCH", "flexUSD"], alias="ROUTING_BASES"
    )
    venue_routers: dict[str, str] = Field(default_factory=dict, alias="VENUE_ROUTERS")

    gas_price_wei: int = Field(default=1_050_000_000, gt=0, alias="GAS_PRICE_WEI")
    gas_limit: int = Field(default=180_000, gt=0, alias="GAS_LIMIT")
    slippage_bps: int = Field(default=10, ge=0, le=10_000, alias="SLIPPAGE_BPS")
    deadline_seconds: int = Field(default=50, gt=0, alias="DEADLINE_SECONDS")
    quote_timeout: float = Field(default=8.0, gt=0, alias="QUOTE_TIMEOUT")
    receipt_timeout: float = Field(default=120.0, gt=0, alias="RECEIPT_TIMEOUT")

    @field_validator("routing_bases", mode="before")
    @classmethod
    def split_bases(cls, v: object) -> object:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("wallet_address", mode="before")
    @classmethod
    def validate_wallet(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        return _validate_address(v)

    @field_validator("venue_routers", mode="after")
    @classmethod
    def validate_routers(cls, v: dict[str, str]) -> dict[str, str]:
        return {name.lower(): _validate_address(addr) for name, addr in v.items()}

    def get_rpc_url(self) -> str:
        """Return the RPC endpoint or fail at startup."""
        if self.rpc_url is None:
            raise ConfigurationError("RPC URL missing (SMART_BCH_HTTPS)")
        return self.rpc_url.get_secret_value().strip()

    def router_for(self, venue: str) -> str:
        """Return the router address configured for ``venue``.

        ``VENUE_ROUTERS`` wins over a per-venue ``<VENUE>_ROUTER`` variable.
        """
        address = self.venue_routers.get(venue.lower())
        if address is None:
            raw = os.getenv(f"{venue.upper()}_ROUTER")
            if not raw:
                msg = f"Router address missing for venue {venue} (VENUE_ROUTERS or {venue.upper()}_ROUTER)"
                raise ConfigurationError(msg)
            try:
                address = _validate_address(raw.strip())
            except ValueError as e:
                raise ConfigurationError(f"Invalid router address for {venue}: {e}") from e
        return address


def load_chain_settings(**overrides: object) -> ChainSettings:
    """Load chain settings, turning validation errors into ``ConfigurationError``."""
    try:
        return ChainSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigurationError(f"invalid chain settings: {e}") from e


def load_tokens(path: Path) -> dict[str, Token]:
    """Load a token list JSON file keyed by symbol."""
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Token list unreadable: {path}") from e
    try:
        tokens = msgspec.json.decode(raw, type=list[Token])
    except msgspec.DecodeError as e:
        raise ConfigurationError(f"Token list malformed: {path}: {e}") from e
    return {token.symbol: token for token in tokens}
