"""Duel engine settings.

Configuration priority (highest to lowest):
1. Environment variables
2. .env file
3. Default values

Example .env:
    QUOTE_SYMBOLS=flexUSD,WBCH
    BASE_SYMBOL=BCH
    DEXDUELS_DEXES=benswap,mistswap
    INTERVAL=10
    BASE_QTY=0.5
    TRIGGER_PROFIT_IN_USD=2
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Annotated

from pydantic import BeforeValidator, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from dexduels.core.errors import ConfigurationError


class StoreBackend(StrEnum):
    POSTGRES = "postgres"
    MEMORY = "memory"


def _split_csv(v: object) -> object:
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    return v


class DuelSettings(BaseSettings):
    """Recognized options of the duel engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        validate_default=True,
    )

    quote_symbols: Annotated[list[str], NoDecode, BeforeValidator(_split_csv)] = Field(
        alias="QUOTE_SYMBOLS", min_length=1
    )
    base_symbol: str = Field(alias="BASE_SYMBOL", min_length=1)
    venues: Annotated[list[str], NoDecode, BeforeValidator(_split_csv)] = Field(
        alias="DEXDUELS_DEXES", min_length=2
    )
    interval: float = Field(default=10.0, gt=0, alias="INTERVAL", description="Seconds between scan cycles")
    base_qty: Decimal = Field(alias="BASE_QTY", gt=0, description="Default trade size in base units")
    trade_sizes: dict[str, Decimal] = Field(
        default_factory=dict,
        alias="TRADE_SIZES",
        description="Per-quote-symbol trade size overrides (JSON object)",
    )
    trigger_profit: Decimal = Field(alias="TRIGGER_PROFIT_IN_USD", ge=0)
    numeraire: str = Field(default="flexUSD", alias="NUMERAIRE_SYMBOL")
    hedge_delay: float = Field(
        default=5.0, ge=0, alias="HEDGE_DELAY", description="Seconds to wait for arb settlement"
    )
    store_backend: StoreBackend = Field(default=StoreBackend.POSTGRES, alias="STORE_BACKEND")
    dry_run: bool = Field(default=True, alias="DRY_RUN")

    @field_validator("trade_sizes", mode="after")
    @classmethod
    def validate_trade_sizes(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        for symbol, size in v.items():
            if size <= 0:
                raise ValueError(f"trade size for {symbol} must be positive")
        return v

    @model_validator(mode="after")
    def validate_universe(self) -> DuelSettings:
        if len(set(self.venues)) != len(self.venues):
            raise ValueError(f"duplicate venue in DEXDUELS_DEXES: {self.venues}")
        if self.base_symbol in self.quote_symbols:
            raise ValueError(f"base symbol {self.base_symbol} cannot also be a quote symbol")
        unknown = set(self.trade_sizes) - set(self.quote_symbols)
        if unknown:
            raise ValueError(f"trade sizes for unconfigured quote symbols: {sorted(unknown)}")
        return self


def load_duel_settings(**overrides: object) -> DuelSettings:
    """Load settings, turning validation errors into a startup ``ConfigurationError``."""
    try:
        return DuelSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigurationError(f"invalid duel settings: {e}") from e
