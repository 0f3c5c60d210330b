"""Cross-venue AMM arbitrage duels."""

__version__ = "0.1.0"
