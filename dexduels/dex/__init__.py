"""Venue adapters for Uniswap-V2 style routers on smartBCH."""

from dexduels.dex.venue import PaperVenue, Venue

__all__ = [
    "PaperVenue",
    "Venue",
]
