"""Shared type definitions using Python 3.12+ modern syntax."""

# Type aliases using PEP 695 syntax
type Symbol = str
type VenueName = str
type OrderId = str
