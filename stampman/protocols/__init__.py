"""Stampman protocols."""

from stampman.protocols.cafes import CafeBackend, CafeInfo
from stampman.protocols.ledger import BalanceInfo, LedgerStore

__all__ = [
    # Cafés
    "CafeBackend",
    "CafeInfo",
    # Ledger
    "LedgerStore",
    "BalanceInfo",
]
