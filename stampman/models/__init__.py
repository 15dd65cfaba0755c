"""Stampman models.

- StampBalance: one stamp card per (customer, café)
- StampHistoryEntry: append-only earn/use ledger
- RedemptionToken: merchant-issued single-use stamp authorization
"""

from stampman.models.balance import StampBalance
from stampman.models.history import (
    ImmutableEntryError,
    StampEntryType,
    StampHistoryEntry,
    StampSource,
)
from stampman.models.token import RedemptionToken

__all__ = [
    "StampBalance",
    "StampHistoryEntry",
    "StampEntryType",
    "StampSource",
    "ImmutableEntryError",
    "RedemptionToken",
]
