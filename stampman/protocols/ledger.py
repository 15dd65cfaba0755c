"""Ledger store protocol."""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stampman.models import StampBalance, StampHistoryEntry


@dataclass(frozen=True)
class BalanceInfo:
    """Read-only balance snapshot for wallet passes and UI."""

    customer_id: str
    cafe_id: str
    count: int
    goal: int
    total_earned: int
    total_used: int
    rewards_available: int
    stamps_to_next_reward: int


@runtime_checkable
class LedgerStore(Protocol):
    """
    Durable storage for stamp balances and their history.

    Implemented by stampman.store.DjangoLedgerStore.
    """

    def get_balance(self, customer_id: str, cafe_id: str) -> "StampBalance | None":
        ...

    def get_balance_for_update(self, customer_id: str, cafe_id: str) -> "StampBalance | None":
        """Same as get_balance, holding a row lock until the transaction ends."""
        ...

    def create_balance(self, customer_id: str, cafe_id: str) -> "StampBalance":
        """
        Create an empty balance.

        Safe under concurrent first earns: returns the existing row when
        another request created it first.
        """
        ...

    def update_balance(
        self,
        balance: "StampBalance",
        count: int,
        total_earned: int,
        total_used: int,
    ) -> "StampBalance":
        """
        Write all three counters in one statement, conditioned on the
        values `balance` was read with.

        Raises:
            StampmanError(PERSISTENCE_ERROR): If the row changed meanwhile
        """
        ...

    def append_history(
        self,
        balance: "StampBalance",
        entry_type: str,
        amount: int,
        source: str = "",
        order_id: str = "",
        merchant_id: str = "",
        created_at: datetime | None = None,
    ) -> "StampHistoryEntry":
        ...

    def query_history(
        self,
        customer_id: str,
        cafe_id: str,
        entry_type: str,
        since: datetime,
    ) -> "list[StampHistoryEntry]":
        """Entries of one type created at or after `since`."""
        ...

    def count_history(
        self,
        customer_id: str,
        cafe_id: str,
        entry_type: str,
        since: datetime,
    ) -> int:
        ...

    def has_history(
        self,
        customer_id: str,
        cafe_id: str,
        entry_type: str,
        since: datetime,
    ) -> bool:
        ...

    def list_balances(self, customer_id: str) -> "list[StampBalance]":
        """All balances of a customer."""
        ...

    def list_history(self, customer_id: str, cafe_id: str, limit: int = 50) -> "list[StampHistoryEntry]":
        """Ledger entries of one balance, newest first."""
        ...
