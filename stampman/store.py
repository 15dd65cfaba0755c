"""
Django ORM ledger store.

All balance writes go through update_balance(), a compare-and-swap on the
counters the caller read. Callers lock the row first with
get_balance_for_update() inside transaction.atomic(), so the CAS only
fails when something bypassed the lock.
"""

import logging
from datetime import datetime

from django.db import IntegrityError, transaction
from django.utils import timezone

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import StampBalance, StampHistoryEntry

logger = logging.getLogger(__name__)


class DjangoLedgerStore:
    """LedgerStore implementation backed by the stampman models."""

    def get_balance(self, customer_id: str, cafe_id: str) -> StampBalance | None:
        try:
            return StampBalance.objects.get(customer_id=customer_id, cafe_id=cafe_id)
        except StampBalance.DoesNotExist:
            return None

    def get_balance_for_update(self, customer_id: str, cafe_id: str) -> StampBalance | None:
        """
        Get balance with row-level lock for mutation.

        MUST be called inside transaction.atomic().
        """
        try:
            return StampBalance.objects.select_for_update().get(
                customer_id=customer_id,
                cafe_id=cafe_id,
            )
        except StampBalance.DoesNotExist:
            return None

    def create_balance(self, customer_id: str, cafe_id: str) -> StampBalance:
        """
        Insert an empty balance, or return the one a concurrent request
        inserted first (unique constraint on customer_id + cafe_id).
        """
        try:
            with transaction.atomic():
                return StampBalance.objects.create(
                    customer_id=customer_id,
                    cafe_id=cafe_id,
                    count=0,
                    total_earned=0,
                    total_used=0,
                )
        except IntegrityError:
            existing = self.get_balance(customer_id, cafe_id)
            if existing is None:
                # Not a duplicate, some other constraint failed
                raise
            logger.debug("Balance %s@%s created concurrently, reusing it", customer_id, cafe_id)
            return existing

    def update_balance(
        self,
        balance: StampBalance,
        count: int,
        total_earned: int,
        total_used: int,
    ) -> StampBalance:
        """
        Persist count, total_earned and total_used together.

        The UPDATE only matches if the row still holds the counters
        `balance` was read with.

        Raises:
            StampmanError(PERSISTENCE_ERROR): If the row changed meanwhile
        """
        now = timezone.now()
        updated = StampBalance.objects.filter(
            pk=balance.pk,
            count=balance.count,
            total_earned=balance.total_earned,
            total_used=balance.total_used,
        ).update(
            count=count,
            total_earned=total_earned,
            total_used=total_used,
            updated_at=now,
        )
        if updated != 1:
            raise StampmanError(
                ErrorCode.PERSISTENCE_ERROR,
                reason="concurrent_update",
                balance_id=balance.pk,
            )

        balance.count = count
        balance.total_earned = total_earned
        balance.total_used = total_used
        balance.updated_at = now
        return balance

    def append_history(
        self,
        balance: StampBalance,
        entry_type: str,
        amount: int,
        source: str = "",
        order_id: str = "",
        merchant_id: str = "",
        created_at: datetime | None = None,
    ) -> StampHistoryEntry:
        return StampHistoryEntry.objects.create(
            balance=balance,
            entry_type=entry_type,
            amount=amount,
            source=source or "",
            order_id=order_id or "",
            merchant_id=merchant_id or "",
            created_at=created_at or timezone.now(),
        )

    def _history_qs(self, customer_id: str, cafe_id: str, entry_type: str, since: datetime):
        return StampHistoryEntry.objects.filter(
            balance__customer_id=customer_id,
            balance__cafe_id=cafe_id,
            entry_type=entry_type,
            created_at__gte=since,
        )

    def query_history(
        self,
        customer_id: str,
        cafe_id: str,
        entry_type: str,
        since: datetime,
    ) -> list[StampHistoryEntry]:
        return list(self._history_qs(customer_id, cafe_id, entry_type, since))

    def count_history(self, customer_id: str, cafe_id: str, entry_type: str, since: datetime) -> int:
        return self._history_qs(customer_id, cafe_id, entry_type, since).count()

    def has_history(self, customer_id: str, cafe_id: str, entry_type: str, since: datetime) -> bool:
        return self._history_qs(customer_id, cafe_id, entry_type, since).exists()

    # ======================================================================
    # Read helpers (wallet passes, "my cafés")
    # ======================================================================

    def list_balances(self, customer_id: str) -> list[StampBalance]:
        """All balances of a customer, highest stamp count first."""
        return list(StampBalance.objects.filter(customer_id=customer_id).order_by("-count", "-updated_at"))

    def list_history(self, customer_id: str, cafe_id: str, limit: int = 50) -> list[StampHistoryEntry]:
        """Ledger entries of one balance, newest first."""
        return list(
            StampHistoryEntry.objects.filter(
                balance__customer_id=customer_id,
                balance__cafe_id=cafe_id,
            )[:limit]
        )
