"""Redemption service - spend one reward's worth of stamps."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError, transaction
from django.utils import timezone

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import StampBalance, StampEntryType
from stampman.protocols.cafes import CafeBackend
from stampman.protocols.ledger import LedgerStore
from stampman.services.accrual import get_cafe_or_raise
from stampman.signals import reward_redeemed, send_on_commit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedemptionResult:
    """Outcome of a successful redemption."""

    balance: StampBalance
    remaining_count: int


class RedemptionService:
    """
    Redeems exactly one stamp goal per call.

    Customers holding several rewards redeem them one call at a time.
    The sufficiency check runs under the row lock, so the UI's own
    balance check is advisory only.
    """

    def __init__(
        self,
        store: LedgerStore,
        cafes: CafeBackend,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.store = store
        self.cafes = cafes
        self.clock = clock

    def redeem(self, customer_id: str, cafe_id: str, order_id: str = "") -> RedemptionResult:
        """
        Spend stamp_goal stamps.

        Raises:
            StampmanError: CAFE_NOT_FOUND, BALANCE_NOT_FOUND,
                INSUFFICIENT_STAMPS or PERSISTENCE_ERROR
        """
        cafe = get_cafe_or_raise(self.cafes, cafe_id)
        goal = cafe.stamp_goal

        try:
            with transaction.atomic():
                balance = self.store.get_balance_for_update(customer_id, cafe_id)
                if balance is None:
                    raise StampmanError(
                        ErrorCode.BALANCE_NOT_FOUND,
                        customer_id=customer_id,
                        cafe_id=cafe_id,
                    )

                if balance.count < goal:
                    logger.info(
                        "Redemption refused for %s@%s: %d/%d stamps",
                        customer_id,
                        cafe_id,
                        balance.count,
                        goal,
                    )
                    raise StampmanError(
                        ErrorCode.INSUFFICIENT_STAMPS,
                        available=balance.count,
                        required=goal,
                    )

                balance = self.store.update_balance(
                    balance,
                    count=balance.count - goal,
                    total_earned=balance.total_earned,
                    total_used=balance.total_used + goal,
                )
                self.store.append_history(
                    balance,
                    entry_type=StampEntryType.USE,
                    amount=goal,
                    order_id=order_id,
                    created_at=self.clock(),
                )
        except DatabaseError as exc:
            logger.exception("Failed to persist redemption for %s@%s", customer_id, cafe_id)
            raise StampmanError(
                ErrorCode.PERSISTENCE_ERROR,
                customer_id=customer_id,
                cafe_id=cafe_id,
            ) from exc

        result = RedemptionResult(balance=balance, remaining_count=balance.count)
        send_on_commit(reward_redeemed, StampBalance, balance=balance, result=result)
        return result
