"""Accrual service - the only path that adds stamps to a balance."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError, transaction
from django.utils import timezone

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import StampBalance, StampEntryType, StampSource
from stampman.protocols.cafes import CafeBackend, CafeInfo
from stampman.protocols.ledger import LedgerStore
from stampman.services.guard import RateGuard
from stampman.signals import send_on_commit, stamp_earned

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StampResult:
    """Outcome of a successful earn."""

    balance: StampBalance
    is_reward_earned: bool
    current_count: int
    goal_count: int


def get_cafe_or_raise(cafes: CafeBackend, cafe_id: str) -> CafeInfo:
    cafe = cafes.get_cafe(cafe_id)
    if cafe is None:
        raise StampmanError(ErrorCode.CAFE_NOT_FOUND, cafe_id=cafe_id)
    return cafe


class AccrualService:
    """
    Adds one stamp per call.

    Lookup-or-create, row lock, counter update and history append run in
    one transaction. Reaching the café's stamp goal is reported, never
    redeemed automatically.
    """

    def __init__(
        self,
        store: LedgerStore,
        cafes: CafeBackend,
        guard: RateGuard,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.store = store
        self.cafes = cafes
        self.guard = guard
        self.clock = clock

    def earn(
        self,
        customer_id: str,
        cafe_id: str,
        source: StampSource | str,
        order_id: str = "",
        merchant_id: str = "",
    ) -> StampResult:
        """
        Award one stamp.

        Args:
            customer_id: Customer reference
            cafe_id: Café reference
            source: order, customer_scan or merchant_manual
            order_id: Order that triggered the stamp (source=order)
            merchant_id: Staff member who authorized it (merchant_manual)

        Returns:
            StampResult with the updated balance

        Raises:
            StampmanError: CAFE_NOT_FOUND, COOLDOWN_ACTIVE,
                DAILY_LIMIT_REACHED or PERSISTENCE_ERROR
        """
        source = StampSource(source)
        cafe = get_cafe_or_raise(self.cafes, cafe_id)

        if source == StampSource.CUSTOMER_SCAN:
            self.guard.enforce(customer_id, cafe_id)

        try:
            with transaction.atomic():
                balance = self.store.get_balance_for_update(customer_id, cafe_id)
                if balance is None:
                    self.store.create_balance(customer_id, cafe_id)
                    balance = self.store.get_balance_for_update(customer_id, cafe_id)

                new_count = balance.count + 1
                balance = self.store.update_balance(
                    balance,
                    count=new_count,
                    total_earned=balance.total_earned + 1,
                    total_used=balance.total_used,
                )
                self.store.append_history(
                    balance,
                    entry_type=StampEntryType.EARN,
                    amount=1,
                    source=source,
                    order_id=order_id,
                    merchant_id=merchant_id,
                    created_at=self.clock(),
                )
        except DatabaseError as exc:
            logger.exception("Failed to persist stamp for %s@%s", customer_id, cafe_id)
            raise StampmanError(
                ErrorCode.PERSISTENCE_ERROR,
                customer_id=customer_id,
                cafe_id=cafe_id,
            ) from exc

        result = StampResult(
            balance=balance,
            is_reward_earned=new_count >= cafe.stamp_goal,
            current_count=new_count,
            goal_count=cafe.stamp_goal,
        )
        logger.debug(
            "Stamp earned %s@%s via %s: %d/%d",
            customer_id,
            cafe_id,
            source.value,
            new_count,
            cafe.stamp_goal,
        )
        send_on_commit(stamp_earned, StampBalance, balance=balance, result=result, source=source)
        return result

    def earn_for_order(self, customer_id: str, cafe_id: str, order_id: str) -> StampResult | None:
        """
        Stamp for a paid order. Best effort: the order must never fail
        because of the loyalty program.

        Returns:
            StampResult, or None if the stamp could not be added
        """
        try:
            return self.earn(customer_id, cafe_id, StampSource.ORDER, order_id=order_id)
        except StampmanError as e:
            logger.warning(
                "Order %s stamp skipped for %s@%s: %s",
                order_id,
                customer_id,
                cafe_id,
                e.code_value,
            )
            return None
