"""
Rate guard - anti-abuse rules for customer-scanned stamps.

R1: Cooldown - no two earns within COOLDOWN_SECONDS
R2: DailyLimit - at most DAILY_LIMIT earns per local calendar day

Only customer_scan earns are guarded. Orders are paid events and
merchant_manual earns already spent a single-use token.

The check reads history before the accrual writes it, without a lock
spanning both. Two scans racing within milliseconds may both pass.
That is accepted: the guard is best-effort anti-abuse, not a security
boundary.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from django.utils import timezone

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import StampEntryType
from stampman.protocols.ledger import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class GuardResult:
    """Result of a rate guard check."""

    passed: bool
    code: ErrorCode | None = None
    message: str = ""
    details: dict = field(default_factory=dict)


class RateGuard:
    """Cooldown and daily cap rules, evaluated against stamp history."""

    def __init__(
        self,
        store: LedgerStore,
        clock: Callable[[], datetime] = timezone.now,
        cooldown_seconds: int = 300,
        daily_limit: int = 3,
    ):
        self.store = store
        self.clock = clock
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.daily_limit = daily_limit

    def check(self, customer_id: str, cafe_id: str) -> GuardResult:
        """
        Evaluate both rules. Never writes, never raises for a rejection.
        """
        now = self.clock()

        since = now - self.cooldown
        if self.store.has_history(customer_id, cafe_id, StampEntryType.EARN, since):
            return GuardResult(
                False,
                ErrorCode.COOLDOWN_ACTIVE,
                "Stamp earned less than the cooldown ago.",
                {"cooldown_seconds": int(self.cooldown.total_seconds())},
            )

        midnight = self.start_of_day(now)
        earned_today = self.store.count_history(customer_id, cafe_id, StampEntryType.EARN, midnight)
        if earned_today >= self.daily_limit:
            return GuardResult(
                False,
                ErrorCode.DAILY_LIMIT_REACHED,
                f"Daily limit reached ({earned_today}/{self.daily_limit}).",
                {"earned_today": earned_today, "daily_limit": self.daily_limit},
            )

        return GuardResult(True)

    def enforce(self, customer_id: str, cafe_id: str) -> GuardResult:
        """
        Same as check(), raising on rejection.

        Raises:
            StampmanError(COOLDOWN_ACTIVE | DAILY_LIMIT_REACHED)
        """
        result = self.check(customer_id, cafe_id)
        if not result.passed:
            logger.info(
                "Scan stamp rejected for %s@%s: %s",
                customer_id,
                cafe_id,
                result.code.value,
            )
            raise StampmanError(
                result.code,
                self.customer_message(result),
                customer_id=customer_id,
                cafe_id=cafe_id,
                **result.details,
            )
        return result

    def customer_message(self, result: GuardResult) -> str | None:
        """Message shown to the customer, or None for the code default."""
        if result.code == ErrorCode.COOLDOWN_ACTIVE:
            minutes = max(1, math.ceil(self.cooldown.total_seconds() / 60))
            unit = "minute" if minutes == 1 else "minutes"
            return f"A stamp was added recently. Please try again in {minutes} {unit}"
        return None

    @staticmethod
    def start_of_day(now: datetime) -> datetime:
        """
        Local midnight (TIME_ZONE) of the day `now` falls in.

        Naive datetimes (USE_TZ=False) are already local time.
        """
        local = timezone.localtime(now) if timezone.is_aware(now) else now
        return local.replace(hour=0, minute=0, second=0, microsecond=0)
