"""
Stampman public API.

StampEngine wires the ledger store, café backend, rate guard, accrual,
redemption, token authority and tap orchestrator together. The hosting
process builds it (usually once, at startup) and owns its lifetime:

    engine = StampEngine.from_settings()
    engine.accrual.earn("USER-1", "CAFE-1", source="customer_scan")
    engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")

Tests build it with an explicit store, café backend and clock.
"""

from collections.abc import Callable
from datetime import datetime

from django.utils import timezone
from django.utils.module_loading import import_string

from stampman.conf import get_stampman_settings
from stampman.protocols.cafes import CafeBackend
from stampman.protocols.ledger import BalanceInfo, LedgerStore
from stampman.services import (
    AccrualService,
    RateGuard,
    RedemptionService,
    TapOrchestrator,
    TokenAuthority,
)
from stampman.store import DjangoLedgerStore


def _get_cafe_backend(backend_path: str) -> CafeBackend:
    """Instantiate the configured CafeBackend."""
    backend_class = import_string(backend_path)
    return backend_class()


class StampEngine:
    """Composition root of the stamp engine."""

    def __init__(
        self,
        store: LedgerStore,
        cafes: CafeBackend,
        clock: Callable[[], datetime] = timezone.now,
        cooldown_seconds: int = 300,
        daily_limit: int = 3,
        token_ttl_seconds: int = 30,
        token_length: int = 6,
        token_alphabet: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789",
    ):
        self.store = store
        self.cafes = cafes
        self.clock = clock

        self.guard = RateGuard(
            store,
            clock=clock,
            cooldown_seconds=cooldown_seconds,
            daily_limit=daily_limit,
        )
        self.accrual = AccrualService(store, cafes, self.guard, clock=clock)
        self.redemption = RedemptionService(store, cafes, clock=clock)
        self.tokens = TokenAuthority(
            clock=clock,
            ttl_seconds=token_ttl_seconds,
            code_length=token_length,
            alphabet=token_alphabet,
        )
        self.tap = TapOrchestrator(self.tokens, self.accrual)

    @classmethod
    def from_settings(cls, clock: Callable[[], datetime] = timezone.now) -> "StampEngine":
        """Build an engine from the STAMPMAN Django setting."""
        conf = get_stampman_settings()
        return cls(
            store=DjangoLedgerStore(),
            cafes=_get_cafe_backend(conf.CAFE_BACKEND),
            clock=clock,
            cooldown_seconds=conf.COOLDOWN_SECONDS,
            daily_limit=conf.DAILY_LIMIT,
            token_ttl_seconds=conf.TOKEN_TTL_SECONDS,
            token_length=conf.TOKEN_LENGTH,
            token_alphabet=conf.TOKEN_ALPHABET,
        )

    # ======================================================================
    # Read API (wallet passes, customer screens)
    # ======================================================================

    def balance_info(self, customer_id: str, cafe_id: str) -> BalanceInfo | None:
        """Read-only balance snapshot, or None if nothing was earned yet."""
        cafe = self.cafes.get_cafe(cafe_id)
        balance = self.store.get_balance(customer_id, cafe_id)
        if cafe is None or balance is None:
            return None
        return balance.as_info(cafe.stamp_goal)

    def customer_balances(self, customer_id: str) -> list[BalanceInfo]:
        """Snapshots of every café card the customer holds."""
        infos = []
        for balance in self.store.list_balances(customer_id):
            cafe = self.cafes.get_cafe(balance.cafe_id)
            if cafe is not None:
                infos.append(balance.as_info(cafe.stamp_goal))
        return infos
