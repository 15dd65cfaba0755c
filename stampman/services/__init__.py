"""Stampman services.

- RateGuard: cooldown and daily cap for customer scans
- AccrualService: earn one stamp
- RedemptionService: spend one reward
- TokenAuthority: merchant stamp tokens
- TapOrchestrator: NFC tap and typed-code flows
"""

from stampman.services.accrual import AccrualService, StampResult
from stampman.services.guard import GuardResult, RateGuard
from stampman.services.redemption import RedemptionResult, RedemptionService
from stampman.services.tap import TapOrchestrator
from stampman.services.tokens import IssuedToken, TokenAuthority

__all__ = [
    "RateGuard",
    "GuardResult",
    "AccrualService",
    "StampResult",
    "RedemptionService",
    "RedemptionResult",
    "TokenAuthority",
    "IssuedToken",
    "TapOrchestrator",
]
