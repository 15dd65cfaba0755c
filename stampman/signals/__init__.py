"""
Stampman signals - public event API.

Emitted signals:
- stamp_earned: Emitted by AccrualService.earn()
- reward_redeemed: Emitted by RedemptionService.redeem()
- token_issued: Emitted by TokenAuthority.issue()

Signals are sent after the surrounding transaction commits, through
send_robust(): a failing receiver is logged and never undoes or fails
the ledger operation that triggered it.

Wallet pass integrations listen to stamp_earned/reward_redeemed to push
updated pass state; stampman itself never talks to wallets.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Ledger signals (emitted by services)
stamp_earned = Signal()  # sender=StampBalance, balance, result=StampResult, source
reward_redeemed = Signal()  # sender=StampBalance, balance, result=RedemptionResult

# Token signals
token_issued = Signal()  # sender=RedemptionToken, token


def send_on_commit(signal: Signal, sender, **kwargs) -> None:
    """Send `signal` once the current transaction commits (now, if none is open)."""

    def _send():
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.warning(
                    "Signal receiver %r failed for %s: %s",
                    receiver,
                    sender.__name__,
                    response,
                    exc_info=response,
                )

    transaction.on_commit(_send)
