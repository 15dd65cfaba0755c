"""
Token authority - merchant-issued, single-use stamp tokens.

A merchant presses "allow stamping"; the café gets a 6-character code
valid for 30 seconds. The first customer to claim it wins. Claims are a
conditional UPDATE (used_by IS NULL AND expires_at > now); the number of
affected rows decides who won, never a prior read.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.db import DatabaseError, transaction
from django.utils import timezone

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import RedemptionToken
from stampman.signals import send_on_commit, token_issued

logger = logging.getLogger(__name__)

DEFAULT_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Attempts to draw a code not shared by another active token of the café
_MAX_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class IssuedToken:
    """Token as shown on the merchant console."""

    token: RedemptionToken
    code: str
    expires_at: datetime


class TokenAuthority:
    """Issues and claims redemption tokens."""

    def __init__(
        self,
        clock: Callable[[], datetime] = timezone.now,
        ttl_seconds: int = 30,
        code_length: int = 6,
        alphabet: str = DEFAULT_ALPHABET,
    ):
        self.clock = clock
        self.ttl = timedelta(seconds=ttl_seconds)
        self.code_length = code_length
        self.alphabet = alphabet

    # ======================================================================
    # Issue
    # ======================================================================

    def generate_code(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.code_length))

    def issue(self, cafe_id: str, issuer_id: str) -> IssuedToken:
        """
        Open a stamping window for a café.

        Expired unclaimed tokens of the same café are purged first.

        Raises:
            StampmanError(PERSISTENCE_ERROR)
        """
        now = self.clock()
        expires_at = now + self.ttl

        try:
            with transaction.atomic():
                self.purge_expired(cafe_id=cafe_id, now=now)

                for _ in range(_MAX_CODE_ATTEMPTS):
                    code = self.generate_code()
                    if not self._active_qs(cafe_id, now).filter(code=code).exists():
                        break
                else:
                    raise StampmanError(
                        ErrorCode.PERSISTENCE_ERROR,
                        reason="code_space_exhausted",
                        cafe_id=cafe_id,
                    )

                token = RedemptionToken.objects.create(
                    cafe_id=cafe_id,
                    code=code,
                    issued_by=issuer_id,
                    issued_at=now,
                    expires_at=expires_at,
                )
        except DatabaseError as exc:
            logger.exception("Failed to issue stamp token for café %s", cafe_id)
            raise StampmanError(ErrorCode.PERSISTENCE_ERROR, cafe_id=cafe_id) from exc

        logger.info("Stamp token issued for café %s by %s", cafe_id, issuer_id)
        send_on_commit(token_issued, RedemptionToken, token=token)
        return IssuedToken(token=token, code=token.code, expires_at=token.expires_at)

    def purge_expired(self, cafe_id: str | None = None, now: datetime | None = None) -> int:
        """
        Delete unclaimed tokens that already expired.

        Claimed tokens are kept as the audit trail of who stamped.

        Returns:
            Number of deleted tokens
        """
        now = now or self.clock()
        qs = RedemptionToken.objects.filter(used_by__isnull=True, expires_at__lte=now)
        if cafe_id is not None:
            qs = qs.filter(cafe_id=cafe_id)
        deleted, _ = qs.delete()
        return deleted

    # ======================================================================
    # Query
    # ======================================================================

    def _active_qs(self, cafe_id: str, now: datetime):
        return RedemptionToken.objects.filter(
            cafe_id=cafe_id,
            used_by__isnull=True,
            expires_at__gt=now,
        )

    def find_active(self, cafe_id: str) -> RedemptionToken | None:
        """Most recently issued active token of a café."""
        return self._active_qs(cafe_id, self.clock()).order_by("-issued_at", "-id").first()

    def seconds_remaining(self, token: RedemptionToken) -> int:
        """Countdown for the merchant console (0 once expired or used)."""
        if token.is_used:
            return 0
        remaining = (token.expires_at - self.clock()).total_seconds()
        return max(0, int(remaining))

    # ======================================================================
    # Consume
    # ======================================================================

    @staticmethod
    def normalize_code(code: str) -> str:
        return (code or "").strip().upper()

    def _claim(self, token_id: int, claimant_id: str, now: datetime) -> bool:
        """Conditional claim. True only for the single winning caller."""
        claimed = RedemptionToken.objects.filter(
            pk=token_id,
            used_by__isnull=True,
            expires_at__gt=now,
        ).update(used_by=claimant_id, used_at=now)
        return claimed == 1

    def consume(self, cafe_id: str, code: str, claimant_id: str) -> RedemptionToken:
        """
        Claim a token by its code.

        Returns:
            The claimed RedemptionToken

        Raises:
            StampmanError(INVALID_OR_EXPIRED_TOKEN): Unknown, expired, or
                already claimed (including losing a simultaneous claim)
        """
        now = self.clock()
        code = self.normalize_code(code)

        token_id = (
            self._active_qs(cafe_id, now)
            .filter(code=code)
            .order_by("-issued_at", "-id")
            .values_list("pk", flat=True)
            .first()
        )
        if token_id is None or not self._claim(token_id, claimant_id, now):
            logger.info("Stamp code rejected for café %s", cafe_id)
            raise StampmanError(ErrorCode.INVALID_OR_EXPIRED_TOKEN, cafe_id=cafe_id)

        return RedemptionToken.objects.get(pk=token_id)

    def consume_active(self, cafe_id: str, claimant_id: str) -> RedemptionToken:
        """
        Claim whichever token is active for the café, newest first.

        A claim lost to a concurrent customer moves on to the next active
        token, if any.

        Raises:
            StampmanError(NO_ACTIVE_TOKEN)
        """
        now = self.clock()
        candidates = list(
            self._active_qs(cafe_id, now)
            .order_by("-issued_at", "-id")
            .values_list("pk", flat=True)
        )
        for token_id in candidates:
            if self._claim(token_id, claimant_id, now):
                return RedemptionToken.objects.get(pk=token_id)

        raise StampmanError(ErrorCode.NO_ACTIVE_TOKEN, cafe_id=cafe_id)
