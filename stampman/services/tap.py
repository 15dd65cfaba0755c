"""Tap orchestrator - NFC tap and typed-code stamp flows."""

import logging

from django.db import transaction

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import RedemptionToken, StampSource
from stampman.services.accrual import AccrualService, StampResult
from stampman.services.tokens import TokenAuthority

logger = logging.getLogger(__name__)


class TapOrchestrator:
    """
    Turns a claimed merchant token into a stamp.

    The token claim and the accrual commit together: if the stamp cannot
    be written, the token stays available. The rate guard is skipped, the
    token already proves a one-time merchant authorization.

    Safe to call again after NO_ACTIVE_TOKEN or PERSISTENCE_ERROR; no
    state is kept outside the database.
    """

    def __init__(self, tokens: TokenAuthority, accrual: AccrualService):
        self.tokens = tokens
        self.accrual = accrual

    def auto_redeem_stamp(self, cafe_id: str, customer_id: str) -> StampResult:
        """
        Stamp triggered by tapping the café's NFC tag.

        Raises:
            StampmanError(NO_ACTIVE_TOKEN): Staff has not opened stamping.
                Expected and common; the customer should ask staff.
            StampmanError: Any accrual error (CAFE_NOT_FOUND, PERSISTENCE_ERROR)
        """
        try:
            with transaction.atomic():
                token = self.tokens.consume_active(cafe_id, customer_id)
                return self._earn(token, customer_id)
        except StampmanError as e:
            if e.code == ErrorCode.NO_ACTIVE_TOKEN:
                logger.info("Tap at café %s by %s without an active token", cafe_id, customer_id)
            raise

    def redeem_with_code(self, cafe_id: str, code: str, customer_id: str) -> StampResult:
        """
        Stamp using the code shown on the merchant console (NFC fallback).

        Raises:
            StampmanError(INVALID_OR_EXPIRED_TOKEN)
            StampmanError: Any accrual error
        """
        with transaction.atomic():
            token = self.tokens.consume(cafe_id, code, customer_id)
            return self._earn(token, customer_id)

    def _earn(self, token: RedemptionToken, customer_id: str) -> StampResult:
        return self.accrual.earn(
            customer_id,
            token.cafe_id,
            source=StampSource.MERCHANT_MANUAL,
            merchant_id=token.issued_by,
        )
