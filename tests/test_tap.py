"""Tests for the NFC tap and typed-code stamp flows."""

import logging

import pytest

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import RedemptionToken, StampBalance, StampHistoryEntry
from stampman.signals import stamp_earned


pytestmark = pytest.mark.django_db


class TestAutoRedeemStamp:
    """TapOrchestrator.auto_redeem_stamp()"""

    def test_tap_within_window(self, engine, issued, clock):
        clock.advance(seconds=10)
        result = engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")

        assert result.current_count == 1
        assert result.goal_count == 10
        token = RedemptionToken.objects.get()
        assert token.used_by == "USER-1"

        entry = StampHistoryEntry.objects.get()
        assert entry.source == "merchant_manual"
        assert entry.merchant_id == "STAFF-1"

    def test_second_customer_gets_no_active_token(self, engine, issued, clock):
        clock.advance(seconds=10)
        engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")

        with pytest.raises(StampmanError) as exc_info:
            engine.tap.auto_redeem_stamp("CAFE-1", "USER-2")

        assert exc_info.value.code == ErrorCode.NO_ACTIVE_TOKEN
        assert not StampBalance.objects.filter(customer_id="USER-2").exists()

    def test_no_token_issued(self, engine):
        with pytest.raises(StampmanError) as exc_info:
            engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")

        err = exc_info.value
        assert err.code == ErrorCode.NO_ACTIVE_TOKEN
        assert "staff" in err.message
        assert not err.retryable

    def test_expired_token(self, engine, issued, clock):
        clock.advance(seconds=31)
        with pytest.raises(StampmanError) as exc_info:
            engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")
        assert exc_info.value.code == ErrorCode.NO_ACTIVE_TOKEN

    def test_no_active_token_not_logged_as_error(self, engine, caplog):
        caplog.set_level(logging.DEBUG, logger="stampman")
        with pytest.raises(StampmanError):
            engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")

        assert caplog.records
        assert all(r.levelno < logging.WARNING for r in caplog.records)

    def test_rate_guard_bypassed(self, engine, clock):
        """A customer in scan cooldown can still be stamped by staff."""
        engine.accrual.earn("USER-1", "CAFE-1", source="customer_scan")
        engine.tokens.issue("CAFE-1", "STAFF-1")

        result = engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")
        assert result.current_count == 2

    def test_retry_after_staff_opens_window(self, engine):
        with pytest.raises(StampmanError):
            engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")

        engine.tokens.issue("CAFE-1", "STAFF-1")
        result = engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")
        assert result.current_count == 1

    def test_failed_accrual_keeps_token(self, engine):
        """Token claim is rolled back when the stamp cannot be written."""
        engine.tokens.issue("CAFE-X", "STAFF-1")

        with pytest.raises(StampmanError) as exc_info:
            engine.tap.auto_redeem_stamp("CAFE-X", "USER-1")

        assert exc_info.value.code == ErrorCode.CAFE_NOT_FOUND
        token = engine.tokens.find_active("CAFE-X")
        assert token is not None
        assert token.used_by is None

    def test_failing_stamp_receiver_still_stamps(
        self, engine, issued, clock, caplog, django_capture_on_commit_callbacks
    ):
        """A broken wallet listener neither fails the tap nor releases the token."""
        caplog.set_level(logging.WARNING, logger="stampman")

        def broken(sender, **kwargs):
            raise RuntimeError("wallet push down")

        stamp_earned.connect(broken)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                result = engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")
        finally:
            stamp_earned.disconnect(broken)

        assert result.current_count == 1
        assert StampBalance.objects.get(customer_id="USER-1", cafe_id="CAFE-1").count == 1
        assert RedemptionToken.objects.get().used_by == "USER-1"
        assert "wallet push down" in caplog.text


class TestRedeemWithCode:
    """TapOrchestrator.redeem_with_code()"""

    def test_valid_code(self, engine, issued):
        result = engine.tap.redeem_with_code("CAFE-1", issued.code.lower(), "USER-1")

        assert result.current_count == 1
        assert StampHistoryEntry.objects.get().merchant_id == "STAFF-1"

    def test_reused_code(self, engine, issued):
        engine.tap.redeem_with_code("CAFE-1", issued.code, "USER-1")

        with pytest.raises(StampmanError) as exc_info:
            engine.tap.redeem_with_code("CAFE-1", issued.code, "USER-2")
        assert exc_info.value.code == ErrorCode.INVALID_OR_EXPIRED_TOKEN

    def test_expired_code(self, engine, issued, clock):
        clock.advance(seconds=45)
        with pytest.raises(StampmanError) as exc_info:
            engine.tap.redeem_with_code("CAFE-1", issued.code, "USER-1")
        assert exc_info.value.code == ErrorCode.INVALID_OR_EXPIRED_TOKEN
        assert not StampBalance.objects.exists()
