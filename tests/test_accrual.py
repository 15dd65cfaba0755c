"""Tests for the accrual service."""

import logging
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from stampman.exceptions import ErrorCode, StampmanError
from stampman.models import StampBalance, StampEntryType, StampHistoryEntry
from stampman.signals import stamp_earned


pytestmark = pytest.mark.django_db


class TestEarn:
    """AccrualService.earn()"""

    def test_first_earn_creates_balance(self, engine):
        result = engine.accrual.earn("USER-1", "CAFE-1", source="order", order_id="ORD-1")

        balance = StampBalance.objects.get(customer_id="USER-1", cafe_id="CAFE-1")
        assert result.balance.pk == balance.pk
        assert balance.count == 1
        assert balance.total_earned == 1
        assert balance.total_used == 0
        assert result.current_count == 1
        assert result.goal_count == 10
        assert result.is_reward_earned is False

    def test_writes_history_entry(self, engine, clock):
        engine.accrual.earn("USER-1", "CAFE-1", source="order", order_id="ORD-1")

        entry = StampHistoryEntry.objects.get()
        assert entry.entry_type == StampEntryType.EARN
        assert entry.amount == 1
        assert entry.source == "order"
        assert entry.order_id == "ORD-1"
        assert entry.merchant_id == ""
        assert entry.created_at == clock.now

    def test_merchant_reference_recorded(self, engine):
        engine.accrual.earn("USER-1", "CAFE-1", source="merchant_manual", merchant_id="STAFF-1")
        entry = StampHistoryEntry.objects.get()
        assert entry.source == "merchant_manual"
        assert entry.merchant_id == "STAFF-1"

    def test_unknown_cafe(self, engine):
        with pytest.raises(StampmanError) as exc_info:
            engine.accrual.earn("USER-1", "NOPE", source="order")
        assert exc_info.value.code == ErrorCode.CAFE_NOT_FOUND
        assert not StampBalance.objects.exists()

    def test_unknown_source_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.accrual.earn("USER-1", "CAFE-1", source="gift")

    def test_reuses_existing_balance(self, engine):
        engine.accrual.earn("USER-1", "CAFE-1", source="order")
        engine.accrual.earn("USER-1", "CAFE-1", source="order")
        assert StampBalance.objects.count() == 1
        assert StampBalance.objects.get().count == 2


class TestRewardThreshold:
    """is_reward_earned means 'at least the goal', not 'exactly'."""

    def _earn(self, engine, times):
        result = None
        for i in range(times):
            result = engine.accrual.earn("USER-1", "CAFE-1", source="order", order_id=f"ORD-{i}")
        return result

    def test_nine_stamps_not_yet(self, engine):
        assert self._earn(engine, 9).is_reward_earned is False

    def test_tenth_stamp_earns_reward(self, engine):
        result = self._earn(engine, 10)
        assert result.is_reward_earned is True
        assert result.current_count == 10

    def test_eleventh_stamp_still_reward(self, engine):
        result = self._earn(engine, 11)
        assert result.is_reward_earned is True
        assert result.current_count == 11

    def test_reward_not_consumed_automatically(self, engine):
        self._earn(engine, 10)
        balance = StampBalance.objects.get()
        assert balance.count == 10
        assert balance.total_used == 0
        assert not StampHistoryEntry.objects.filter(entry_type=StampEntryType.USE).exists()


class TestAtomicity:
    """Balance update and history append commit together or not at all."""

    def test_history_failure_rolls_back_balance(self, engine):
        engine.accrual.earn("USER-1", "CAFE-1", source="order")

        with patch.object(engine.store, "append_history", side_effect=DatabaseError("disk full")):
            with pytest.raises(StampmanError) as exc_info:
                engine.accrual.earn("USER-1", "CAFE-1", source="order")

        assert exc_info.value.code == ErrorCode.PERSISTENCE_ERROR
        assert exc_info.value.retryable
        balance = StampBalance.objects.get()
        assert balance.count == 1
        assert balance.total_earned == 1

    def test_lost_update_surfaces_as_persistence_error(self, engine):
        engine.accrual.earn("USER-1", "CAFE-1", source="order")

        with patch.object(
            engine.store,
            "update_balance",
            side_effect=StampmanError(ErrorCode.PERSISTENCE_ERROR, reason="concurrent_update"),
        ):
            with pytest.raises(StampmanError) as exc_info:
                engine.accrual.earn("USER-1", "CAFE-1", source="order")

        assert exc_info.value.code == ErrorCode.PERSISTENCE_ERROR
        assert StampHistoryEntry.objects.count() == 1

    def test_persistence_failure_logged_as_error(self, engine, caplog):
        with patch.object(engine.store, "append_history", side_effect=DatabaseError("disk full")):
            with pytest.raises(StampmanError):
                engine.accrual.earn("USER-1", "CAFE-1", source="order")
        assert any(r.levelname == "ERROR" for r in caplog.records)


class TestSignals:
    """stamp_earned is sent after a successful earn."""

    def test_stamp_earned_sent(self, engine, django_capture_on_commit_callbacks):
        received = []

        def handler(sender, balance, result, source, **kwargs):
            received.append((balance.count, result.is_reward_earned, source))

        stamp_earned.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                engine.accrual.earn("USER-1", "CAFE-1", source="order")
        finally:
            stamp_earned.disconnect(handler)

        assert received == [(1, False, "order")]

    def test_not_sent_on_rejection(self, engine, django_capture_on_commit_callbacks):
        received = []

        def handler(sender, **kwargs):
            received.append(kwargs)

        stamp_earned.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True), pytest.raises(StampmanError):
                engine.accrual.earn("USER-1", "NOPE", source="order")
        finally:
            stamp_earned.disconnect(handler)

        assert received == []

    def test_not_sent_before_commit(self, engine, django_capture_on_commit_callbacks):
        received = []

        def handler(sender, **kwargs):
            received.append(kwargs)

        stamp_earned.connect(handler)
        try:
            with django_capture_on_commit_callbacks() as callbacks:
                engine.accrual.earn("USER-1", "CAFE-1", source="order")
                assert received == []
        finally:
            stamp_earned.disconnect(handler)

        assert len(callbacks) == 1
        assert received == []

    def test_failing_receiver_does_not_fail_earn(
        self, engine, caplog, django_capture_on_commit_callbacks
    ):
        caplog.set_level(logging.WARNING, logger="stampman")

        def broken(sender, **kwargs):
            raise RuntimeError("wallet push down")

        stamp_earned.connect(broken)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                result = engine.accrual.earn_for_order("USER-1", "CAFE-1", "ORD-1")
        finally:
            stamp_earned.disconnect(broken)

        assert result is not None
        assert result.current_count == 1
        assert StampBalance.objects.get(customer_id="USER-1", cafe_id="CAFE-1").count == 1
        assert "wallet push down" in caplog.text
        assert any(r.levelname == "WARNING" for r in caplog.records)


class TestEarnForOrder:
    """Order fulfilment hook: best effort, never raises."""

    def test_returns_result(self, engine):
        result = engine.accrual.earn_for_order("USER-1", "CAFE-1", "ORD-1")
        assert result.current_count == 1
        assert StampHistoryEntry.objects.get().order_id == "ORD-1"

    def test_failure_logged_and_swallowed(self, engine, caplog):
        caplog.set_level(logging.WARNING, logger="stampman")
        result = engine.accrual.earn_for_order("USER-1", "NOPE", "ORD-1")

        assert result is None
        assert "ORD-1" in caplog.text
        assert "CAFE_NOT_FOUND" in caplog.text

    def test_order_stamps_ignore_cooldown(self, engine, clock):
        engine.accrual.earn_for_order("USER-1", "CAFE-1", "ORD-1")
        result = engine.accrual.earn_for_order("USER-1", "CAFE-1", "ORD-2")
        assert result.current_count == 2
