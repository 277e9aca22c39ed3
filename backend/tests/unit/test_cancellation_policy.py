"""
Cancellation policy tiers: >=24h full refund, 12-24h half, <12h none, past rejected.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.models.booking import Booking, BookingStatus
from app.services.cancellation_policy import (
    PAST_SERVICE_REASON,
    CancellationPolicyEngine,
    evaluate,
    refund_amount,
    refundable_base,
)

NOW = datetime(2026, 5, 4, 12, 0, tzinfo=timezone.utc)


def _at(hours: float) -> datetime:
    return NOW + timedelta(hours=hours)


class TestRefundTiers:
    @pytest.mark.parametrize(
        "hours,expected",
        [
            (72, 100),
            (24, 100),
            (23.99, 50),
            (15, 50),
            (12, 50),
            (11.99, 0),
            (2, 0),
            (0.01, 0),
        ],
    )
    def test_refund_percentage_by_hours_before_start(self, hours, expected):
        decision = evaluate(_at(hours), BookingStatus.CONFIRMED, NOW)

        assert decision.can_cancel is True
        assert decision.refund_percentage == expected
        assert decision.hours_until_start == pytest.approx(hours)

    def test_start_exactly_now_is_past(self):
        decision = evaluate(NOW, BookingStatus.CONFIRMED, NOW)

        assert decision.can_cancel is False
        assert decision.reason == PAST_SERVICE_REASON

    def test_yesterday_is_past(self):
        decision = evaluate(_at(-24), BookingStatus.AUTHORIZED, NOW)

        assert decision.can_cancel is False
        assert decision.refund_percentage == 0
        assert decision.reason == "Cannot cancel past services"

    def test_naive_start_is_read_as_utc(self):
        naive = (NOW + timedelta(hours=30)).replace(tzinfo=None)

        decision = evaluate(naive, BookingStatus.CONFIRMED, NOW)

        assert decision.refund_percentage == 100

    def test_other_timezone_offsets_are_normalized(self):
        bogota = timezone(timedelta(hours=-5))
        start = (NOW + timedelta(hours=13)).astimezone(bogota)

        decision = evaluate(start, BookingStatus.CONFIRMED, NOW)

        assert decision.refund_percentage == 50


class TestTerminalStatuses:
    @pytest.mark.parametrize(
        "status", [BookingStatus.COMPLETED, BookingStatus.DECLINED, BookingStatus.CANCELED]
    )
    def test_terminal_bookings_cannot_be_canceled(self, status):
        decision = evaluate(_at(72), status, NOW)

        assert decision.can_cancel is False
        assert decision.reason == f"Cannot cancel {status.value} bookings"

    def test_status_string_is_accepted(self):
        decision = evaluate(_at(72), "canceled", NOW)

        assert decision.can_cancel is False


class TestRefundAmount:
    def test_half_refund_rounds_down(self):
        assert refund_amount(60001, 50) == 30000

    def test_full_and_zero(self):
        assert refund_amount(60000, 100) == 60000
        assert refund_amount(60000, 0) == 0
        assert refund_amount(0, 100) == 0

    def test_refundable_base_prefers_captured_amount(self):
        captured = Booking(amount_authorized=70000, amount_captured=65000)
        held = Booking(amount_authorized=70000)
        unpaid = Booking()

        assert refundable_base(captured) == 65000
        assert refundable_base(held) == 70000
        assert refundable_base(unpaid) == 0

    def test_engine_delegates(self):
        engine = CancellationPolicyEngine()

        assert engine.evaluate(_at(15), BookingStatus.AUTHORIZED, NOW).refund_percentage == 50
        assert engine.refund_amount(1000, 50) == 500

    def test_payload_rounds_hours(self):
        payload = evaluate(_at(15.123456), BookingStatus.CONFIRMED, NOW).to_payload()

        assert payload == {
            "can_cancel": True,
            "refund_percentage": 50,
            "reason": "12-24 hours before service: 50% refund",
            "hours_until_start": 15.12,
        }
