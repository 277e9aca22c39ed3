"""Cancellation and refund policy evaluation for customer cancellations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from app.core.constants import (
    FULL_REFUND_MIN_HOURS,
    PARTIAL_REFUND_MIN_HOURS,
    PARTIAL_REFUND_PERCENTAGE,
)
from app.models.booking import TERMINAL_STATUSES, Booking, BookingStatus

PAST_SERVICE_REASON = "Cannot cancel past services"


@dataclass(frozen=True)
class CancellationDecision:
    can_cancel: bool
    refund_percentage: int = 0
    reason: str = ""
    hours_until_start: Optional[float] = None

    def to_payload(self) -> dict[str, object]:
        return {
            "can_cancel": self.can_cancel,
            "refund_percentage": int(self.refund_percentage),
            "reason": self.reason,
            "hours_until_start": (
                round(self.hours_until_start, 2) if self.hours_until_start is not None else None
            ),
        }


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps come back from SQLite; they are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def evaluate(
    scheduled_start: datetime,
    current_status: Union[BookingStatus, str],
    now: Optional[datetime] = None,
) -> CancellationDecision:
    """
    Decide whether a booking may be canceled and how much is refunded.

    Tiers are inclusive on their lower bound: exactly 24 hours before the
    start refunds 100%, exactly 12 hours refunds 50%. A start at or before
    ``now`` cannot be canceled.
    """
    status = BookingStatus(current_status)
    if status in TERMINAL_STATUSES:
        return CancellationDecision(
            can_cancel=False,
            reason=f"Cannot cancel {status.value} bookings",
        )

    current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    hours_until_start = (_as_utc(scheduled_start) - current).total_seconds() / 3600

    if hours_until_start <= 0:
        return CancellationDecision(
            can_cancel=False,
            reason=PAST_SERVICE_REASON,
            hours_until_start=hours_until_start,
        )

    if hours_until_start >= FULL_REFUND_MIN_HOURS:
        return CancellationDecision(
            can_cancel=True,
            refund_percentage=100,
            reason=f">={FULL_REFUND_MIN_HOURS} hours before service: full refund",
            hours_until_start=hours_until_start,
        )
    if hours_until_start >= PARTIAL_REFUND_MIN_HOURS:
        return CancellationDecision(
            can_cancel=True,
            refund_percentage=PARTIAL_REFUND_PERCENTAGE,
            reason=(
                f"{PARTIAL_REFUND_MIN_HOURS}-{FULL_REFUND_MIN_HOURS} hours before service: "
                f"{PARTIAL_REFUND_PERCENTAGE}% refund"
            ),
            hours_until_start=hours_until_start,
        )
    return CancellationDecision(
        can_cancel=True,
        refund_percentage=0,
        reason=f"<{PARTIAL_REFUND_MIN_HOURS} hours before service: no refund",
        hours_until_start=hours_until_start,
    )


def refund_amount(base_amount: int, percentage: int) -> int:
    """Refund in whole minor units, rounded down so it never exceeds ``base_amount``."""
    if base_amount <= 0 or percentage <= 0:
        return 0
    return (int(base_amount) * int(percentage)) // 100


def refundable_base(booking: Booking) -> int:
    """Captured amount when money was captured, otherwise the held authorization."""
    if booking.amount_captured:
        return int(booking.amount_captured)
    return int(booking.amount_authorized or 0)


class CancellationPolicyEngine:
    """Object wrapper so services can receive the policy by injection."""

    def evaluate(
        self,
        scheduled_start: datetime,
        current_status: Union[BookingStatus, str],
        now: Optional[datetime] = None,
    ) -> CancellationDecision:
        return evaluate(scheduled_start, current_status, now)

    def refund_amount(self, base_amount: int, percentage: int) -> int:
        return refund_amount(base_amount, percentage)
