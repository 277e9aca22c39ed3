# backend/app/services/booking_lifecycle_service.py
"""
Booking lifecycle operations.

Every operation follows the same steps:
1. load the booking and check the acting user owns the step
2. validate the move against the transition table
3. perform the payment side effect through the orchestrator
4. commit the status change with an optimistic status precondition
5. notify the other party after commit

Cancel, check-out and extend-time run the payment step before the commit and
abort when it fails. Decline commits first and releases the hold afterwards,
so a decline that loses a race never touches the payment.

Session work is blocking and runs in a worker thread; only gateway and
notification calls are awaited on the event loop.

Transition operations never raise domain errors to the caller. They return a
TransitionResult: TransitionOk, TransitionPartialFailure (committed, but the
gateway step failed in a way the policy tolerates) or TransitionRejected
(nothing was written).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import MIN_EXTENSION_MINUTES
from ..core.exceptions import (
    CancellationNotAllowedException,
    ConflictException,
    DomainException,
    ForbiddenException,
    InvalidBookingStatusException,
    MissingScheduledStartException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from ..models.booking import Booking, BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..utils.geo import distance_from_site
from .base import BaseService
from .booking_formatting import (
    format_address,
    format_amount,
    format_duration,
    format_scheduled_date,
    format_scheduled_time,
)
from .booking_transitions import BookingAction, allowed_sources, ensure_transition
from .cancellation_policy import (
    CancellationDecision,
    CancellationPolicyEngine,
    refundable_base,
)
from .notification_dispatcher import Notification, NotificationDispatcher, NotificationEvent
from .payment_orchestrator import (
    NO_PAYMENT_REQUIRED,
    REFUNDED,
    PaymentFatal,
    PaymentOk,
    PaymentOrchestrator,
    PaymentOutcome,
    PaymentPartialFailure,
    idempotency_key,
)
from .pricing_service import PricingService, extension_fee

logger = logging.getLogger(__name__)

T = TypeVar("T")

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class TransitionOk:
    booking: Booking
    payment: Optional[PaymentOk] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransitionPartialFailure:
    booking: Booking
    error: DomainException
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransitionRejected:
    error: DomainException


TransitionResult = Union[TransitionOk, TransitionPartialFailure, TransitionRejected]


@dataclass(frozen=True)
class BookingCreated:
    """A new booking and the secret the client confirms its payment with."""

    booking: Booking
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class CancellationPreview:
    decision: CancellationDecision
    refund_amount: int
    currency: str


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BookingLifecycleService(BaseService):
    """Runs booking transitions and keeps the booking row in step with the gateway."""

    def __init__(
        self,
        db: Session,
        *,
        payment_orchestrator: PaymentOrchestrator,
        notification_dispatcher: NotificationDispatcher,
        booking_repository: Optional[BookingRepository] = None,
        pricing_service: Optional[PricingService] = None,
        cancellation_policy: Optional[CancellationPolicyEngine] = None,
        clock: Optional[Callable[[], datetime]] = None,
        check_in_max_distance_meters: Optional[float] = None,
        max_extension_minutes: Optional[int] = None,
    ):
        super().__init__(db)
        self.payments = payment_orchestrator
        self.notifications = notification_dispatcher
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)
        self.pricing_service = pricing_service or PricingService(db)
        self.cancellation_policy = cancellation_policy or CancellationPolicyEngine()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.check_in_max_distance_meters = (
            settings.check_in_max_distance_meters
            if check_in_max_distance_meters is None
            else check_in_max_distance_meters
        )
        self.max_extension_minutes = (
            settings.max_extension_minutes if max_extension_minutes is None else max_extension_minutes
        )
        # One session step at a time, even when transitions are awaited concurrently
        self._db_lock = asyncio.Lock()

    # Creation and reads

    @BaseService.measure_operation("create_booking")
    async def create_booking(
        self,
        customer_id: str,
        *,
        service_id: str,
        scheduled_start: datetime,
        duration_minutes: int,
        pricing_tier_id: Optional[str] = None,
        addon_ids: Optional[Sequence[str]] = None,
        service_address: Optional[str] = None,
        location_lat: Optional[float] = None,
        location_lng: Optional[float] = None,
        customer_email: Optional[str] = None,
    ) -> BookingCreated:
        """
        Create a booking in pending_payment and open its manual-capture payment.

        Prices come from the stored catalog. The booking is removed again when
        the gateway refuses to open the payment. The professional is notified
        of the new request.

        Raises:
            ValidationException: If the start is not in the future
            NotFoundException: If the service or tier does not exist
            PaymentGatewayException: If the payment could not be created
        """
        booking = await self._run_db(
            self._insert_pending_booking,
            customer_id,
            service_id=service_id,
            scheduled_start=scheduled_start,
            duration_minutes=duration_minutes,
            pricing_tier_id=pricing_tier_id,
            addon_ids=addon_ids,
            service_address=service_address,
            location_lat=location_lat,
            location_lng=location_lng,
            customer_email=customer_email,
        )

        payment = await self.payments.create_authorization(
            booking.id,
            customer_id,
            int(booking.total_price),
            booking.currency,
            idempotency_key=idempotency_key(booking.id, "authorize"),
        )
        if not isinstance(payment, PaymentOk):
            try:
                await self._run_db(self._discard_booking, booking.id)
            except ServiceException as exc:
                self.logger.error(
                    f"Could not remove booking {booking.id} after payment setup failed: {exc.message}"
                )
            raise payment.error

        await self._run_db(self._link_payment_reference, booking, payment.ref)
        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            service_id=service_id,
            total_price=booking.total_price,
            payment_intent_ref=payment.ref,
        )
        await self._notify(booking, NotificationEvent.NEW_BOOKING, to_professional=True)
        return BookingCreated(booking=booking, client_secret=payment.client_secret)

    def get_booking_for_participant(self, booking_id: str, actor_id: str) -> Booking:
        booking = self._load(booking_id, with_details=True)
        if not (booking.is_owned_by_customer(actor_id) or booking.is_owned_by_professional(actor_id)):
            raise ForbiddenException(
                "You do not have access to this booking",
                code="BOOKING_ACCESS_DENIED",
                details={"booking_id": booking_id},
            )
        return booking

    def preview_cancellation(self, booking_id: str, actor_id: str) -> CancellationPreview:
        """What a cancellation right now would refund, without side effects."""
        booking = self._load(booking_id)
        self._require_customer(booking, actor_id, BookingAction.CANCEL)
        if booking.scheduled_start is None:
            raise MissingScheduledStartException(booking.id)
        decision = self.cancellation_policy.evaluate(
            booking.scheduled_start, booking.status, self._now()
        )
        amount = (
            self.cancellation_policy.refund_amount(refundable_base(booking), decision.refund_percentage)
            if decision.can_cancel
            else 0
        )
        return CancellationPreview(decision=decision, refund_amount=amount, currency=booking.currency)

    # Transitions

    @BaseService.measure_operation("record_authorization")
    async def record_authorization(
        self, booking_id: str, payment_intent_ref: str, amount: int
    ) -> TransitionResult:
        """Gateway reported a successful hold: pending_payment -> authorized."""
        action = BookingAction.RECORD_AUTHORIZATION
        try:
            booking = await self._run_db(self._load, booking_id)
            if booking.payment_intent_ref and booking.payment_intent_ref != payment_intent_ref:
                raise ConflictException(
                    "Booking already has a different payment reference",
                    code="PAYMENT_REFERENCE_MISMATCH",
                    details={"booking_id": booking_id},
                )
            if (
                booking.status == BookingStatus.AUTHORIZED.value
                and booking.payment_intent_ref == payment_intent_ref
            ):
                return self._ok(action, booking, data={"replayed": True})

            source, target = self._plan(booking, action)
            await self._run_db(
                self._commit_transition,
                booking,
                action,
                source,
                target,
                actor_id=SYSTEM_ACTOR,
                values={"payment_intent_ref": payment_intent_ref, "amount_authorized": int(amount)},
                expected_values={"payment_intent_ref": booking.payment_intent_ref},
            )
        except DomainException as exc:
            return self._rejected(action, booking_id, exc)
        return self._ok(action, booking)

    @BaseService.measure_operation("accept_booking")
    async def accept(self, booking_id: str, actor_id: str) -> TransitionResult:
        action = BookingAction.ACCEPT
        try:
            booking, source, target = await self._run_db(
                self._prepare, booking_id, action, professional_id=actor_id
            )
            await self._run_db(
                self._commit_transition,
                booking,
                action,
                source,
                target,
                actor_id=actor_id,
                values={"confirmed_at": self._now()},
            )
        except DomainException as exc:
            return self._rejected(action, booking_id, exc)

        await self._notify(booking, NotificationEvent.BOOKING_CONFIRMED, to_customer=True)
        return self._ok(action, booking)

    @BaseService.measure_operation("decline_booking")
    async def decline(
        self, booking_id: str, actor_id: str, reason: Optional[str] = None
    ) -> TransitionResult:
        """
        Decline, then release the hold.

        The release only happens once the decline is committed. A failed
        release does not undo the decline; it comes back as a partial failure.
        """
        action = BookingAction.DECLINE
        try:
            booking, source, target = await self._run_db(
                self._prepare, booking_id, action, professional_id=actor_id
            )
            await self._run_db(
                self._commit_transition,
                booking,
                action,
                source,
                target,
                actor_id=actor_id,
                reason=reason,
                values={"declined_at": self._now(), "decline_reason": reason},
            )
        except DomainException as exc:
            return self._rejected(action, booking_id, exc)

        payment = await self.payments.release_authorization(
            booking.payment_intent_ref,
            idempotency_key=idempotency_key(booking.id, "decline"),
        )
        if isinstance(payment, PaymentPartialFailure):
            self.logger.warning(
                f"Booking {booking.id} declined but authorization release failed",
                extra={"booking_id": booking.id, "error": payment.error.message},
            )

        await self._notify(
            booking, NotificationEvent.BOOKING_DECLINED, to_customer=True, extra={"reason": reason}
        )
        if isinstance(payment, PaymentPartialFailure):
            prometheus_metrics.record_booking_transition(action.value, "partial_failure")
            return TransitionPartialFailure(booking=booking, error=payment.error)
        return self._ok(action, booking, payment)

    @BaseService.measure_operation("cancel_booking")
    async def cancel(
        self, booking_id: str, actor_id: str, reason: Optional[str] = None
    ) -> TransitionResult:
        """Customer cancellation; the refund or release must succeed before anything is written."""
        action = BookingAction.CANCEL
        try:
            booking, source, target = await self._run_db(
                self._prepare, booking_id, action, customer_id=actor_id
            )
            if booking.scheduled_start is None:
                raise MissingScheduledStartException(booking.id)

            decision = self.cancellation_policy.evaluate(
                booking.scheduled_start, booking.status, self._now()
            )
            if not decision.can_cancel:
                raise CancellationNotAllowedException(
                    decision.reason, details={"booking_id": booking.id}
                )
            refund = self.cancellation_policy.refund_amount(
                refundable_base(booking), decision.refund_percentage
            )

            payment = await self.payments.settle_refund_or_cancel(
                booking.payment_intent_ref,
                refund,
                idempotency_key=idempotency_key(booking.id, "cancel"),
            )
            if isinstance(payment, PaymentFatal):
                raise payment.error

            await self._run_db(
                self._commit_cancellation,
                booking,
                source,
                target,
                actor_id=actor_id,
                reason=reason,
                values={
                    "canceled_at": self._now(),
                    "canceled_by": actor_id,
                    "canceled_reason": reason,
                    "refund_percentage": decision.refund_percentage,
                    "amount_refunded": payment.amount if payment.action == REFUNDED else 0,
                },
            )
        except DomainException as exc:
            return self._rejected(action, booking_id, exc)

        await self._notify(
            booking,
            NotificationEvent.BOOKING_CANCELED,
            to_professional=True,
            extra={"reason": reason, "refund_percentage": decision.refund_percentage},
        )
        return self._ok(
            action,
            booking,
            payment,
            data={
                "refund_percentage": decision.refund_percentage,
                "refund_amount": refund,
                "payment_action": payment.action,
            },
        )

    @BaseService.measure_operation("check_in")
    async def check_in(
        self, booking_id: str, actor_id: str, latitude: float, longitude: float
    ) -> TransitionResult:
        """Professional arrives on site. Distance from the address is flagged, never enforced."""
        action = BookingAction.CHECK_IN
        try:
            booking, source, target = await self._run_db(
                self._prepare, booking_id, action, professional_id=actor_id
            )
            location = self._location_check(booking, latitude, longitude, "check-in")

            await self._run_db(
                self._commit_transition,
                booking,
                action,
                source,
                target,
                actor_id=actor_id,
                values={
                    "checked_in_at": self._now(),
                    "check_in_latitude": latitude,
                    "check_in_longitude": longitude,
                },
            )
        except DomainException as exc:
            return self._rejected(action, booking_id, exc)

        await self._notify(booking, NotificationEvent.SERVICE_STARTED, to_customer=True)
        return self._ok(action, booking, data=location)

    @BaseService.measure_operation("check_out")
    async def check_out(
        self,
        booking_id: str,
        actor_id: str,
        latitude: float,
        longitude: float,
        completion_notes: Optional[str] = None,
    ) -> TransitionResult:
        """Finish the visit and capture the authorized amount, extensions included."""
        action = BookingAction.CHECK_OUT
        try:
            booking, source, target = await self._run_db(
                self._prepare, booking_id, action, professional_id=actor_id
            )
            if booking.checked_in_at is None:
                raise ValidationException(
                    "Booking has not been checked in",
                    code="NOT_CHECKED_IN",
                    details={"booking_id": booking.id},
                )
            location = self._location_check(booking, latitude, longitude, "check-out")

            capture_amount = int(booking.amount_authorized or 0)
            payment = await self.payments.capture(
                booking.payment_intent_ref,
                capture_amount,
                idempotency_key=idempotency_key(booking.id, "capture"),
            )
            if isinstance(payment, PaymentFatal):
                raise payment.error

            now = self._now()
            actual_minutes = max(0, int((now - _utc(booking.checked_in_at)).total_seconds() // 60))
            amount_captured = payment.amount if booking.payment_intent_ref else None
            await self._run_db(
                self._commit_transition,
                booking,
                action,
                source,
                target,
                actor_id=actor_id,
                values={
                    "checked_out_at": now,
                    "check_out_latitude": latitude,
                    "check_out_longitude": longitude,
                    "completion_notes": completion_notes,
                    "actual_duration_minutes": actual_minutes,
                    "amount_captured": amount_captured,
                },
            )
        except DomainException as exc:
            return self._rejected(action, booking_id, exc)

        await self._notify(
            booking, NotificationEvent.SERVICE_COMPLETED, to_customer=True, to_professional=True
        )
        return self._ok(
            action, booking, payment, data={"amount_captured": amount_captured, **location}
        )

    @BaseService.measure_operation("extend_time")
    async def extend_time(
        self, booking_id: str, actor_id: str, additional_minutes: int
    ) -> TransitionResult:
        """
        Add minutes to a visit in progress.

        The fee uses the booking's per-minute rate. When a hold exists it is
        raised to cover the fee before the booking is updated.
        """
        action = BookingAction.EXTEND_TIME
        try:
            booking, _, _ = await self._run_db(
                self._prepare, booking_id, action, professional_id=actor_id
            )
            if not MIN_EXTENSION_MINUTES <= additional_minutes <= self.max_extension_minutes:
                raise ValidationException(
                    f"additional_minutes must be between {MIN_EXTENSION_MINUTES} "
                    f"and {self.max_extension_minutes}",
                    code="INVALID_EXTENSION",
                    details={"additional_minutes": additional_minutes},
                )

            fee = extension_fee(
                int(booking.total_price or 0), int(booking.duration_minutes or 0), additional_minutes
            )
            previous_authorized = booking.amount_authorized
            previous_minutes = int(booking.time_extension_minutes or 0)
            new_authorized = (
                int(previous_authorized) + fee if previous_authorized is not None else None
            )

            payment: PaymentOutcome = PaymentOk(action=NO_PAYMENT_REQUIRED)
            if booking.payment_intent_ref and fee > 0 and new_authorized is not None:
                payment = await self.payments.increase_authorization(
                    booking.payment_intent_ref,
                    new_authorized,
                    idempotency_key=idempotency_key(booking.id, f"extend:{new_authorized}"),
                )
                if isinstance(payment, PaymentFatal):
                    raise payment.error

            await self._run_db(
                self._apply_extension,
                booking,
                action,
                values={
                    "time_extension_minutes": previous_minutes + additional_minutes,
                    "extension_amount": int(booking.extension_amount or 0) + fee,
                    "amount_authorized": new_authorized,
                },
                expected_values={
                    "amount_authorized": previous_authorized,
                    "time_extension_minutes": previous_minutes,
                },
            )
        except DomainException as exc:
            return self._rejected(action, booking_id, exc)

        await self._notify(
            booking,
            NotificationEvent.TIME_EXTENDED,
            to_customer=True,
            extra={"additional_minutes": additional_minutes, "extension_fee": fee},
        )
        return self._ok(
            action,
            booking,
            payment if isinstance(payment, PaymentOk) else None,
            data={
                "time_extension_minutes": booking.time_extension_minutes,
                "extension_fee": fee,
            },
        )

    # Session steps (blocking, run through _run_db)

    def _insert_pending_booking(
        self,
        customer_id: str,
        *,
        service_id: str,
        scheduled_start: datetime,
        duration_minutes: int,
        pricing_tier_id: Optional[str],
        addon_ids: Optional[Sequence[str]],
        service_address: Optional[str],
        location_lat: Optional[float],
        location_lng: Optional[float],
        customer_email: Optional[str],
    ) -> Booking:
        if _utc(scheduled_start) <= self._now():
            raise ValidationException(
                "Scheduled start must be in the future",
                code="SCHEDULED_START_IN_PAST",
                details={"scheduled_start": scheduled_start.isoformat()},
            )

        pricing = self.pricing_service.calculate(service_id, pricing_tier_id, addon_ids)
        service = self.pricing_service.catalog_repository.get_active_service(service_id)

        with self.transaction():
            booking = self.booking_repository.create(
                customer_id=customer_id,
                professional_id=service.professional_id,
                customer_email=customer_email,
                professional_email=service.contact_email,
                service_id=service_id,
                pricing_tier_id=pricing_tier_id,
                status=BookingStatus.PENDING_PAYMENT.value,
                scheduled_start=_utc(scheduled_start),
                duration_minutes=duration_minutes,
                base_price=pricing.base_price,
                tier_price=pricing.tier_price,
                addons_price=pricing.addons_price,
                total_price=pricing.total_price,
                currency=pricing.currency,
                service_address=service_address,
                location_lat=location_lat,
                location_lng=location_lng,
            )
            self.booking_repository.add_addon_snapshots(booking.id, pricing.addons)
            self.booking_repository.record_initial_status(booking, customer_id)
        return booking

    def _discard_booking(self, booking_id: str) -> None:
        with self.transaction():
            self.booking_repository.delete_booking(booking_id)
        self.logger.info(f"Removed booking {booking_id} after payment setup failed")

    def _link_payment_reference(self, booking: Booking, ref: Optional[str]) -> None:
        """Store the payment reference unless the authorization webhook already did."""
        with self.transaction():
            linked = self.booking_repository.update_if_status(
                booking.id,
                expected_status=BookingStatus.PENDING_PAYMENT,
                values={"payment_intent_ref": ref},
                expected_values={"payment_intent_ref": None},
            )
        if not linked:
            self.logger.info(
                "Payment reference already recorded",
                extra={"booking_id": booking.id, "payment_intent_ref": ref},
            )
        self.db.refresh(booking)

    def _prepare(
        self,
        booking_id: str,
        action: BookingAction,
        *,
        professional_id: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> Tuple[Booking, BookingStatus, BookingStatus]:
        """Load the booking, check the actor and plan the move."""
        booking = self._load(booking_id)
        if professional_id is not None:
            self._require_professional(booking, professional_id, action)
        if customer_id is not None:
            self._require_customer(booking, customer_id, action)
        source, target = self._plan(booking, action)
        return booking, source, target

    def _commit_transition(
        self,
        booking: Booking,
        action: BookingAction,
        source: BookingStatus,
        target: BookingStatus,
        *,
        actor_id: str,
        reason: Optional[str] = None,
        values: Optional[Dict[str, Any]] = None,
        expected_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Conditional status write plus history row in one transaction.

        Raises:
            InvalidBookingStatusException: If the status changed since it was read
            ServiceException: If persistence fails
        """
        with self.transaction():
            applied = self.booking_repository.transition_status(
                booking.id,
                expected_status=source,
                new_status=target,
                changed_by=actor_id,
                reason=reason,
                values=values,
                expected_values=expected_values,
            )
            if not applied:
                current = self.booking_repository.get_current_status(booking.id)
                raise InvalidBookingStatusException(action.verb, str(current))
        self.db.refresh(booking)

    def _commit_cancellation(
        self,
        booking: Booking,
        source: BookingStatus,
        target: BookingStatus,
        **kwargs: Any,
    ) -> None:
        """
        Commit a cancellation whose payment step already ran.

        When another request moved the booking to a status that can still be
        canceled (an accept landing in between), the cancellation applies to
        that status. Otherwise it is rejected; the payment was already settled,
        so the mismatch is logged for reconciliation unless another
        cancellation won with the same idempotent payment step.
        """
        action = BookingAction.CANCEL
        try:
            self._commit_transition(booking, action, source, target, **kwargs)
        except InvalidBookingStatusException as exc:
            current = exc.current_status
            cancelable = {status.value for status in allowed_sources(action)}
            if current != source.value and current in cancelable:
                self._commit_transition(booking, action, BookingStatus(current), target, **kwargs)
                return
            if current != target.value:
                self.logger.error(
                    f"Payment settled for booking {booking.id} but it is now {current}, "
                    "needs reconciliation",
                    extra={"booking_id": booking.id, "current_status": current},
                )
            raise

    def _apply_extension(
        self,
        booking: Booking,
        action: BookingAction,
        *,
        values: Dict[str, Any],
        expected_values: Dict[str, Any],
    ) -> None:
        with self.transaction():
            applied = self.booking_repository.update_if_status(
                booking.id,
                expected_status=BookingStatus.IN_PROGRESS,
                values=values,
                expected_values=expected_values,
            )
            if not applied:
                current = self.booking_repository.get_current_status(booking.id)
                if current != BookingStatus.IN_PROGRESS.value:
                    raise InvalidBookingStatusException(action.verb, str(current))
                raise ConflictException(
                    "Booking was modified by another request, retry the extension",
                    code="CONCURRENT_BOOKING_UPDATE",
                    details={"booking_id": booking.id},
                )
        self.db.refresh(booking)

    # Helpers

    async def _run_db(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking session step in a worker thread."""
        async with self._db_lock:
            return await asyncio.to_thread(func, *args, **kwargs)

    def _now(self) -> datetime:
        return _utc(self._clock())

    def _load(self, booking_id: str, *, with_details: bool = False) -> Booking:
        if with_details:
            booking = self.booking_repository.get_booking_with_details(booking_id)
        else:
            booking = self.booking_repository.get_by_id(booking_id, load_relationships=False)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    @staticmethod
    def _require_professional(booking: Booking, actor_id: str, action: BookingAction) -> None:
        if not booking.professional_id:
            raise ValueError(f"Booking {booking.id} has no professional_id")
        if not booking.is_owned_by_professional(actor_id):
            raise ForbiddenException(
                f"Only the assigned professional can {action.verb} this booking",
                code="NOT_BOOKING_PROFESSIONAL",
                details={"booking_id": booking.id},
            )

    @staticmethod
    def _require_customer(booking: Booking, actor_id: str, action: BookingAction) -> None:
        if not booking.customer_id:
            raise ValueError(f"Booking {booking.id} has no customer_id")
        if not booking.is_owned_by_customer(actor_id):
            raise ForbiddenException(
                f"Only the customer can {action.verb} this booking",
                code="NOT_BOOKING_CUSTOMER",
                details={"booking_id": booking.id},
            )

    def _location_check(
        self, booking: Booking, latitude: float, longitude: float, step: str
    ) -> Dict[str, Any]:
        distance = distance_from_site(booking.location_lat, booking.location_lng, latitude, longitude)
        if distance is None or distance <= self.check_in_max_distance_meters:
            return {"distance_meters": distance, "location_warning": None}

        warning = (
            f"{step.capitalize()} recorded {distance:.0f} m from the service address "
            f"(limit {self.check_in_max_distance_meters:.0f} m)"
        )
        self.logger.warning(
            warning,
            extra={"booking_id": booking.id, "distance_meters": round(distance, 1), "step": step},
        )
        return {"distance_meters": distance, "location_warning": warning}

    @staticmethod
    def _plan(booking: Booking, action: BookingAction) -> Tuple[BookingStatus, BookingStatus]:
        """Status as read now and the status the action leads to."""
        source = BookingStatus(booking.status)
        return source, ensure_transition(source, action)

    def _ok(
        self,
        action: BookingAction,
        booking: Booking,
        payment: Optional[PaymentOk] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> TransitionOk:
        prometheus_metrics.record_booking_transition(action.value, "ok")
        return TransitionOk(booking=booking, payment=payment, data=data or {})

    def _rejected(
        self, action: BookingAction, booking_id: str, error: DomainException
    ) -> TransitionRejected:
        prometheus_metrics.record_booking_transition(action.value, "rejected")
        self.logger.info(
            f"{action.value} rejected for booking {booking_id}: {error.message}",
            extra={"booking_id": booking_id, "action": action.value, "code": error.code},
        )
        return TransitionRejected(error=error)

    async def _notify(
        self,
        booking: Booking,
        event: NotificationEvent,
        *,
        to_customer: bool = False,
        to_professional: bool = False,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload: Dict[str, Any] = {
            "booking_id": booking.id,
            "status": booking.status,
            "scheduled_date": format_scheduled_date(booking.scheduled_start),
            "scheduled_time": format_scheduled_time(booking.scheduled_start),
            "duration": format_duration(booking.total_minutes),
            "address": format_address(booking.service_address),
            "amount": format_amount(booking.total_price, booking.currency),
            **(extra or {}),
        }
        notifications: List[Notification] = []
        if to_customer:
            notifications.append(
                Notification(
                    event=event,
                    recipient_id=booking.customer_id,
                    recipient_email=booking.customer_email,
                    payload=payload,
                )
            )
        if to_professional:
            notifications.append(
                Notification(
                    event=event,
                    recipient_id=booking.professional_id,
                    recipient_email=booking.professional_email,
                    payload=payload,
                )
            )
        await self.notifications.dispatch(notifications)
