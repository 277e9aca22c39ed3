# backend/app/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingLifecycleService.

Endpoints:
    POST / - Create a booking priced from the catalog
    GET /{booking_id} - Full booking details (participants only)
    GET /{booking_id}/cancellation-preview - Refund a cancellation would give now
    POST /{booking_id}/accept - Professional accepts an authorized booking
    POST /{booking_id}/decline - Professional declines and releases the hold
    POST /{booking_id}/cancel - Customer cancels under the refund policy
    POST /{booking_id}/check-in - Professional arrives on site
    POST /{booking_id}/check-out - Professional finishes and payment is captured
    POST /{booking_id}/extend-time - Professional adds minutes to a visit in progress
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.params import Path

from ...api.dependencies import get_actor_id, get_booking_lifecycle_service
from ...core.exceptions import DomainException
from ...schemas.booking import (
    BookingCreate,
    BookingResponse,
    CancelBookingRequest,
    CancelBookingResponse,
    CancellationPreviewResponse,
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    CheckOutResponse,
    DeclineBookingRequest,
    DeclineBookingResponse,
    ExtendTimeRequest,
    ExtendTimeResponse,
    TransitionResponse,
)
from ...services.booking_lifecycle_service import (
    BookingLifecycleService,
    TransitionOk,
    TransitionPartialFailure,
    TransitionRejected,
    TransitionResult,
)

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _unwrap(result: TransitionResult) -> TransitionOk | TransitionPartialFailure:
    if isinstance(result, TransitionRejected):
        handle_domain_exception(result.error)
    return result


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    """
    Create a booking in pending_payment.

    Prices are resolved from the stored service, tier and add-on records.
    The response carries the client secret of a manual-capture payment; once
    the client confirms it, the gateway webhook moves the booking to authorized.
    """
    try:
        created = await booking_service.create_booking(
            actor_id,
            service_id=booking_data.service_id,
            scheduled_start=booking_data.scheduled_start,
            duration_minutes=booking_data.duration_minutes,
            pricing_tier_id=booking_data.pricing_tier_id,
            addon_ids=booking_data.addon_ids,
            service_address=booking_data.service_address,
            location_lat=booking_data.location_lat,
            location_lng=booking_data.location_lng,
            customer_email=booking_data.customer_email,
        )
        booking = await asyncio.to_thread(
            booking_service.get_booking_for_participant, created.booking.id, actor_id
        )
        response = BookingResponse.model_validate(booking)
        return response.model_copy(update={"client_secret": created.client_secret})
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Reads on a single booking
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = Path(
        ...,
        description="Booking ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    """Get full booking details with add-ons. Only the two participants may read it."""
    try:
        booking = await asyncio.to_thread(
            booking_service.get_booking_for_participant, booking_id, actor_id
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}/cancellation-preview", response_model=CancellationPreviewResponse)
async def preview_cancellation(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> CancellationPreviewResponse:
    """Show what canceling right now would refund, without canceling."""
    try:
        preview = await asyncio.to_thread(
            booking_service.preview_cancellation, booking_id, actor_id
        )
    except DomainException as e:
        handle_domain_exception(e)

    return CancellationPreviewResponse(
        booking_id=booking_id,
        refund_amount=preview.refund_amount,
        currency=preview.currency,
        **preview.decision.to_payload(),
    )


# ============================================================================
# SECTION 3: Transitions
# ============================================================================


@router.post("/{booking_id}/accept", response_model=TransitionResponse)
async def accept_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> TransitionResponse:
    """Professional accepts an authorized booking."""
    result = _unwrap(await booking_service.accept(booking_id, actor_id))
    return TransitionResponse(booking_id=result.booking.id, status=result.booking.status)


@router.post("/{booking_id}/decline", response_model=DeclineBookingResponse)
async def decline_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    decline_data: Optional[DeclineBookingRequest] = Body(None),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> DeclineBookingResponse:
    """
    Professional declines the booking.

    The decline stands even if the payment hold could not be released; the
    response then carries a warning and the hold expires on its own.
    """
    reason = decline_data.reason if decline_data else None
    result = _unwrap(await booking_service.decline(booking_id, actor_id, reason))

    warning = None
    if isinstance(result, TransitionPartialFailure):
        warning = f"Booking declined but payment release failed: {result.error.message}"
    return DeclineBookingResponse(
        booking_id=result.booking.id, status=result.booking.status, warning=warning
    )


@router.post("/{booking_id}/cancel", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    cancel_data: Optional[CancelBookingRequest] = Body(None),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> CancelBookingResponse:
    """Customer cancels; the refund follows the time-before-start policy."""
    reason = cancel_data.reason if cancel_data else None
    result = _unwrap(await booking_service.cancel(booking_id, actor_id, reason))
    return CancelBookingResponse(
        booking_id=result.booking.id,
        status=result.booking.status,
        refund_percentage=int(result.data.get("refund_percentage", 0)),
        refund_amount=int(result.data.get("refund_amount", 0)),
    )


@router.post("/{booking_id}/check-in", response_model=CheckInResponse)
async def check_in(
    check_in_data: CheckInRequest,
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> CheckInResponse:
    """Professional checks in at the service address."""
    result = _unwrap(
        await booking_service.check_in(
            booking_id, actor_id, check_in_data.latitude, check_in_data.longitude
        )
    )
    return CheckInResponse(
        booking_id=result.booking.id,
        status=result.booking.status,
        location_warning=result.data.get("location_warning"),
    )


@router.post("/{booking_id}/check-out", response_model=CheckOutResponse)
async def check_out(
    check_out_data: CheckOutRequest,
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> CheckOutResponse:
    """Professional checks out; the authorized amount is captured."""
    result = _unwrap(
        await booking_service.check_out(
            booking_id,
            actor_id,
            check_out_data.latitude,
            check_out_data.longitude,
            check_out_data.completion_notes,
        )
    )
    return CheckOutResponse(
        booking_id=result.booking.id,
        status=result.booking.status,
        amount_captured=result.data.get("amount_captured"),
        location_warning=result.data.get("location_warning"),
    )


@router.post("/{booking_id}/extend-time", response_model=ExtendTimeResponse)
async def extend_time(
    extend_data: ExtendTimeRequest,
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor_id: str = Depends(get_actor_id),
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> ExtendTimeResponse:
    """Professional extends a visit in progress; the fee is added to the hold."""
    result = _unwrap(
        await booking_service.extend_time(booking_id, actor_id, extend_data.additional_minutes)
    )
    return ExtendTimeResponse(
        booking_id=result.booking.id,
        status=result.booking.status,
        time_extension_minutes=int(result.data.get("time_extension_minutes", 0)),
        extension_fee=int(result.data.get("extension_fee", 0)),
    )


__all__ = ["router"]
