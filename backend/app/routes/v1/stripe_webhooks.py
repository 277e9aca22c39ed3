"""
Stripe Webhook Endpoint

Receives PaymentIntent events from Stripe. A successful manual-capture hold
(``payment_intent.amount_capturable_updated``) moves the booking named in
the intent's metadata from pending_payment to authorized.

Other event types are acknowledged and ignored. Rejected transitions are
acknowledged too, so Stripe does not keep retrying an event that can never
apply.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
import stripe

from ...api.dependencies import get_booking_lifecycle_service
from ...core.config import settings
from ...integrations.stripe_gateway import construct_webhook_event
from ...schemas.system import WebhookResponse
from ...services.booking_lifecycle_service import BookingLifecycleService, TransitionRejected

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stripe-webhooks"])

AUTHORIZATION_EVENT = "payment_intent.amount_capturable_updated"


def _get(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    try:
        return obj[name]
    except (KeyError, TypeError):
        return getattr(obj, name, None)


def _booking_id_from(intent: Any) -> Optional[str]:
    metadata = _get(intent, "metadata")
    booking_id = _get(metadata, "booking_id")
    return str(booking_id) if booking_id else None


@router.post("/stripe", response_model=WebhookResponse)
async def handle_stripe_webhook(
    request: Request,
    booking_service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> WebhookResponse:
    """
    Handle Stripe PaymentIntent webhook events.

    Returns:
        Processing result (success, ignored)

    Raises:
        HTTPException: 400 for a missing or invalid signature, 500 when no
            webhook secret is configured

    Note:
        This endpoint has no authentication as it uses webhook signature verification
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.warning("Webhook received without signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stripe-signature header"
        )

    if not settings.stripe_webhook_secret.get_secret_value():
        logger.error("No webhook secret configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook configuration error"
        )

    try:
        event = construct_webhook_event(payload, signature, settings.stripe_webhook_secret)
    except ValueError:
        logger.warning("Webhook payload is not valid JSON")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        logger.warning("Invalid Stripe webhook signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature"
        )

    event_type = str(_get(event, "type") or "unknown")
    logger.info(f"Processing Stripe webhook event: {event_type}")

    if event_type != AUTHORIZATION_EVENT:
        logger.info(f"Unhandled webhook event type: {event_type}")
        return WebhookResponse(status="ignored", event_type=event_type)

    intent = _get(_get(event, "data"), "object")
    booking_id = _booking_id_from(intent)
    intent_id = _get(intent, "id")
    if not booking_id or not intent_id:
        logger.warning(f"{event_type} without booking metadata ignored")
        return WebhookResponse(
            status="ignored", event_type=event_type, message="No booking_id in metadata"
        )

    amount = int(_get(intent, "amount_capturable") or _get(intent, "amount") or 0)
    result = await booking_service.record_authorization(booking_id, str(intent_id), amount)
    if isinstance(result, TransitionRejected):
        logger.warning(
            f"Authorization for booking {booking_id} not recorded: {result.error.message}"
        )
        return WebhookResponse(status="ignored", event_type=event_type, message=result.error.message)

    return WebhookResponse(status="success", event_type=event_type)


__all__ = ["router"]
