# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. The payment gateway is
built once at startup and kept on ``app.state``.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...core.config import settings
from ...integrations import FakePaymentGateway, PaymentGateway, StripePaymentGateway
from ...services.booking_lifecycle_service import BookingLifecycleService
from ...services.notification_dispatcher import (
    NotificationDispatcher,
    build_notification_dispatcher,
)
from ...services.payment_orchestrator import PaymentOrchestrator
from ...services.pricing_service import PricingService
from .database import get_db

logger = logging.getLogger(__name__)


def build_payment_gateway() -> PaymentGateway:
    """Stripe when a secret key is configured, the in-memory gateway otherwise."""
    if settings.stripe_configured:
        logger.info("Payment gateway: Stripe")
        return StripePaymentGateway(
            api_key=settings.stripe_secret_key,
            timeout_seconds=settings.payment_gateway_timeout_seconds,
            max_network_retries=settings.payment_gateway_max_retries,
        )
    if settings.is_production:
        raise RuntimeError("Stripe secret key must be configured in production")
    logger.warning("Stripe secret key not configured - using in-memory payment gateway")
    return FakePaymentGateway()


def get_payment_gateway(request: Request) -> PaymentGateway:
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        gateway = build_payment_gateway()
        request.app.state.payment_gateway = gateway
    return gateway


def get_notification_dispatcher() -> NotificationDispatcher:
    return build_notification_dispatcher()


def get_pricing_service(db: Session = Depends(get_db)) -> PricingService:
    """Provide pricing service instance for dependency injection."""
    return PricingService(db)


def get_booking_lifecycle_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    pricing_service: PricingService = Depends(get_pricing_service),
) -> BookingLifecycleService:
    """
    Get booking lifecycle service instance with all dependencies.

    Args:
        db: Database session
        gateway: Payment gateway used by the orchestrator
        dispatcher: Notification fan-out
        pricing_service: Catalog pricing for new bookings
    """
    return BookingLifecycleService(
        db,
        payment_orchestrator=PaymentOrchestrator(gateway),
        notification_dispatcher=dispatcher,
        pricing_service=pricing_service,
    )
