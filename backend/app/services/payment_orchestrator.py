"""
Payment side effects of booking transitions.

The orchestrator is the only component that talks to the payment gateway.
It never raises for gateway failures: callers get a typed outcome and decide
whether a failure aborts their transition (cancel, check-out, extend) or is
only reported (decline).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import Any, Callable, Optional, TypeVar, Union

from app.core.exceptions import PaymentGatewayException
from app.integrations.payment_gateway import (
    REQUIRES_CAPTURE,
    REQUIRES_PAYMENT_METHOD,
    SUCCEEDED,
    PaymentGateway,
    PaymentGatewayError,
)
from app.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PaymentOk.action values
AUTHORIZATION_CREATED = "authorization_created"
NO_PAYMENT_REQUIRED = "no_payment_required"
AUTHORIZATION_RELEASED = "authorization_released"
AUTHORIZATION_CANCELED = "authorization_canceled"
REFUNDED = "refunded"
NO_REFUND_NEEDED = "no_refund_needed"
CAPTURED = "captured"
AUTHORIZATION_INCREASED = "authorization_increased"


@dataclass(frozen=True)
class PaymentOk:
    action: str
    amount: int = 0
    gateway_status: Optional[str] = None
    ref: Optional[str] = None
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class PaymentPartialFailure:
    """Gateway call failed but the caller may still commit its transition."""

    error: PaymentGatewayException


@dataclass(frozen=True)
class PaymentFatal:
    """Gateway call failed and the caller must not commit."""

    error: PaymentGatewayException


PaymentOutcome = Union[PaymentOk, PaymentPartialFailure, PaymentFatal]


def idempotency_key(booking_id: str, operation: str) -> str:
    """Gateway idempotency key shared by every request acting on the same booking step."""
    return f"booking:{booking_id}:{operation}"


class PaymentOrchestrator:
    """Wraps a PaymentGateway with booking-level semantics."""

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway
        self.logger = logging.getLogger(self.__class__.__name__)

    async def create_authorization(
        self,
        booking_id: str,
        customer_id: str,
        amount: int,
        currency: str,
        *,
        idempotency_key: str,
    ) -> PaymentOutcome:
        """
        Open a manual-capture payment for a new booking. Failures are fatal.

        The booking id travels in the payment metadata; the authorization
        webhook uses it to find the booking again.
        """
        try:
            state = await self._call(
                "create_authorization",
                self.gateway.create_authorization,
                int(amount),
                currency,
                metadata={"booking_id": booking_id, "customer_id": customer_id},
                idempotency_key=idempotency_key,
            )
        except PaymentGatewayException as exc:
            return PaymentFatal(error=exc)
        return PaymentOk(
            action=AUTHORIZATION_CREATED,
            amount=state.amount,
            gateway_status=state.status,
            ref=state.ref,
            client_secret=state.client_secret,
        )

    async def release_authorization(
        self, ref: Optional[str], *, idempotency_key: str
    ) -> PaymentOutcome:
        """Cancel a held authorization. Failures are never fatal."""
        if not ref:
            return PaymentOk(action=NO_PAYMENT_REQUIRED)
        try:
            state = await self._call("cancel", self.gateway.cancel, ref, idempotency_key=idempotency_key)
        except PaymentGatewayException as exc:
            return PaymentPartialFailure(error=exc)
        return PaymentOk(action=AUTHORIZATION_RELEASED, gateway_status=state.status)

    async def settle_refund_or_cancel(
        self, ref: Optional[str], refund_amount: int, *, idempotency_key: str
    ) -> PaymentOutcome:
        """
        Undo a payment for a cancellation.

        A held or not yet confirmed payment is canceled outright whatever the
        refund amount; a captured payment is refunded by exactly ``refund_amount``.
        """
        if not ref:
            return PaymentOk(action=NO_PAYMENT_REQUIRED)
        try:
            state = await self._call("retrieve", self.gateway.retrieve, ref)

            if state.status in (REQUIRES_PAYMENT_METHOD, REQUIRES_CAPTURE):
                canceled = await self._call(
                    "cancel", self.gateway.cancel, ref, idempotency_key=idempotency_key
                )
                return PaymentOk(action=AUTHORIZATION_CANCELED, gateway_status=canceled.status)

            if state.status == SUCCEEDED:
                if refund_amount <= 0:
                    return PaymentOk(action=NO_REFUND_NEEDED, gateway_status=state.status)
                receipt = await self._call(
                    "refund",
                    self.gateway.refund,
                    ref,
                    int(refund_amount),
                    idempotency_key=idempotency_key,
                )
                return PaymentOk(action=REFUNDED, amount=receipt.amount, gateway_status=receipt.status)
        except PaymentGatewayException as exc:
            return PaymentFatal(error=exc)

        self.logger.warning(
            "Payment in unexpected state for cancellation",
            extra={"payment_intent_ref": ref, "gateway_status": state.status},
        )
        return PaymentFatal(
            error=PaymentGatewayException(
                f"Payment cannot be refunded or canceled in state: {state.status}",
                operation="settle",
                details={"gateway_status": state.status},
            )
        )

    async def capture(self, ref: Optional[str], amount: int, *, idempotency_key: str) -> PaymentOutcome:
        """Capture ``amount`` from a held authorization. Failures are fatal."""
        if not ref:
            return PaymentOk(action=NO_PAYMENT_REQUIRED)
        try:
            state = await self._call(
                "capture", self.gateway.capture, ref, int(amount), idempotency_key=idempotency_key
            )
        except PaymentGatewayException as exc:
            return PaymentFatal(error=exc)
        captured = state.amount_received or int(amount)
        return PaymentOk(action=CAPTURED, amount=captured, gateway_status=state.status)

    async def increase_authorization(
        self, ref: Optional[str], new_amount: int, *, idempotency_key: str
    ) -> PaymentOutcome:
        """Raise the held authorization to ``new_amount``. Failures are fatal."""
        if not ref:
            return PaymentOk(action=NO_PAYMENT_REQUIRED)
        try:
            state = await self._call(
                "increment_authorization",
                self.gateway.increment_authorization,
                ref,
                int(new_amount),
                idempotency_key=idempotency_key,
            )
        except PaymentGatewayException as exc:
            return PaymentFatal(error=exc)
        return PaymentOk(action=AUTHORIZATION_INCREASED, amount=state.amount, gateway_status=state.status)

    async def _call(self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        start = time.monotonic()
        try:
            result = await asyncio.to_thread(func, *args, **kwargs)
        except PaymentGatewayError as exc:
            prometheus_metrics.record_gateway_call(operation, "error", time.monotonic() - start)
            self.logger.warning(
                f"Payment gateway {operation} failed: {exc}",
                extra={"operation": operation, "gateway_code": exc.code},
            )
            raise PaymentGatewayException(
                str(exc),
                operation=operation,
                details={"gateway_code": exc.code} if exc.code else None,
            ) from exc
        except Exception as exc:
            prometheus_metrics.record_gateway_call(operation, "error", time.monotonic() - start)
            self.logger.error(f"Payment gateway {operation} crashed: {exc}", exc_info=True)
            raise PaymentGatewayException(str(exc), operation=operation) from exc
        prometheus_metrics.record_gateway_call(operation, "success", time.monotonic() - start)
        return result
