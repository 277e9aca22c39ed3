"""Stripe implementation of the payment gateway contract."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import SecretStr
import stripe

from .payment_gateway import PaymentGatewayError, PaymentState, RefundReceipt

logger = logging.getLogger(__name__)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    value = getattr(obj, name, None)
    if value is None and hasattr(obj, "get"):
        value = obj.get(name)
    return default if value is None else value


def _to_state(pi: Any) -> PaymentState:
    return PaymentState(
        ref=str(_field(pi, "id", "")),
        status=str(_field(pi, "status", "")),
        amount=int(_field(pi, "amount", 0)),
        amount_capturable=int(_field(pi, "amount_capturable", 0)),
        amount_received=int(_field(pi, "amount_received", 0)),
        currency=_field(pi, "currency"),
        client_secret=_field(pi, "client_secret"),
    )


def _gateway_error(operation: str, exc: stripe.StripeError) -> PaymentGatewayError:
    return PaymentGatewayError(
        str(getattr(exc, "user_message", None) or exc),
        operation=operation,
        code=getattr(exc, "code", None),
        http_status=getattr(exc, "http_status", None),
    )


class StripePaymentGateway:
    """
    Manual-capture PaymentIntents on Stripe.

    The API key travels with every request instead of living on the module,
    so two gateways with different keys can coexist in one process.
    """

    def __init__(
        self,
        *,
        api_key: str | SecretStr,
        timeout_seconds: float = 8.0,
        max_network_retries: int = 1,
    ) -> None:
        secret_value = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        if not secret_value:
            raise ValueError("Stripe API key must be provided")
        self._api_key = secret_value
        # Sane network timeouts/retries so a slow Stripe call cannot hang a request
        stripe.default_http_client = stripe.http_client.RequestsClient(timeout=timeout_seconds)
        stripe.max_network_retries = max_network_retries
        self.logger = logging.getLogger(self.__class__.__name__)

    def create_authorization(
        self,
        amount: int,
        currency: str,
        *,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> PaymentState:
        """Create a manual-capture PaymentIntent the client confirms with its secret."""
        try:
            pi = stripe.PaymentIntent.create(
                amount=int(amount),
                currency=currency,
                capture_method="manual",
                automatic_payment_methods={"enabled": True},
                metadata=metadata,
                idempotency_key=idempotency_key,
                api_key=self._api_key,
            )
            state = _to_state(pi)
            self.logger.info(f"Created payment intent {state.ref} for booking {metadata.get('booking_id')}")
            return state
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise _gateway_error("create_authorization", e) from e

    def retrieve(self, ref: str) -> PaymentState:
        try:
            return _to_state(stripe.PaymentIntent.retrieve(ref, api_key=self._api_key))
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error retrieving payment intent {ref}: {str(e)}")
            raise _gateway_error("retrieve", e) from e

    def cancel(self, ref: str, *, idempotency_key: str) -> PaymentState:
        try:
            pi = stripe.PaymentIntent.cancel(
                ref, idempotency_key=idempotency_key, api_key=self._api_key
            )
            return _to_state(pi)
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error canceling payment intent {ref}: {str(e)}")
            raise _gateway_error("cancel", e) from e

    def refund(self, ref: str, amount: int, *, idempotency_key: str) -> RefundReceipt:
        try:
            refund = stripe.Refund.create(
                payment_intent=ref,
                amount=int(amount),
                reason="requested_by_customer",
                idempotency_key=idempotency_key,
                api_key=self._api_key,
            )
            return RefundReceipt(
                refund_id=str(_field(refund, "id", "")),
                amount=int(_field(refund, "amount", amount)),
                status=str(_field(refund, "status", "")),
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error refunding payment intent {ref}: {str(e)}")
            raise _gateway_error("refund", e) from e

    def capture(self, ref: str, amount: int, *, idempotency_key: str) -> PaymentState:
        try:
            pi = stripe.PaymentIntent.capture(
                ref,
                amount_to_capture=int(amount),
                idempotency_key=idempotency_key,
                api_key=self._api_key,
            )
            return _to_state(pi)
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error capturing payment intent {ref}: {str(e)}")
            raise _gateway_error("capture", e) from e

    def increment_authorization(
        self, ref: str, amount: int, *, idempotency_key: str
    ) -> PaymentState:
        try:
            pi = stripe.PaymentIntent.increment_authorization(
                ref,
                amount=int(amount),
                idempotency_key=idempotency_key,
                api_key=self._api_key,
            )
            return _to_state(pi)
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error incrementing authorization {ref}: {str(e)}")
            raise _gateway_error("increment_authorization", e) from e


def construct_webhook_event(
    payload: bytes, signature: Optional[str], secret: str | SecretStr
) -> Any:
    """
    Verify a Stripe webhook signature and return the parsed event.

    Raises:
        ValueError: If the payload is not valid JSON
        stripe.SignatureVerificationError: If the signature does not match
    """
    secret_value = secret.get_secret_value() if isinstance(secret, SecretStr) else secret
    return stripe.Webhook.construct_event(payload, signature or "", secret_value)
