"""StripePaymentGateway against a patched Stripe SDK."""

from unittest.mock import MagicMock, patch

from pydantic import SecretStr
import pytest
import stripe

from app.integrations.payment_gateway import PaymentGatewayError
from app.integrations.stripe_gateway import StripePaymentGateway, construct_webhook_event


@pytest.fixture
def stripe_gateway(monkeypatch) -> StripePaymentGateway:
    # The constructor tunes module-level HTTP settings; restore them afterwards
    monkeypatch.setattr(stripe, "default_http_client", None, raising=False)
    monkeypatch.setattr(stripe, "max_network_retries", 0, raising=False)
    return StripePaymentGateway(api_key=SecretStr("sk_test_123"))


def _intent(**fields):
    intent = {
        "id": "pi_123",
        "status": "requires_capture",
        "amount": 60000,
        "amount_capturable": 60000,
        "amount_received": 0,
        "currency": "cop",
    }
    intent.update(fields)
    return intent


def test_requires_api_key():
    with pytest.raises(ValueError):
        StripePaymentGateway(api_key="")


def test_retrieve_maps_payment_state(stripe_gateway):
    with patch("stripe.PaymentIntent.retrieve", return_value=_intent()) as retrieve:
        state = stripe_gateway.retrieve("pi_123")

    retrieve.assert_called_once_with("pi_123", api_key="sk_test_123")
    assert state.status == "requires_capture"
    assert state.amount_capturable == 60000
    assert state.currency == "cop"


def test_cancel_forwards_idempotency_key(stripe_gateway):
    with patch(
        "stripe.PaymentIntent.cancel", return_value=_intent(status="canceled", amount_capturable=0)
    ) as cancel:
        state = stripe_gateway.cancel("pi_123", idempotency_key="booking:b1:cancel")

    assert cancel.call_args.kwargs["idempotency_key"] == "booking:b1:cancel"
    assert state.status == "canceled"


def test_capture_sends_amount_to_capture(stripe_gateway):
    with patch(
        "stripe.PaymentIntent.capture",
        return_value=_intent(status="succeeded", amount_capturable=0, amount_received=60000),
    ) as capture:
        state = stripe_gateway.capture("pi_123", 60000, idempotency_key="booking:b1:capture")

    assert capture.call_args.kwargs["amount_to_capture"] == 60000
    assert state.amount_received == 60000


def test_increment_authorization(stripe_gateway):
    with patch(
        "stripe.PaymentIntent.increment_authorization",
        return_value=_intent(amount=75000, amount_capturable=75000),
    ) as increment:
        state = stripe_gateway.increment_authorization(
            "pi_123", 75000, idempotency_key="booking:b1:extend:75000"
        )

    assert increment.call_args.kwargs["amount"] == 75000
    assert state.amount == 75000


def test_refund_returns_receipt(stripe_gateway):
    refund = MagicMock(id="re_1", amount=30000, status="succeeded")
    with patch("stripe.Refund.create", return_value=refund) as create:
        receipt = stripe_gateway.refund("pi_123", 30000, idempotency_key="booking:b1:cancel")

    assert create.call_args.kwargs["payment_intent"] == "pi_123"
    assert create.call_args.kwargs["amount"] == 30000
    assert receipt.refund_id == "re_1"
    assert receipt.amount == 30000


def test_stripe_errors_become_gateway_errors(stripe_gateway):
    error = stripe.InvalidRequestError(
        "This PaymentIntent could not be captured", param="amount_to_capture", code="amount_too_large"
    )
    with patch("stripe.PaymentIntent.capture", side_effect=error):
        with pytest.raises(PaymentGatewayError) as exc_info:
            stripe_gateway.capture("pi_123", 90000, idempotency_key="k")

    assert exc_info.value.operation == "capture"
    assert exc_info.value.code == "amount_too_large"


def test_webhook_signature_is_verified():
    with patch("stripe.Webhook.construct_event", return_value={"type": "x"}) as construct:
        event = construct_webhook_event(b"{}", "t=1,v1=abc", SecretStr("whsec_test"))

    construct.assert_called_once_with(b"{}", "t=1,v1=abc", "whsec_test")
    assert event == {"type": "x"}


def test_create_authorization_is_manual_capture_with_booking_metadata(stripe_gateway):
    with patch(
        "stripe.PaymentIntent.create",
        return_value=_intent(
            status="requires_payment_method", amount_capturable=0, client_secret="pi_123_secret_abc"
        ),
    ) as create:
        state = stripe_gateway.create_authorization(
            60000,
            "cop",
            metadata={"booking_id": "b1", "customer_id": "u1"},
            idempotency_key="booking:b1:authorize",
        )

    kwargs = create.call_args.kwargs
    assert kwargs["capture_method"] == "manual"
    assert kwargs["amount"] == 60000
    assert kwargs["metadata"] == {"booking_id": "b1", "customer_id": "u1"}
    assert kwargs["idempotency_key"] == "booking:b1:authorize"
    assert state.ref == "pi_123"
    assert state.client_secret == "pi_123_secret_abc"
