"""External service integrations for the booking core."""

from .payment_gateway import (
    FakePaymentGateway,
    PaymentGateway,
    PaymentGatewayError,
    PaymentState,
    RefundReceipt,
)
from .stripe_gateway import StripePaymentGateway

__all__ = [
    "FakePaymentGateway",
    "PaymentGateway",
    "PaymentGatewayError",
    "PaymentState",
    "RefundReceipt",
    "StripePaymentGateway",
]
