"""Payment gateway contract used by the payment orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from threading import Lock
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable
from uuid import uuid4

logger = logging.getLogger(__name__)

# Gateway payment states the orchestrator branches on
REQUIRES_PAYMENT_METHOD = "requires_payment_method"
REQUIRES_CAPTURE = "requires_capture"
SUCCEEDED = "succeeded"
CANCELED = "canceled"


class PaymentGatewayError(RuntimeError):
    """Raised when the gateway rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.code = code
        self.http_status = http_status


@dataclass(frozen=True)
class PaymentState:
    """Snapshot of a payment as reported by the gateway."""

    ref: str
    status: str
    amount: int = 0
    amount_capturable: int = 0
    amount_received: int = 0
    currency: Optional[str] = None
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class RefundReceipt:
    refund_id: str
    amount: int
    status: str


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Narrow set of gateway operations the booking core needs.

    Calls are blocking; the orchestrator runs them in a worker thread. Every
    mutating call carries an idempotency key so retried or concurrent duplicate
    requests resolve to one gateway side effect.
    """

    def create_authorization(
        self,
        amount: int,
        currency: str,
        *,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> PaymentState: ...

    def retrieve(self, ref: str) -> PaymentState: ...

    def cancel(self, ref: str, *, idempotency_key: str) -> PaymentState: ...

    def refund(self, ref: str, amount: int, *, idempotency_key: str) -> RefundReceipt: ...

    def capture(self, ref: str, amount: int, *, idempotency_key: str) -> PaymentState: ...

    def increment_authorization(
        self, ref: str, amount: int, *, idempotency_key: str
    ) -> PaymentState: ...


class FakePaymentGateway:
    """In-memory gateway for development and tests when Stripe is not configured."""

    def __init__(self) -> None:
        self._payments: Dict[str, PaymentState] = {}
        self._replies: Dict[Tuple[str, str], Any] = {}
        self._lock = Lock()
        self._logger = logging.getLogger(self.__class__.__name__)
        self.calls: list[tuple[str, str]] = []
        self.metadata: Dict[str, Dict[str, str]] = {}

    def create_authorization(
        self,
        amount: int,
        currency: str,
        *,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> PaymentState:
        def _apply() -> PaymentState:
            ref = f"pi_fake_{uuid4().hex}"
            state = PaymentState(
                ref=ref,
                status=REQUIRES_PAYMENT_METHOD,
                amount=int(amount),
                currency=currency,
                client_secret=f"{ref}_secret_{uuid4().hex[:12]}",
            )
            self._payments[ref] = state
            self.metadata[ref] = dict(metadata)
            return state

        return self._once("create_authorization", "", idempotency_key, _apply)

    def authorize(self, amount: int, currency: str = "cop", ref: Optional[str] = None) -> PaymentState:
        """Register a held payment, as a confirmed manual-capture intent would be."""
        state = PaymentState(
            ref=ref or f"pi_fake_{uuid4().hex}",
            status=REQUIRES_CAPTURE,
            amount=int(amount),
            amount_capturable=int(amount),
            currency=currency,
        )
        with self._lock:
            self._payments[state.ref] = state
        return state

    def retrieve(self, ref: str) -> PaymentState:
        self.calls.append(("retrieve", ref))
        return self._get(ref, "retrieve")

    def cancel(self, ref: str, *, idempotency_key: str) -> PaymentState:
        def _apply() -> PaymentState:
            state = self._get(ref, "cancel")
            if state.status not in (REQUIRES_PAYMENT_METHOD, REQUIRES_CAPTURE):
                raise PaymentGatewayError(
                    f"This PaymentIntent's status is {state.status}; it cannot be canceled",
                    operation="cancel",
                    code="payment_intent_unexpected_state",
                )
            updated = replace(state, status=CANCELED, amount_capturable=0)
            self._payments[ref] = updated
            return updated

        return self._once("cancel", ref, idempotency_key, _apply)

    def refund(self, ref: str, amount: int, *, idempotency_key: str) -> RefundReceipt:
        def _apply() -> RefundReceipt:
            state = self._get(ref, "refund")
            if state.status != SUCCEEDED or amount > state.amount_received:
                raise PaymentGatewayError(
                    "Refund amount exceeds the captured charge",
                    operation="refund",
                    code="amount_too_large",
                )
            self._payments[ref] = replace(state, amount_received=state.amount_received - amount)
            return RefundReceipt(refund_id=f"re_fake_{uuid4().hex}", amount=int(amount), status=SUCCEEDED)

        return self._once("refund", ref, idempotency_key, _apply)

    def capture(self, ref: str, amount: int, *, idempotency_key: str) -> PaymentState:
        def _apply() -> PaymentState:
            state = self._get(ref, "capture")
            if state.status != REQUIRES_CAPTURE or amount > state.amount_capturable:
                raise PaymentGatewayError(
                    "Amount to capture exceeds the authorized amount",
                    operation="capture",
                    code="amount_too_large",
                )
            updated = replace(
                state, status=SUCCEEDED, amount_capturable=0, amount_received=int(amount)
            )
            self._payments[ref] = updated
            return updated

        return self._once("capture", ref, idempotency_key, _apply)

    def increment_authorization(
        self, ref: str, amount: int, *, idempotency_key: str
    ) -> PaymentState:
        def _apply() -> PaymentState:
            state = self._get(ref, "increment_authorization")
            if state.status != REQUIRES_CAPTURE or amount < state.amount:
                raise PaymentGatewayError(
                    "The new amount must be greater than the current authorized amount",
                    operation="increment_authorization",
                    code="invalid_amount",
                )
            updated = replace(state, amount=int(amount), amount_capturable=int(amount))
            self._payments[ref] = updated
            return updated

        return self._once("increment_authorization", ref, idempotency_key, _apply)

    def _get(self, ref: str, operation: str) -> PaymentState:
        state = self._payments.get(ref)
        if state is None:
            raise PaymentGatewayError(
                f"No such payment_intent: '{ref}'",
                operation=operation,
                code="resource_missing",
                http_status=404,
            )
        return state

    def _once(self, operation: str, ref: str, idempotency_key: str, apply: Any) -> Any:
        with self._lock:
            self.calls.append((operation, ref))
            key = (operation, idempotency_key)
            if key in self._replies:
                self._logger.debug(
                    "Replaying idempotent gateway call",
                    extra={"operation": operation, "idempotency_key": idempotency_key},
                )
                return self._replies[key]
            result = apply()
            self._replies[key] = result
            return result
