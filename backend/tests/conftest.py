# backend/tests/conftest.py
"""
Pytest configuration for the booking core.

Every test runs against a fresh in-memory SQLite database. The payment
gateway is the in-memory FakePaymentGateway and notifications go to an
AsyncMock, so no test reaches Stripe or Resend.
"""

import os

# Set testing mode BEFORE any app imports
os.environ["ENVIRONMENT"] = "test"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("RESEND_API_KEY", None)

from datetime import timedelta
from typing import Any, Callable, Iterator, Optional
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
import ulid

from app.api.dependencies import get_db, get_notification_dispatcher
from app.core.constants import ACTOR_HEADER
from app.database import Base
from app.integrations.payment_gateway import FakePaymentGateway
from app.main import app
from app.models.booking import Booking, BookingStatus
from app.models.service_catalog import ProfessionalService, ServiceAddon, ServicePricingTier
from app.services.booking_lifecycle_service import BookingLifecycleService
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.payment_orchestrator import PaymentOrchestrator

from tests.helpers import CUSTOMER_ID, NOW, PROFESSIONAL_ID, SITE_LAT, SITE_LNG


@pytest.fixture
def test_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(test_engine) -> Iterator[Session]:
    """Database session for one test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def catalog_service(db: Session) -> ProfessionalService:
    """Deep cleaning at 50,000 with a large-home tier and two add-ons (5,000 / 8,000)."""
    service = ProfessionalService(
        id=str(ulid.ULID()),
        professional_id=PROFESSIONAL_ID,
        contact_email="pro@example.com",
        name="Deep cleaning",
        base_price=50000,
        currency="cop",
        is_active=True,
    )
    db.add(service)
    db.flush()
    db.add_all(
        [
            ServicePricingTier(id=str(ulid.ULID()), service_id=service.id, name="Large home", price=20000),
            ServiceAddon(id=str(ulid.ULID()), service_id=service.id, name="Fridge", price=5000),
            ServiceAddon(id=str(ulid.ULID()), service_id=service.id, name="Oven", price=8000),
            ServiceAddon(
                id=str(ulid.ULID()),
                service_id=service.id,
                name="Retired extra",
                price=1000,
                is_active=False,
            ),
        ]
    )
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def active_addons(catalog_service: ProfessionalService) -> list[ServiceAddon]:
    return sorted(
        (addon for addon in catalog_service.addons if addon.is_active), key=lambda a: a.price
    )


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def dispatcher() -> AsyncMock:
    mock = AsyncMock(spec=NotificationDispatcher)
    mock.dispatch.return_value = None
    return mock


@pytest.fixture
def make_booking(db: Session, catalog_service: ProfessionalService, gateway: FakePaymentGateway):
    """
    Factory for bookings in any status.

    ``hours_from_now`` is relative to NOW. With ``authorized=True`` a hold for
    the total is registered on the fake gateway.
    """

    def _make(
        status: BookingStatus = BookingStatus.CONFIRMED,
        *,
        hours_from_now: Optional[float] = 72,
        total_price: int = 60000,
        duration_minutes: int = 120,
        authorized: bool = True,
        **overrides: Any,
    ) -> Booking:
        values: dict[str, Any] = {
            "id": str(ulid.ULID()),
            "customer_id": CUSTOMER_ID,
            "professional_id": PROFESSIONAL_ID,
            "customer_email": "customer@example.com",
            "professional_email": "pro@example.com",
            "service_id": catalog_service.id,
            "status": status.value,
            "scheduled_start": (
                NOW + timedelta(hours=hours_from_now) if hours_from_now is not None else None
            ),
            "duration_minutes": duration_minutes,
            "base_price": total_price,
            "total_price": total_price,
            "currency": "cop",
            "service_address": "Calle 93 #11-20, Bogota",
            "location_lat": SITE_LAT,
            "location_lng": SITE_LNG,
        }
        if authorized and status != BookingStatus.PENDING_PAYMENT:
            hold = gateway.authorize(total_price)
            values["payment_intent_ref"] = hold.ref
            values["amount_authorized"] = total_price
        values.update(overrides)
        booking = Booking(**values)
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def lifecycle_service(
    db: Session, gateway: FakePaymentGateway, dispatcher: AsyncMock
) -> BookingLifecycleService:
    return BookingLifecycleService(
        db,
        payment_orchestrator=PaymentOrchestrator(gateway),
        notification_dispatcher=dispatcher,
        clock=lambda: NOW,
    )


@pytest.fixture
def make_lifecycle_service(db: Session, dispatcher: AsyncMock) -> Callable[..., BookingLifecycleService]:
    """Lifecycle service over an arbitrary gateway (e.g. a failing mock)."""

    def _make(gateway: Any, **kwargs: Any) -> BookingLifecycleService:
        kwargs.setdefault("clock", lambda: NOW)
        return BookingLifecycleService(
            db,
            payment_orchestrator=PaymentOrchestrator(gateway),
            notification_dispatcher=dispatcher,
            **kwargs,
        )

    return _make


@pytest.fixture
def client(db: Session, gateway: FakePaymentGateway, dispatcher: AsyncMock) -> Iterator[TestClient]:
    """API client bound to the test session, the fake gateway and the mocked dispatcher."""

    def _override_get_db() -> Iterator[Session]:
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.state.payment_gateway = gateway
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        app.state.payment_gateway = None


@pytest.fixture
def customer_headers() -> dict[str, str]:
    return {ACTOR_HEADER: CUSTOMER_ID}


@pytest.fixture
def professional_headers() -> dict[str, str]:
    return {ACTOR_HEADER: PROFESSIONAL_ID}
