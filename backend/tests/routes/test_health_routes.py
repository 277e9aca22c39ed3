"""Health and metrics endpoints."""

from unittest.mock import MagicMock

from fastapi import status
from sqlalchemy.exc import OperationalError

from app.api.dependencies import get_db
from app.main import app


def test_health_probes_database(client):
    response = client.get("/api/v1/health")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "casaora-booking-core"
    assert body["environment"] == "test"


def test_health_degraded_when_database_unreachable(client):
    broken = MagicMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    app.dependency_overrides[get_db] = lambda: broken

    response = client.get("/api/v1/health")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["status"] == "degraded"


def test_health_lite(client):
    response = client.get("/api/v1/health/lite")

    assert response.json() == {"status": "ok"}


def test_root(client):
    assert "version" in client.get("/").json()


def test_metrics_expose_booking_transitions(client, professional_headers, make_booking):
    booking = make_booking()
    client.post(f"/api/v1/bookings/{booking.id}/accept", headers=professional_headers)

    response = client.get("/metrics/prometheus")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/plain")
    assert "casaora_booking_transitions_total" in response.text
