# backend/tests/repositories/test_booking_repository.py
"""
Tests for BookingRepository conditional writes.

The status precondition is what keeps concurrent transitions safe, so these
tests go straight at the UPDATE guards without the service layer.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import RepositoryException
from app.models.booking import Booking, BookingStatus
from app.repositories.booking_repository import BookingRepository
from app.repositories.factory import RepositoryFactory
from tests.helpers import CUSTOMER_ID, NOW, PROFESSIONAL_ID


@pytest.fixture
def repository(db) -> BookingRepository:
    return RepositoryFactory.create_booking_repository(db)


def _reload(db, booking_id) -> Booking:
    db.expire_all()
    return db.get(Booking, booking_id)


class TestTransitionStatus:
    def test_applies_when_status_matches(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.AUTHORIZED)

        applied = repository.transition_status(
            booking.id,
            expected_status=BookingStatus.AUTHORIZED,
            new_status=BookingStatus.CONFIRMED,
            changed_by=PROFESSIONAL_ID,
            values={"confirmed_at": NOW},
        )
        db.commit()

        assert applied is True
        stored = _reload(db, booking.id)
        assert stored.status == "confirmed"
        assert stored.confirmed_at is not None
        assert stored.updated_at is not None

        history = repository.get_status_history(booking.id)
        assert len(history) == 1
        assert history[0].old_status == "authorized"
        assert history[0].new_status == "confirmed"
        assert history[0].changed_by == PROFESSIONAL_ID

    def test_skips_when_status_moved_on(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.CANCELED)

        applied = repository.transition_status(
            booking.id,
            expected_status=BookingStatus.AUTHORIZED,
            new_status=BookingStatus.CONFIRMED,
            values={"confirmed_at": NOW},
        )
        db.commit()

        assert applied is False
        stored = _reload(db, booking.id)
        assert stored.status == "canceled"
        assert stored.confirmed_at is None
        assert repository.get_status_history(booking.id) == []

    def test_second_identical_transition_is_refused(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.CONFIRMED)
        kwargs = dict(
            expected_status=BookingStatus.CONFIRMED,
            new_status=BookingStatus.CANCELED,
            changed_by=CUSTOMER_ID,
        )

        first = repository.transition_status(booking.id, **kwargs)
        second = repository.transition_status(booking.id, **kwargs)
        db.commit()

        assert (first, second) == (True, False)
        assert len(repository.get_status_history(booking.id)) == 1

    def test_null_guard_uses_is_null(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.PENDING_PAYMENT)

        applied = repository.transition_status(
            booking.id,
            expected_status=BookingStatus.PENDING_PAYMENT,
            new_status=BookingStatus.AUTHORIZED,
            values={"payment_intent_ref": "pi_1", "amount_authorized": 60000},
            expected_values={"payment_intent_ref": None},
        )
        db.commit()

        assert applied is True
        assert _reload(db, booking.id).payment_intent_ref == "pi_1"

    def test_database_errors_become_repository_exceptions(self):
        session = MagicMock()
        session.execute.side_effect = OperationalError("UPDATE bookings", {}, Exception("locked"))
        repository = BookingRepository(session)

        with pytest.raises(RepositoryException, match="Failed to update booking status"):
            repository.transition_status(
                "01HXYZ",
                expected_status=BookingStatus.AUTHORIZED,
                new_status=BookingStatus.CONFIRMED,
            )


class TestUpdateIfStatus:
    def test_value_guard_blocks_stale_amounts(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.IN_PROGRESS)

        applied = repository.update_if_status(
            booking.id,
            expected_status=BookingStatus.IN_PROGRESS,
            values={"amount_authorized": 90000},
            expected_values={"amount_authorized": 50000},
        )
        db.commit()

        assert applied is False
        assert _reload(db, booking.id).amount_authorized == 60000

    def test_applies_without_touching_history(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.IN_PROGRESS)

        applied = repository.update_if_status(
            booking.id,
            expected_status=BookingStatus.IN_PROGRESS,
            values={"time_extension_minutes": 30, "extension_amount": 15000},
            expected_values={"time_extension_minutes": 0},
        )
        db.commit()

        assert applied is True
        stored = _reload(db, booking.id)
        assert stored.status == "in_progress"
        assert stored.time_extension_minutes == 30
        assert repository.get_status_history(booking.id) == []

    def test_wrong_status_blocks_update(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.COMPLETED)

        applied = repository.update_if_status(
            booking.id,
            expected_status=BookingStatus.IN_PROGRESS,
            values={"time_extension_minutes": 30},
        )

        assert applied is False


class TestReads:
    def test_current_status_bypasses_identity_map(self, db, repository, make_booking):
        booking = make_booking(BookingStatus.AUTHORIZED)
        repository.transition_status(
            booking.id,
            expected_status=BookingStatus.AUTHORIZED,
            new_status=BookingStatus.DECLINED,
        )
        db.commit()

        assert booking.status == "authorized"
        assert repository.get_current_status(booking.id) == "declined"

    def test_current_status_of_missing_booking(self, repository):
        assert repository.get_current_status("01HZZZZZZZZZZZZZZZZZZZZZZZ") is None

    def test_booking_with_details(self, db, repository, make_booking, active_addons):
        booking = make_booking(BookingStatus.PENDING_PAYMENT)
        repository.add_addon_snapshots(booking.id, active_addons)
        repository.record_initial_status(booking, CUSTOMER_ID)
        db.commit()
        db.expire_all()

        loaded = repository.get_booking_with_details(booking.id)

        assert {a.addon_name for a in loaded.addons} == {"Fridge", "Oven"}
        assert [(h.old_status, h.new_status, h.reason) for h in loaded.status_history] == [
            (None, "pending_payment", "created")
        ]
