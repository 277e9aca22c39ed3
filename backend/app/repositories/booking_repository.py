# backend/app/repositories/booking_repository.py
"""
Booking Repository for the booking core.

This repository handles:
- Booking create, read and delete
- Conditional status transitions (optimistic status precondition)
- Status history audit rows
- Add-on snapshot rows written at booking creation

Status writes never go through plain attribute assignment. They are a single
UPDATE guarded by the status the caller observed, so two concurrent requests
racing on the same booking cannot both move it.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingAddon, BookingStatus, BookingStatusHistory
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        """Initialize with Booking model."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    # Reads

    def get_booking_with_details(self, booking_id: str) -> Optional[Booking]:
        """Get a booking with its add-ons and status history loaded."""
        try:
            return (
                self.db.query(Booking)
                .options(selectinload(Booking.addons), selectinload(Booking.status_history))
                .filter(Booking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking details {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booking details: {str(e)}")

    def get_current_status(self, booking_id: str) -> Optional[str]:
        """Read the stored status straight from the table, bypassing the identity map."""
        try:
            return self.db.execute(
                select(Booking.status).where(Booking.id == booking_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading status for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to read booking status: {str(e)}")

    def get_status_history(self, booking_id: str) -> List[BookingStatusHistory]:
        try:
            return (
                self.db.query(BookingStatusHistory)
                .filter(BookingStatusHistory.booking_id == booking_id)
                .order_by(BookingStatusHistory.created_at, BookingStatusHistory.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading status history for {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to read status history: {str(e)}")

    # Status Management Methods

    def transition_status(
        self,
        booking_id: str,
        *,
        expected_status: BookingStatus,
        new_status: BookingStatus,
        changed_by: Optional[str] = None,
        reason: Optional[str] = None,
        values: Optional[Dict[str, Any]] = None,
        expected_values: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Move a booking from ``expected_status`` to ``new_status``.

        Issues ``UPDATE bookings SET ... WHERE id = :id AND status = :expected``
        and writes a history row when exactly one row changed. Does NOT commit.

        Returns:
            True when the transition was applied, False when the stored status
            no longer matches ``expected_status``.

        Raises:
            RepositoryException: If the update fails
        """
        payload: Dict[str, Any] = dict(values or {})
        payload["status"] = new_status.value
        try:
            applied = self._conditional_update(
                booking_id, expected_status, payload, expected_values
            )
            if not applied:
                self.logger.info(
                    "Conditional status write skipped",
                    extra={
                        "booking_id": booking_id,
                        "expected_status": expected_status.value,
                        "new_status": new_status.value,
                    },
                )
                return False

            self.db.add(
                BookingStatusHistory(
                    booking_id=booking_id,
                    old_status=expected_status.value,
                    new_status=new_status.value,
                    changed_by=changed_by,
                    reason=reason,
                    created_at=datetime.now(timezone.utc),
                )
            )
            self.db.flush()
            self.logger.info(
                f"Booking {booking_id} moved {expected_status.value} -> {new_status.value}"
            )
            return True
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking status: {str(e)}")

    def update_if_status(
        self,
        booking_id: str,
        *,
        expected_status: BookingStatus,
        values: Dict[str, Any],
        expected_values: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Apply ``values`` only while the booking still has ``expected_status``.

        ``expected_values`` adds column equality guards, e.g. the amount the
        caller based its computation on.
        """
        try:
            return self._conditional_update(
                booking_id, expected_status, dict(values), expected_values
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking: {str(e)}")

    def add_addon_snapshots(self, booking_id: str, addons: Iterable[Any]) -> List[BookingAddon]:
        """Snapshot the priced add-ons onto the booking."""
        try:
            rows = [
                BookingAddon(
                    booking_id=booking_id,
                    addon_id=addon.id,
                    addon_name=addon.name,
                    addon_price=int(addon.price),
                )
                for addon in addons
            ]
            self.db.add_all(rows)
            self.db.flush()
            return rows
        except SQLAlchemyError as e:
            self.logger.error(f"Error adding add-ons to booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to add booking add-ons: {str(e)}")

    def record_initial_status(self, booking: Booking, changed_by: Optional[str]) -> None:
        """History row for a freshly created booking."""
        try:
            self.db.add(
                BookingStatusHistory(
                    booking_id=booking.id,
                    old_status=None,
                    new_status=booking.status,
                    changed_by=changed_by,
                    reason="created",
                    created_at=datetime.now(timezone.utc),
                )
            )
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error recording initial status for {booking.id}: {str(e)}")
            raise RepositoryException(f"Failed to record booking status history: {str(e)}")

    def delete_booking(self, booking_id: str) -> bool:
        """Delete a booking with its add-on and history rows. Does NOT commit."""
        try:
            booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
            if booking is None:
                return False
            self.db.delete(booking)
            self.db.flush()
            return True
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to delete booking: {str(e)}")

    # Helper method overrides

    def _conditional_update(
        self,
        booking_id: str,
        expected_status: BookingStatus,
        values: Dict[str, Any],
        expected_values: Optional[Dict[str, Any]] = None,
    ) -> bool:
        values.setdefault("updated_at", datetime.now(timezone.utc))
        guards = [Booking.id == booking_id, Booking.status == expected_status.value]
        for column, expected in (expected_values or {}).items():
            attr = getattr(Booking, column)
            guards.append(attr.is_(None) if expected is None else attr == expected)
        result = self.db.execute(
            update(Booking)
            .where(*guards)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(selectinload(Booking.addons))
