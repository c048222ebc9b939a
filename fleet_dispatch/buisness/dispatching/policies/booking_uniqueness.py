"""
Booking Uniqueness Policy

Ensures a booking has at most one non-cancelled dispatch.
"""

from typing import Optional
from fleet_dispatch.data.dispatching.dispatch import Dispatch, DispatchStatus
from fleet_dispatch.buisness.dispatching.errors import DuplicateDispatchError


class BookingUniquenessPolicy:
    """
    Enforces the one-open-dispatch-per-booking constraint.

    The check here runs before insert; the partial unique index on
    dispatches.booking_id backs it up for concurrent submissions.
    """

    @classmethod
    def find_open(cls, booking_id: int) -> Optional[Dispatch]:
        """Return the booking's non-cancelled dispatch, if any"""
        return Dispatch.query.filter(
            Dispatch.booking_id == booking_id,
            Dispatch.status != DispatchStatus.CANCELLED,
        ).first()

    @classmethod
    def check_before_create(cls, booking_id: int) -> None:
        """
        Validate that a new dispatch may be created for the booking.

        Raises:
            DuplicateDispatchError: If a non-cancelled dispatch already exists
        """
        existing = cls.find_open(booking_id)
        if existing is not None:
            raise DuplicateDispatchError(
                f"Dispatch already exists for booking {booking_id} "
                f"(dispatch {existing.id}, {existing.status.value}). "
                f"Use the existing dispatch or cancel it first."
            )
