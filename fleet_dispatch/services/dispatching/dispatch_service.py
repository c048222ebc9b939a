"""
Dispatch Service
Read-side service for dispatch retrieval, filtering and summaries.
Never mutates state; every mutation goes through DispatchContext.
"""

from typing import Dict, List, Optional, Tuple
from flask import current_app, has_app_context
from sqlalchemy import func
from fleet_dispatch import db
from fleet_dispatch.data.dispatching.dispatch import Dispatch, DispatchStatus, ACTIVE_STATUSES
from fleet_dispatch.data.dispatching.history import DispatchHistory
from fleet_dispatch.buisness.dispatching.context import DispatchContext
from fleet_dispatch.buisness.dispatching.state_machine import coerce_status
from fleet_dispatch.buisness.dispatching.errors import DispatchNotFoundError


MIN_LIMIT = 1
MAX_LIMIT = 100


class DispatchService:
    """
    Service for dispatch query data.

    Provides methods for:
    - Building filtered dispatch queries
    - Paginated listing (skip/limit, limit clamped to 1..100)
    - Lookup by id, booking or driver
    - Status summaries and history
    """

    @staticmethod
    def clamp_pagination(skip: Optional[int] = None, limit: Optional[int] = None) -> Tuple[int, int]:
        """
        Normalize pagination.

        Returns:
            tuple: (skip floored at 0, limit clamped to [1, 100])
        """
        if limit is None:
            limit = DispatchService._default_limit()
        skip = max(int(skip or 0), 0)
        limit = min(max(int(limit), MIN_LIMIT), MAX_LIMIT)
        return skip, limit

    @staticmethod
    def build_filtered_query(
        status=None,
        booking_id: Optional[int] = None,
        assigned_driver: Optional[int] = None
    ):
        """
        Build a filtered dispatch query. Provided filters are AND-combined.

        Args:
            status: Filter by status (DispatchStatus or string value)
            booking_id: Filter by booking
            assigned_driver: Filter by assigned driver id

        Returns:
            SQLAlchemy query object, newest first

        Raises:
            DispatchTransitionError: If status is not a known status
        """
        query = Dispatch.query

        if status is not None:
            query = query.filter(Dispatch.status == coerce_status(status))

        if booking_id is not None:
            query = query.filter(Dispatch.booking_id == booking_id)

        if assigned_driver is not None:
            query = query.filter(Dispatch.assigned_driver_id == assigned_driver)

        return query.order_by(Dispatch.created_at.desc(), Dispatch.id.desc())

    @staticmethod
    def list_dispatches(
        status=None,
        booking_id: Optional[int] = None,
        assigned_driver: Optional[int] = None,
        skip: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Dispatch]:
        """Filtered, paginated dispatch list"""
        skip, limit = DispatchService.clamp_pagination(skip, limit)
        query = DispatchService.build_filtered_query(
            status=status,
            booking_id=booking_id,
            assigned_driver=assigned_driver,
        )
        return query.offset(skip).limit(limit).all()

    @staticmethod
    def get_by_id(dispatch_id: int) -> Dispatch:
        dispatch = db.session.get(Dispatch, dispatch_id)
        if dispatch is None:
            raise DispatchNotFoundError('dispatch', dispatch_id)
        return dispatch

    @staticmethod
    def get_by_booking(booking_id: int, include_cancelled: bool = False) -> Dispatch:
        """
        Get the current dispatch for a booking.

        Args:
            booking_id: Booking to look up
            include_cancelled: Fall back to the most recent cancelled dispatch
                when the booking has no open one

        Raises:
            DispatchNotFoundError: If no matching dispatch exists
        """
        dispatch = Dispatch.query.filter(
            Dispatch.booking_id == booking_id,
            Dispatch.status != DispatchStatus.CANCELLED,
        ).first()

        if dispatch is None and include_cancelled:
            dispatch = (
                Dispatch.query
                .filter(Dispatch.booking_id == booking_id)
                .order_by(Dispatch.id.desc())
                .first()
            )

        if dispatch is None:
            raise DispatchNotFoundError('dispatch for booking', booking_id)
        return dispatch

    @staticmethod
    def get_by_driver(driver_id: int, skip: Optional[int] = None, limit: Optional[int] = None) -> List[Dispatch]:
        """All dispatches (any status) that reference the driver"""
        return DispatchService.list_dispatches(assigned_driver=driver_id, skip=skip, limit=limit)

    @staticmethod
    def list_by_status(status, skip: Optional[int] = None, limit: Optional[int] = None) -> List[Dispatch]:
        return DispatchService.list_dispatches(status=status, skip=skip, limit=limit)

    @staticmethod
    def list_pending(skip: Optional[int] = None, limit: Optional[int] = None) -> List[Dispatch]:
        return DispatchService.list_by_status(DispatchStatus.PENDING, skip, limit)

    @staticmethod
    def list_active(skip: Optional[int] = None, limit: Optional[int] = None) -> List[Dispatch]:
        """Dispatches currently consuming a driver (dispatched, in transit, arrived)"""
        skip, limit = DispatchService.clamp_pagination(skip, limit)
        return (
            Dispatch.query
            .filter(Dispatch.status.in_(sorted(ACTIVE_STATUSES, key=lambda s: s.value)))
            .order_by(Dispatch.created_at.desc(), Dispatch.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_completed(skip: Optional[int] = None, limit: Optional[int] = None) -> List[Dispatch]:
        return DispatchService.list_by_status(DispatchStatus.COMPLETED, skip, limit)

    @staticmethod
    def get_with_details(dispatch_id: int) -> Dict:
        """Dispatch together with its booking and driver"""
        return DispatchContext.load(dispatch_id).to_dict()

    @staticmethod
    def get_history(dispatch_id: int) -> List[DispatchHistory]:
        DispatchService.get_by_id(dispatch_id)
        return (
            DispatchHistory.query
            .filter_by(dispatch_id=dispatch_id)
            .order_by(DispatchHistory.id)
            .all()
        )

    @staticmethod
    def status_summary() -> Dict[str, int]:
        """Count of dispatches per status; every status is present"""
        counts = {status.value: 0 for status in DispatchStatus}
        rows = db.session.query(Dispatch.status, func.count(Dispatch.id)).group_by(Dispatch.status).all()
        for status, count in rows:
            counts[coerce_status(status).value] = count
        counts['total'] = sum(counts.values())
        return counts

    @staticmethod
    def _default_limit() -> int:
        if has_app_context():
            return current_app.config.get('DISPATCH_DEFAULT_PAGE_LIMIT', MAX_LIMIT)
        return MAX_LIMIT
