"""
Driver Availability Resolver

Decides which drivers may take a new dispatch at a point in time.
"""

from datetime import datetime, time
from typing import List, Optional, Tuple
from flask import current_app, has_app_context
from sqlalchemy import and_, exists
from fleet_dispatch.data.fleet.driver import Driver
from fleet_dispatch.data.dispatching.dispatch import Dispatch, OPEN_STATUSES
from fleet_dispatch.buisness.dispatching.errors import DispatchNotFoundError, DriverUnavailableError


class DriverAvailabilityResolver:
    """
    Specification for assignable drivers.

    A driver is assignable when:
    1. status is 'active'
    2. is_available is set
    3. license_expiry is after the current date
    4. the driver is not assigned to any other open (non-terminal) dispatch
    5. optionally, the current time falls inside the driver's shift window

    Completed and cancelled dispatches never block a driver.
    """

    # Sorted for stable SQL
    BLOCKING_STATUSES = sorted(OPEN_STATUSES, key=lambda s: s.value)

    @classmethod
    def list_available(
        cls,
        now: Optional[datetime] = None,
        enforce_shift_window: Optional[bool] = None
    ) -> List[Driver]:
        """
        List drivers eligible for new assignment, ordered by ascending id.

        Args:
            now: Reference time (default: utcnow)
            enforce_shift_window: Also require an on-shift driver (default: app config)

        Returns:
            list: Eligible drivers; may be empty
        """
        now = now or datetime.utcnow()
        if enforce_shift_window is None:
            enforce_shift_window = cls._shift_window_enforced()

        drivers = (
            cls._eligible_query(now)
            .filter(~cls._busy_clause())
            .order_by(Driver.id.asc())
            .all()
        )

        if enforce_shift_window:
            drivers = [d for d in drivers if cls.is_on_shift(d, now)]

        return drivers

    @classmethod
    def is_assignable(
        cls,
        driver: Driver,
        now: Optional[datetime] = None,
        exclude_dispatch_id: Optional[int] = None,
        enforce_shift_window: Optional[bool] = None
    ) -> Tuple[bool, Optional[str]]:
        """
        Evaluate one driver against the assignability rules.

        Args:
            driver: The driver to evaluate
            now: Reference time (default: utcnow)
            exclude_dispatch_id: Dispatch whose own assignment should not count as busy
            enforce_shift_window: Also require an on-shift driver (default: app config)

        Returns:
            tuple: (assignable, reason) where reason explains a refusal
        """
        now = now or datetime.utcnow()
        if enforce_shift_window is None:
            enforce_shift_window = cls._shift_window_enforced()

        if driver.status != Driver.ACTIVE:
            return False, f"Driver {driver.id} is {driver.status}"
        if not driver.is_available:
            return False, f"Driver {driver.id} is marked unavailable"
        if driver.license_expiry is None or driver.license_expiry <= now.date():
            return False, f"Driver {driver.id} license expired on {driver.license_expiry}"
        if enforce_shift_window and not cls.is_on_shift(driver, now):
            return False, f"Driver {driver.id} is off shift ({driver.shift_start}-{driver.shift_end})"

        busy = cls.find_open_assignments(driver.id, exclude_dispatch_id)
        if busy:
            ids = ', '.join(str(d.id) for d in busy[:3])
            return False, f"Driver {driver.id} is already assigned to dispatch {ids}"

        return True, None

    @classmethod
    def check(
        cls,
        driver_id: int,
        now: Optional[datetime] = None,
        exclude_dispatch_id: Optional[int] = None,
        lock: bool = False
    ) -> Driver:
        """
        Load a driver and require that it is assignable right now.

        Args:
            driver_id: Driver to check
            now: Reference time (default: utcnow)
            exclude_dispatch_id: Dispatch being (re)assigned
            lock: Take a row lock on the driver for the rest of the transaction

        Returns:
            Driver: The loaded driver

        Raises:
            DispatchNotFoundError: If the driver does not exist
            DriverUnavailableError: If the driver is not assignable
        """
        query = Driver.query.filter(Driver.id == driver_id)
        if lock:
            query = query.with_for_update()
        driver = query.first()
        if driver is None:
            raise DispatchNotFoundError('driver', driver_id)

        assignable, reason = cls.is_assignable(driver, now, exclude_dispatch_id)
        if not assignable:
            raise DriverUnavailableError(reason)
        return driver

    @classmethod
    def find_open_assignments(cls, driver_id: int, exclude_dispatch_id: Optional[int] = None) -> list:
        """Open dispatches currently holding this driver"""
        query = Dispatch.query.filter(
            Dispatch.assigned_driver_id == driver_id,
            Dispatch.status.in_(cls.BLOCKING_STATUSES),
        )
        if exclude_dispatch_id is not None:
            query = query.filter(Dispatch.id != exclude_dispatch_id)
        return query.order_by(Dispatch.id).all()

    @staticmethod
    def is_on_shift(driver: Driver, at: datetime) -> bool:
        """
        Check whether `at` falls inside the driver's shift window.

        A driver without a recorded window is treated as always on shift.
        A window whose start is after its end crosses midnight.
        """
        start, end = driver.shift_start, driver.shift_end
        if start is None or end is None:
            return True

        current: time = at.time()
        if start <= end:
            return start <= current <= end
        return current >= start or current <= end

    @classmethod
    def _eligible_query(cls, now: datetime):
        return Driver.query.filter(
            Driver.status == Driver.ACTIVE,
            Driver.is_available.is_(True),
            Driver.license_expiry > now.date(),
        )

    @classmethod
    def _busy_clause(cls):
        """EXISTS clause matching drivers held by an open dispatch (correlated on drivers.id)"""
        return exists().where(and_(
            Dispatch.assigned_driver_id == Driver.id,
            Dispatch.status.in_(cls.BLOCKING_STATUSES),
        ))

    @staticmethod
    def _shift_window_enforced() -> bool:
        if not has_app_context():
            return False
        return bool(current_app.config.get('DISPATCH_ENFORCE_SHIFT_WINDOW', False))
