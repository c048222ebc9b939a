"""
AssignmentManager - Domain service for driver assignment

Assigns, reassigns and unassigns the driver of a dispatch. Never changes status:
dispatching is a separate, explicit transition (assign, then dispatch).
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import and_, exists, update
from fleet_dispatch import db
from fleet_dispatch.data.dispatching.dispatch import Dispatch, DispatchStatus
from fleet_dispatch.data.dispatching.history import DispatchHistory
from fleet_dispatch.buisness.dispatching.narrator import DispatchNarrator
from fleet_dispatch.buisness.dispatching.policies.driver_availability import DriverAvailabilityResolver
from fleet_dispatch.buisness.dispatching.errors import (
    DispatchConflictError,
    DriverUnavailableError,
    InvalidDispatchStateError,
)
from fleet_dispatch.logger import get_logger

if TYPE_CHECKING:
    from fleet_dispatch.buisness.dispatching.context import DispatchContext

logger = get_logger("fleet_dispatch.dispatching.assignment")


class AssignmentManager:
    """
    Domain service for driver assignment.

    Responsibilities:
    - Restrict assignment to pending/dispatched and unassignment to pending
    - Re-check driver eligibility at call time
    - Write the assignment with a conditional UPDATE so that two dispatches
      cannot claim the same driver concurrently
    - Record history rows via DispatchNarrator
    """

    ASSIGNABLE_STATUSES = (DispatchStatus.PENDING, DispatchStatus.DISPATCHED)
    UNASSIGNABLE_STATUSES = (DispatchStatus.PENDING,)

    def __init__(self, ctx: 'DispatchContext'):
        """
        Initialize AssignmentManager with a DispatchContext.

        Args:
            ctx: The DispatchContext to manage
        """
        self.ctx = ctx
        self.dispatch = ctx.dispatch

    def assign_driver(self, actor_id: Optional[int], driver_id: int, now: Optional[datetime] = None) -> None:
        """
        Assign (or reassign) a driver.

        Args:
            actor_id: Caller performing the assignment
            driver_id: Driver to assign
            now: Reference time for the eligibility check

        Raises:
            InvalidDispatchStateError: If the dispatch is in_transit or later
            DispatchNotFoundError: If the driver does not exist
            DriverUnavailableError: If the driver is not assignable, including
                when another dispatch claimed it concurrently
            DispatchConflictError: If the dispatch changed underneath the write
        """
        dispatch = self.dispatch
        if dispatch.status not in self.ASSIGNABLE_STATUSES:
            raise InvalidDispatchStateError(
                f"Cannot assign a driver to dispatch {dispatch.id} while {dispatch.status.value}; "
                f"assignment is only allowed while pending or dispatched"
            )

        DriverAvailabilityResolver.check(driver_id, now, exclude_dispatch_id=dispatch.id, lock=True)

        previous_driver_id = dispatch.assigned_driver_id
        if previous_driver_id == driver_id:
            logger.debug(f"Driver {driver_id} already assigned to dispatch {dispatch.id}")
            return

        self._conditional_assign(actor_id, driver_id)

        self.ctx.add_history(
            actor_id,
            DispatchHistory.ASSIGNED,
            DispatchNarrator.driver_assigned(driver_id, previous_driver_id),
            driver_id=driver_id,
        )
        logger.info(f"Dispatch {dispatch.id}: driver {driver_id} assigned (previous: {previous_driver_id})")

    def unassign_driver(self, actor_id: Optional[int]) -> None:
        """
        Clear the assigned driver.

        Raises:
            InvalidDispatchStateError: If the dispatch is no longer pending
        """
        dispatch = self.dispatch
        if dispatch.status not in self.UNASSIGNABLE_STATUSES:
            raise InvalidDispatchStateError(
                f"Cannot unassign the driver of dispatch {dispatch.id} while {dispatch.status.value}; "
                f"unassignment is only allowed while pending"
            )

        if not self.ctx.has_driver:
            return
        driver_id = dispatch.assigned_driver_id

        dispatch.assigned_driver_id = None
        dispatch.updated_by_id = actor_id

        self.ctx.add_history(
            actor_id,
            DispatchHistory.UNASSIGNED,
            DispatchNarrator.driver_unassigned(driver_id),
            driver_id=driver_id,
        )
        logger.info(f"Dispatch {dispatch.id}: driver {driver_id} unassigned")

    def _conditional_assign(self, actor_id: Optional[int], driver_id: int) -> None:
        """
        Write assigned_driver_id only if, at write time, the dispatch is unchanged
        and still assignable and no other open dispatch holds the driver.
        """
        dispatch = self.dispatch
        db.session.flush()

        table = Dispatch.__table__
        other = table.alias('other_dispatch')
        driver_taken = exists().where(and_(
            other.c.assigned_driver_id == driver_id,
            other.c.status.in_(DriverAvailabilityResolver.BLOCKING_STATUSES),
            other.c.id != dispatch.id,
        ))

        stmt = (
            update(table)
            .where(table.c.id == dispatch.id)
            .where(table.c.version_id == dispatch.version_id)
            .where(table.c.status.in_(self.ASSIGNABLE_STATUSES))
            .where(~driver_taken)
            .values(
                assigned_driver_id=driver_id,
                updated_by_id=actor_id,
                updated_at=datetime.utcnow(),
                version_id=table.c.version_id + 1,
            )
        )
        result = db.session.execute(stmt)

        if result.rowcount != 1:
            if DriverAvailabilityResolver.find_open_assignments(driver_id, exclude_dispatch_id=dispatch.id):
                raise DriverUnavailableError(
                    f"Driver {driver_id} was assigned to another dispatch concurrently"
                )
            raise DispatchConflictError(
                f"Dispatch {dispatch.id} was modified concurrently; reload and retry"
            )

        db.session.refresh(dispatch)
