"""
DispatchContext - Domain Facade for the dispatch aggregate

Acts as the aggregate controller and provides an intention-revealing interface
for dispatch operations. Delegates mutation work to AssignmentManager and
LifecycleManager, and owns the transaction: every operation either commits in
full or rolls back, leaving the dispatch as it was before the call.
"""

from datetime import datetime
from typing import Callable, List, Optional, Set
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from fleet_dispatch import db
from fleet_dispatch.data.bookings.booking import Booking
from fleet_dispatch.data.fleet.driver import Driver
from fleet_dispatch.data.dispatching.dispatch import Dispatch, DispatchStatus
from fleet_dispatch.data.dispatching.history import DispatchHistory
from fleet_dispatch.buisness.dispatching.assignment_manager import AssignmentManager
from fleet_dispatch.buisness.dispatching.lifecycle_manager import LifecycleManager
from fleet_dispatch.buisness.dispatching.narrator import DispatchNarrator
from fleet_dispatch.buisness.dispatching.state_machine import DispatchStateMachine
from fleet_dispatch.buisness.dispatching.policies.booking_uniqueness import BookingUniquenessPolicy
from fleet_dispatch.buisness.dispatching.errors import (
    DispatchConflictError,
    DispatchDomainError,
    DispatchNotFoundError,
    DuplicateDispatchError,
    InvalidDispatchStateError,
)
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.dispatching.context")


class DispatchContext:
    """
    Domain Facade for one dispatch.

    Holds the dispatch, its booking and its assigned driver, exposes the
    lifecycle operations and delegates to managers.

    Pattern: Domain Facade / Aggregate Controller
    """

    def __init__(
        self,
        dispatch_id: Optional[int] = None,
        dispatch: Optional[Dispatch] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize context from dispatch_id or dispatch object.

        Args:
            dispatch_id: ID of the dispatch
            dispatch: Dispatch object
            clock: Time source for recorded timestamps (default: utcnow)

        Raises:
            DispatchNotFoundError: If dispatch_id does not exist
        """
        if dispatch is not None:
            self.dispatch = dispatch
            self.dispatch_id = dispatch.id
        elif dispatch_id is not None:
            self.dispatch_id = dispatch_id
            self.dispatch = db.session.get(Dispatch, dispatch_id)
            if self.dispatch is None:
                raise DispatchNotFoundError('dispatch', dispatch_id)
        else:
            raise ValueError("Either dispatch_id or dispatch must be provided")

        self.clock = clock or datetime.utcnow
        self._build()

    def _build(self) -> None:
        """Resolve related booking and driver"""
        self.booking = db.session.get(Booking, self.dispatch.booking_id)
        if self.dispatch.assigned_driver_id is not None:
            self.driver = db.session.get(Driver, self.dispatch.assigned_driver_id)
        else:
            self.driver = None

    @classmethod
    def load(cls, dispatch_id: int, clock: Optional[Callable[[], datetime]] = None) -> 'DispatchContext':
        """
        Factory method to load context from dispatch_id.

        Raises:
            DispatchNotFoundError: If the dispatch does not exist
        """
        return cls(dispatch_id=dispatch_id, clock=clock)

    @classmethod
    def create(
        cls,
        booking_id: int,
        actor_id: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None
    ) -> 'DispatchContext':
        """
        Create a pending dispatch for a booking.

        Args:
            booking_id: Booking to fulfil
            actor_id: Caller creating the dispatch

        Returns:
            DispatchContext: Context for the new dispatch

        Raises:
            DispatchNotFoundError: If the booking does not exist
            DuplicateDispatchError: If the booking already has a non-cancelled dispatch
        """
        try:
            if db.session.get(Booking, booking_id) is None:
                raise DispatchNotFoundError('booking', booking_id)

            BookingUniquenessPolicy.check_before_create(booking_id)

            dispatch = Dispatch(
                booking_id=booking_id,
                status=DispatchStatus.PENDING,
                created_by_id=actor_id,
                updated_by_id=actor_id,
            )
            db.session.add(dispatch)
            db.session.flush()

            ctx = cls(dispatch=dispatch, clock=clock)
            ctx.add_history(
                actor_id,
                DispatchHistory.CREATED,
                DispatchNarrator.dispatch_created(dispatch),
                to_status=DispatchStatus.PENDING,
            )
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            # The partial unique index caught a concurrent submission
            if BookingUniquenessPolicy.find_open(booking_id) is not None:
                logger.warning(f"Duplicate dispatch submission for booking {booking_id}")
                raise DuplicateDispatchError(
                    f"Dispatch already exists for booking {booking_id}"
                ) from e
            logger.error(f"Failed to create dispatch for booking {booking_id}: {e}")
            raise
        except DispatchDomainError as e:
            db.session.rollback()
            logger.warning(f"Create dispatch rejected for booking {booking_id}: {e}")
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to create dispatch for booking {booking_id}: {e}")
            raise
        except Exception as e:
            db.session.rollback()
            logger.error(f"Unexpected failure creating dispatch for booking {booking_id}: {e!r}")
            raise

        logger.info(f"Dispatch {ctx.dispatch.id} created for booking {booking_id}")
        return ctx

    # ========== Read Model Helpers ==========

    @property
    def status(self) -> DispatchStatus:
        return self.dispatch.status

    @property
    def allowed_transitions(self) -> Set[DispatchStatus]:
        """Statuses reachable from the current one (drives the operator's action buttons)"""
        return DispatchStateMachine.get_allowed_transitions(self.dispatch.status)

    @property
    def history(self) -> List[DispatchHistory]:
        return (
            DispatchHistory.query
            .filter_by(dispatch_id=self.dispatch.id)
            .order_by(DispatchHistory.id)
            .all()
        )

    @property
    def has_driver(self) -> bool:
        return self.dispatch.assigned_driver_id is not None

    def to_dict(self) -> dict:
        """Dispatch with booking and driver details"""
        return {
            'dispatch': self.dispatch.to_dict(),
            'booking': self.booking.to_dict() if self.booking else None,
            'driver': self.driver.to_dict() if self.driver else None,
            'allowed_transitions': sorted(s.value for s in self.allowed_transitions),
        }

    def add_history(
        self,
        actor_id: Optional[int],
        action: str,
        message: str,
        from_status: Optional[DispatchStatus] = None,
        to_status: Optional[DispatchStatus] = None,
        driver_id: Optional[int] = None
    ) -> DispatchHistory:
        """Add a machine-generated timeline entry to the current transaction"""
        entry = DispatchHistory(
            dispatch_id=self.dispatch.id,
            action=action,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value if to_status else None,
            driver_id=driver_id,
            message=message,
            actor_id=actor_id,
            created_at=self.clock(),
        )
        db.session.add(entry)
        return entry

    # ========== Driver Assignment ==========

    def assign_driver(self, actor_id: Optional[int], driver_id: int) -> 'DispatchContext':
        """
        Assign or reassign the driver (pending or dispatched only).

        Returns:
            DispatchContext: self for chaining
        """
        return self._run(
            'assign_driver',
            lambda: AssignmentManager(self).assign_driver(actor_id, driver_id, now=self.clock()),
        )

    def unassign_driver(self, actor_id: Optional[int]) -> 'DispatchContext':
        """Clear the driver (pending only)"""
        return self._run('unassign_driver', lambda: AssignmentManager(self).unassign_driver(actor_id))

    # ========== Lifecycle Operations ==========

    def advance(
        self,
        actor_id: Optional[int],
        target_status,
        occurred_at: Optional[datetime] = None,
        reason: Optional[str] = None
    ) -> 'DispatchContext':
        """
        Move to target_status through the state machine.

        Args:
            actor_id: Caller making the change
            target_status: Target status
            occurred_at: Explicit dispatch/arrival time to record
            reason: Optional reason

        Returns:
            DispatchContext: self for chaining
        """
        return self._run(
            'advance',
            lambda: LifecycleManager(self).transition(actor_id, target_status, occurred_at, reason),
        )

    def cancel(self, actor_id: Optional[int], reason: Optional[str] = None) -> 'DispatchContext':
        """Cancel the dispatch from any non-terminal status"""
        return self._run('cancel', lambda: LifecycleManager(self).cancel(actor_id, reason))

    def delete_if_pending(self, actor_id: Optional[int]) -> None:
        """
        Hard-delete the dispatch. Only allowed while pending.

        Raises:
            InvalidDispatchStateError: If the dispatch has left pending
        """
        dispatch_id = self.dispatch.id
        booking_id = self.dispatch.booking_id

        def _delete():
            if self.dispatch.status is not DispatchStatus.PENDING:
                raise InvalidDispatchStateError(
                    f"Dispatch {dispatch_id} is {self.dispatch.status.value}; "
                    f"only pending dispatches can be deleted (cancel it instead)"
                )
            db.session.delete(self.dispatch)

        self._run('delete', _delete, rebuild=False)
        logger.info(f"{DispatchNarrator.dispatch_deleted(dispatch_id, booking_id)} by actor {actor_id}")

    # ========== Transaction Handling ==========

    def _lock(self) -> None:
        """Re-read the dispatch under a row lock for the rest of the transaction"""
        locked = (
            Dispatch.query
            .filter(Dispatch.id == self.dispatch_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if locked is None:
            raise DispatchNotFoundError('dispatch', self.dispatch_id)
        self.dispatch = locked

    def _run(self, operation: str, work: Callable[[], object], rebuild: bool = True) -> 'DispatchContext':
        """Run one mutating operation in its own transaction"""
        try:
            self._lock()
            work()
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"{operation} on dispatch {self.dispatch_id} hit a concurrent update")
            raise DispatchConflictError(
                f"Dispatch {self.dispatch_id} was modified concurrently; reload and retry"
            ) from e
        except DispatchDomainError as e:
            db.session.rollback()
            logger.warning(f"{operation} rejected for dispatch {self.dispatch_id}: {e}")
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"{operation} failed for dispatch {self.dispatch_id}: {e}")
            raise
        except Exception as e:
            db.session.rollback()
            logger.error(f"{operation} failed unexpectedly for dispatch {self.dispatch_id}: {e!r}")
            raise

        if rebuild:
            self._build()
        return self
