"""
State machine for the dispatch lifecycle

Encodes valid transitions and the timestamp side effects of entering a status.
Keeps "what is allowed" separate from "how persistence occurs": nothing here
touches the session, the only inputs are the Dispatch record and a clock.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Set, Union, TYPE_CHECKING
from fleet_dispatch.data.dispatching.dispatch import DispatchStatus, TERMINAL_STATUSES
from fleet_dispatch.buisness.dispatching.errors import DispatchTransitionError, MissingDriverError

if TYPE_CHECKING:
    from fleet_dispatch.data.dispatching.dispatch import Dispatch


@dataclass
class TransitionContext:
    """
    Caller-supplied inputs to a transition.

    occurred_at overrides the clock for the timestamp recorded on entering
    `dispatched` or `arrived` (e.g. an operator back-filling the real time).
    """
    actor_id: Optional[int] = None
    occurred_at: Optional[datetime] = None
    reason: Optional[str] = None
    clock: Callable[[], datetime] = field(default=datetime.utcnow, repr=False)

    def timestamp(self) -> datetime:
        if self.occurred_at is not None:
            return to_naive_utc(self.occurred_at)
        return self.clock()


def to_naive_utc(value: datetime) -> datetime:
    """Stored times are naive UTC; offset-aware values are converted, naive ones kept as given"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def coerce_status(value: Union[str, DispatchStatus]) -> DispatchStatus:
    """
    Convert a raw status string to a DispatchStatus.

    Raises:
        DispatchTransitionError: If value is not one of the six statuses
    """
    if isinstance(value, DispatchStatus):
        return value
    try:
        return DispatchStatus(value)
    except ValueError:
        allowed = ', '.join(s.value for s in DispatchStatus)
        raise DispatchTransitionError(f"Unknown dispatch status '{value}'. Expected one of: {allowed}")


class DispatchStateMachine:
    """
    State machine for Dispatch.status.

    Lifecycle moves forward only:
        pending → dispatched → in_transit → arrived → completed
    Any non-terminal status may be cancelled. completed and cancelled are terminal.
    """

    PENDING = DispatchStatus.PENDING
    DISPATCHED = DispatchStatus.DISPATCHED
    IN_TRANSIT = DispatchStatus.IN_TRANSIT
    ARRIVED = DispatchStatus.ARRIVED
    COMPLETED = DispatchStatus.COMPLETED
    CANCELLED = DispatchStatus.CANCELLED

    TERMINAL_STATES = TERMINAL_STATUSES

    # Valid transitions: from_status -> set of allowed to_status values
    TRANSITIONS: Dict[DispatchStatus, Set[DispatchStatus]] = {
        PENDING: {DISPATCHED, CANCELLED},
        DISPATCHED: {IN_TRANSIT, CANCELLED},
        IN_TRANSIT: {ARRIVED, CANCELLED},
        ARRIVED: {COMPLETED, CANCELLED},  # cancelling after arrival is allowed but flagged
        COMPLETED: set(),
        CANCELLED: set(),
    }

    # Transitions that are legal but unusual enough to warn about
    FLAGGED_TRANSITIONS = {(ARRIVED, CANCELLED)}

    @classmethod
    def can_transition(cls, from_status, to_status) -> bool:
        """
        Check if transition is valid.

        Args:
            from_status: Current status
            to_status: Target status

        Returns:
            bool: True if transition is allowed
        """
        from_status = coerce_status(from_status)
        to_status = coerce_status(to_status)

        if from_status in cls.TERMINAL_STATES:
            return False

        return to_status in cls.TRANSITIONS[from_status]

    @classmethod
    def validate_transition(cls, from_status, to_status) -> None:
        """
        Validate transition and raise exception if invalid.

        Raises:
            DispatchTransitionError: If transition is not allowed
        """
        if not cls.can_transition(from_status, to_status):
            from_status = coerce_status(from_status)
            if from_status in cls.TERMINAL_STATES:
                raise DispatchTransitionError(
                    f"Dispatch is {from_status.value} (terminal); cannot move to {coerce_status(to_status).value}"
                )
            raise DispatchTransitionError(
                f"Invalid dispatch status transition: {from_status.value} → {coerce_status(to_status).value}"
            )

    @classmethod
    def get_allowed_transitions(cls, from_status) -> Set[DispatchStatus]:
        """Get set of allowed target statuses from current status"""
        return set(cls.TRANSITIONS[coerce_status(from_status)])

    @classmethod
    def is_terminal(cls, status) -> bool:
        return coerce_status(status) in cls.TERMINAL_STATES

    @classmethod
    def is_flagged(cls, from_status, to_status) -> bool:
        return (coerce_status(from_status), coerce_status(to_status)) in cls.FLAGGED_TRANSITIONS

    @classmethod
    def transition(
        cls,
        dispatch: 'Dispatch',
        target_status,
        context: Optional[TransitionContext] = None,
    ) -> DispatchStatus:
        """
        Apply a status transition and its side effects to a dispatch.

        All guards run before any attribute is written, so a rejected transition
        leaves the record untouched.

        Args:
            dispatch: The dispatch to mutate
            target_status: Target status (DispatchStatus or its string value)
            context: Actor, optional explicit timestamp and clock

        Returns:
            DispatchStatus: The status the dispatch was in before the transition

        Raises:
            DispatchTransitionError: If target is unknown or not reachable
            MissingDriverError: If entering dispatched without an assigned driver
        """
        context = context or TransitionContext()
        target = coerce_status(target_status)
        current = coerce_status(dispatch.status)

        cls.validate_transition(current, target)

        changes = {'status': target}
        if target is cls.DISPATCHED:
            if dispatch.assigned_driver_id is None:
                raise MissingDriverError(
                    f"Dispatch {dispatch.id} has no assigned driver; assign a driver before dispatching"
                )
            if dispatch.dispatch_time is None:
                changes['dispatch_time'] = context.timestamp()
        elif target is cls.ARRIVED:
            if dispatch.arrival_time is None:
                changes['arrival_time'] = context.timestamp()
        elif target is cls.CANCELLED:
            changes['cancelled_by_id'] = context.actor_id
            changes['cancelled_reason'] = context.reason
        elif target in (cls.IN_TRANSIT, cls.COMPLETED):
            pass
        else:
            # PENDING is never a target; TRANSITIONS rejects it above
            raise DispatchTransitionError(f"No transition handler for status {target.value}")

        for attribute, value in changes.items():
            setattr(dispatch, attribute, value)
        if context.actor_id is not None:
            dispatch.updated_by_id = context.actor_id

        return current
