"""
Dispatch Status Validation Policy

Ensures dispatch status is consistent with its driver and timestamps.
"""

from fleet_dispatch.data.dispatching.dispatch import Dispatch, DispatchStatus
from fleet_dispatch.buisness.dispatching.errors import DispatchConsistencyError


class DispatchStatusValidationPolicy:
    """
    Enforces dispatch status consistency.

    Rules:
    1. dispatched, in_transit and arrived require an assigned driver
    2. Every status from dispatched onwards (except cancelled) requires dispatch_time
    3. arrived and completed require arrival_time
    4. pending cannot carry dispatch_time or arrival_time
    5. arrival_time cannot precede dispatch_time
    """

    REQUIRES_DISPATCH_TIME = frozenset({
        DispatchStatus.DISPATCHED,
        DispatchStatus.IN_TRANSIT,
        DispatchStatus.ARRIVED,
        DispatchStatus.COMPLETED,
    })
    REQUIRES_ARRIVAL_TIME = frozenset({DispatchStatus.ARRIVED, DispatchStatus.COMPLETED})

    @classmethod
    def validate(cls, dispatch: Dispatch) -> None:
        """
        Validate a dispatch record.

        Raises:
            DispatchConsistencyError: If status is inconsistent with driver or timestamps
        """
        status = dispatch.status

        if dispatch.is_active and dispatch.assigned_driver_id is None:
            raise DispatchConsistencyError(
                f"Dispatch {dispatch.id} is {status.value} but has no assigned driver"
            )

        if status in cls.REQUIRES_DISPATCH_TIME and dispatch.dispatch_time is None:
            raise DispatchConsistencyError(
                f"Dispatch {dispatch.id} is {status.value} but has no dispatch time"
            )

        if status in cls.REQUIRES_ARRIVAL_TIME and dispatch.arrival_time is None:
            raise DispatchConsistencyError(
                f"Dispatch {dispatch.id} is {status.value} but has no arrival time"
            )

        if status is DispatchStatus.PENDING and (dispatch.dispatch_time or dispatch.arrival_time):
            raise DispatchConsistencyError(
                f"Pending dispatch {dispatch.id} cannot carry dispatch or arrival times"
            )

        if dispatch.dispatch_time and dispatch.arrival_time and dispatch.arrival_time < dispatch.dispatch_time:
            raise DispatchConsistencyError(
                f"Dispatch {dispatch.id} arrival time {dispatch.arrival_time.isoformat()} precedes "
                f"dispatch time {dispatch.dispatch_time.isoformat()}"
            )
