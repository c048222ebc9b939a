"""
LifecycleManager - Domain service for dispatch status transitions

Applies DispatchStateMachine transitions, re-validates the record and writes
the timeline entry.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from fleet_dispatch.data.dispatching.dispatch import DispatchStatus
from fleet_dispatch.data.dispatching.history import DispatchHistory
from fleet_dispatch.buisness.dispatching.state_machine import (
    DispatchStateMachine,
    TransitionContext,
    coerce_status,
)
from fleet_dispatch.buisness.dispatching.policies.dispatch_status_validation import DispatchStatusValidationPolicy
from fleet_dispatch.buisness.dispatching.narrator import DispatchNarrator
from fleet_dispatch.logger import get_logger

if TYPE_CHECKING:
    from fleet_dispatch.buisness.dispatching.context import DispatchContext

logger = get_logger("fleet_dispatch.dispatching.lifecycle")


class LifecycleManager:
    """
    Domain service for status transitions.

    Responsibilities:
    - Transition Dispatch.status via DispatchStateMachine
    - Check record consistency after every transition
    - Flag cancellations after arrival
    - Emit machine-generated timeline entries via DispatchNarrator
    """

    def __init__(self, ctx: 'DispatchContext'):
        """
        Initialize LifecycleManager with a DispatchContext.

        Args:
            ctx: The DispatchContext to manage
        """
        self.ctx = ctx
        self.dispatch = ctx.dispatch

    def transition(
        self,
        actor_id: Optional[int],
        target_status,
        occurred_at: Optional[datetime] = None,
        reason: Optional[str] = None
    ) -> DispatchStatus:
        """
        Move the dispatch to target_status.

        Args:
            actor_id: Caller making the change
            target_status: Target status (DispatchStatus or string value)
            occurred_at: Explicit time to record on entering dispatched/arrived
            reason: Optional reason, stored on cancellation and in history

        Returns:
            DispatchStatus: The previous status

        Raises:
            DispatchTransitionError: If the transition is not allowed
            MissingDriverError: If dispatching without a driver
            DispatchConsistencyError: If the resulting record breaks an invariant
        """
        target = coerce_status(target_status)
        context = TransitionContext(
            actor_id=actor_id,
            occurred_at=occurred_at,
            reason=reason,
            clock=self.ctx.clock,
        )

        from_status = DispatchStateMachine.transition(self.dispatch, target, context)
        DispatchStatusValidationPolicy.validate(self.dispatch)

        if DispatchStateMachine.is_flagged(from_status, target):
            logger.warning(DispatchNarrator.cancelled_after_arrival(self.dispatch))

        self.ctx.add_history(
            actor_id,
            DispatchHistory.TRANSITION,
            DispatchNarrator.status_changed(self.dispatch, from_status, target, reason),
            from_status=from_status,
            to_status=target,
            driver_id=self.dispatch.assigned_driver_id,
        )
        logger.info(f"Dispatch {self.dispatch.id}: {from_status.value} → {target.value}")
        return from_status

    def cancel(self, actor_id: Optional[int], reason: Optional[str] = None) -> DispatchStatus:
        """Cancel the dispatch (any non-terminal status)"""
        return self.transition(actor_id, DispatchStatus.CANCELLED, reason=reason)
