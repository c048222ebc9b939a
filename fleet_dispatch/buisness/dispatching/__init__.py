"""
Dispatching business layer.

Main entry point: DispatchContext (domain facade)

Architecture (state machine + managers + policies):
- DispatchContext: Domain facade / aggregate controller, owns the transaction
- AssignmentManager: Driver assignment and unassignment
- LifecycleManager: Status transitions
- DispatchStateMachine: Allowed transitions and their timestamp side effects
- Policies: Driver availability, booking uniqueness, record consistency
- DispatchNarrator: Timeline message generation
"""

from fleet_dispatch.buisness.dispatching.context import DispatchContext
from fleet_dispatch.buisness.dispatching.assignment_manager import AssignmentManager
from fleet_dispatch.buisness.dispatching.lifecycle_manager import LifecycleManager
from fleet_dispatch.buisness.dispatching.state_machine import DispatchStateMachine, TransitionContext
from fleet_dispatch.buisness.dispatching.policies.driver_availability import DriverAvailabilityResolver
from fleet_dispatch.buisness.dispatching.errors import (
    DispatchDomainError,
    DispatchNotFoundError,
    DispatchTransitionError,
    DispatchPolicyViolation,
    DispatchConsistencyError,
    DispatchConflictError,
    DuplicateDispatchError,
    MissingDriverError,
    InvalidDispatchStateError,
    DriverUnavailableError,
)

__all__ = [
    'DispatchContext',
    'AssignmentManager',
    'LifecycleManager',
    'DispatchStateMachine',
    'TransitionContext',
    'DriverAvailabilityResolver',
    'DispatchDomainError',
    'DispatchNotFoundError',
    'DispatchTransitionError',
    'DispatchPolicyViolation',
    'DispatchConsistencyError',
    'DispatchConflictError',
    'DuplicateDispatchError',
    'MissingDriverError',
    'InvalidDispatchStateError',
    'DriverUnavailableError',
]
