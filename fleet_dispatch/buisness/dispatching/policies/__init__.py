"""
Policy classes for dispatch business rules

Policies are composable validation rules that enforce business invariants.
They raise domain exceptions when violations are detected.
"""

from fleet_dispatch.buisness.dispatching.policies.driver_availability import DriverAvailabilityResolver
from fleet_dispatch.buisness.dispatching.policies.booking_uniqueness import BookingUniquenessPolicy
from fleet_dispatch.buisness.dispatching.policies.dispatch_status_validation import DispatchStatusValidationPolicy

__all__ = [
    'DriverAvailabilityResolver',
    'BookingUniquenessPolicy',
    'DispatchStatusValidationPolicy',
]
