"""
Domain exceptions for dispatching business logic

These exceptions represent business rule violations and domain-specific errors.
They are raised by the business layer when invariants are violated and are never
retried internally. Each carries a stable `code` that callers can map to an
operator-facing message.

Infrastructure failures (database unavailable, connection reset) are not wrapped:
they surface as SQLAlchemy exceptions and are safe for the caller to retry.
"""


class DispatchDomainError(Exception):
    """Base exception for all dispatching domain errors"""
    code = 'dispatch_error'


class DispatchNotFoundError(DispatchDomainError):
    """Raised when a referenced dispatch, booking or driver does not exist"""
    code = 'not_found'

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")


class DispatchTransitionError(DispatchDomainError):
    """Raised when a status transition is invalid or not allowed"""
    code = 'invalid_transition'


class DispatchPolicyViolation(DispatchDomainError):
    """Raised when a business policy/rule is violated"""
    code = 'policy_violation'


class DispatchConsistencyError(DispatchDomainError):
    """Raised when data consistency invariants are violated"""
    code = 'inconsistent_dispatch'


class DispatchConflictError(DispatchDomainError):
    """Raised when a concurrent modification was detected; the caller may retry"""
    code = 'conflict'


class DuplicateDispatchError(DispatchPolicyViolation):
    """Raised when a booking already has a non-cancelled dispatch"""
    code = 'duplicate_dispatch'


class MissingDriverError(DispatchPolicyViolation):
    """Raised when dispatching without an assigned driver"""
    code = 'missing_driver'


class InvalidDispatchStateError(DispatchPolicyViolation):
    """Raised when an operation is attempted in a status that forbids it"""
    code = 'invalid_state'


class DriverUnavailableError(DispatchPolicyViolation):
    """Raised when a driver fails the assignment-time eligibility check"""
    code = 'driver_unavailable'
