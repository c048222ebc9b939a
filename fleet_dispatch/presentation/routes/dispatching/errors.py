"""
Error translation for the dispatching API.

Business-rule violations become 4xx JSON responses carrying the error code and an
operator-facing message. Database outages become 503 and are flagged retryable.
"""

from flask import jsonify
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException
from fleet_dispatch.presentation.routes.dispatching import dispatching_bp
from fleet_dispatch.buisness.dispatching.errors import (
    DispatchConflictError,
    DispatchConsistencyError,
    DispatchDomainError,
    DispatchNotFoundError,
    DispatchTransitionError,
    DriverUnavailableError,
    DuplicateDispatchError,
    InvalidDispatchStateError,
    MissingDriverError,
)
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.routes.dispatching.errors")

# Most specific first; the first isinstance match wins
STATUS_CODES = (
    (DispatchNotFoundError, 404),
    (DuplicateDispatchError, 409),
    (DriverUnavailableError, 409),
    (InvalidDispatchStateError, 409),
    (DispatchTransitionError, 409),
    (DispatchConflictError, 409),
    (MissingDriverError, 422),
    (DispatchConsistencyError, 422),
)


def status_code_for(error: DispatchDomainError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 400


@dispatching_bp.errorhandler(DispatchDomainError)
def handle_domain_error(error: DispatchDomainError):
    return jsonify({
        'error': error.code,
        'detail': str(error),
        'retryable': isinstance(error, DispatchConflictError),
    }), status_code_for(error)


@dispatching_bp.errorhandler(OperationalError)
def handle_store_unavailable(error: OperationalError):
    logger.error(f"Dispatch store unavailable: {error}")
    return jsonify({
        'error': 'store_unavailable',
        'detail': 'The dispatch store is temporarily unavailable. Please retry.',
        'retryable': True,
    }), 503


@dispatching_bp.errorhandler(HTTPException)
def handle_http_error(error: HTTPException):
    return jsonify({
        'error': error.name.lower().replace(' ', '_'),
        'detail': error.description,
        'retryable': False,
    }), error.code
