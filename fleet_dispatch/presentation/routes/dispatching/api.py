from flask import abort, jsonify, request
from datetime import datetime
from fleet_dispatch.presentation.routes.dispatching import dispatching_bp
from fleet_dispatch.buisness.dispatching.context import DispatchContext
from fleet_dispatch.buisness.dispatching.state_machine import coerce_status, to_naive_utc
from fleet_dispatch.buisness.dispatching.errors import DispatchTransitionError
from fleet_dispatch.data.dispatching.dispatch import DispatchStatus
from fleet_dispatch.services.dispatching.dispatch_service import DispatchService
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.routes.dispatching.api")


def _actor_id():
    """Caller identity from the X-Actor-Id header (optional)"""
    raw = request.headers.get('X-Actor-Id')
    if raw is None or raw == '':
        return None
    try:
        return int(raw)
    except ValueError:
        abort(400, description=f"X-Actor-Id must be an integer, got {raw!r}")


def _parse_status(value):
    try:
        return coerce_status(value)
    except DispatchTransitionError as e:
        abort(400, description=str(e))


def _parse_datetime(value, field):
    if value is None or value == '':
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        abort(400, description=f"{field} must be an ISO 8601 datetime, got {value!r}")
    return to_naive_utc(parsed)


def _page_args():
    return request.args.get('skip', type=int), request.args.get('limit', type=int)


def _dispatch_list(dispatches):
    return jsonify([d.to_dict() for d in dispatches])


@dispatching_bp.post('/')
def create_dispatch():
    payload = request.get_json(silent=True) or {}
    booking_id = payload.get('booking_id')
    if not isinstance(booking_id, int) or isinstance(booking_id, bool):
        abort(400, description="booking_id is required and must be an integer")

    logger.debug(f"Create dispatch requested for booking {booking_id}")
    ctx = DispatchContext.create(booking_id, actor_id=_actor_id())
    return jsonify(ctx.dispatch.to_dict()), 201


@dispatching_bp.get('/')
def list_dispatches():
    status = request.args.get('status')
    skip, limit = _page_args()
    dispatches = DispatchService.list_dispatches(
        status=_parse_status(status) if status else None,
        booking_id=request.args.get('booking_id', type=int),
        assigned_driver=request.args.get('assigned_driver', type=int),
        skip=skip,
        limit=limit,
    )
    return _dispatch_list(dispatches)


@dispatching_bp.get('/summary')
def dispatch_summary():
    return jsonify(DispatchService.status_summary())


@dispatching_bp.get('/<int:dispatch_id>')
def get_dispatch(dispatch_id):
    return jsonify(DispatchService.get_by_id(dispatch_id).to_dict())


@dispatching_bp.get('/<int:dispatch_id>/with-details')
def get_dispatch_with_details(dispatch_id):
    return jsonify(DispatchService.get_with_details(dispatch_id))


@dispatching_bp.get('/<int:dispatch_id>/history')
def get_dispatch_history(dispatch_id):
    return jsonify([entry.to_dict() for entry in DispatchService.get_history(dispatch_id)])


@dispatching_bp.put('/<int:dispatch_id>/assign-driver')
def assign_driver(dispatch_id):
    driver_id = request.args.get('driver_id', type=int)
    if driver_id is None:
        abort(400, description="driver_id query parameter is required and must be an integer")

    ctx = DispatchContext.load(dispatch_id).assign_driver(_actor_id(), driver_id)
    return jsonify(ctx.dispatch.to_dict())


@dispatching_bp.put('/<int:dispatch_id>/unassign-driver')
def unassign_driver(dispatch_id):
    ctx = DispatchContext.load(dispatch_id).unassign_driver(_actor_id())
    return jsonify(ctx.dispatch.to_dict())


@dispatching_bp.put('/<int:dispatch_id>/status')
def update_status(dispatch_id):
    """
    Move a dispatch through its lifecycle.

    Body: {"status": ..., "dispatch_time"?: ISO, "arrival_time"?: ISO, "reason"?: str}
    The optional time is recorded when entering dispatched/arrived respectively.
    """
    payload = request.get_json(silent=True) or {}
    if not payload.get('status'):
        abort(400, description="status is required")

    target = _parse_status(payload['status'])
    occurred_at = None
    if target is DispatchStatus.DISPATCHED:
        occurred_at = _parse_datetime(payload.get('dispatch_time'), 'dispatch_time')
    elif target is DispatchStatus.ARRIVED:
        occurred_at = _parse_datetime(payload.get('arrival_time'), 'arrival_time')

    ctx = DispatchContext.load(dispatch_id).advance(
        _actor_id(),
        target,
        occurred_at=occurred_at,
        reason=payload.get('reason'),
    )
    return jsonify(ctx.dispatch.to_dict())


@dispatching_bp.delete('/<int:dispatch_id>/cancel')
def cancel_dispatch(dispatch_id):
    payload = request.get_json(silent=True) or {}
    reason = payload.get('reason') or request.args.get('reason')
    ctx = DispatchContext.load(dispatch_id).cancel(_actor_id(), reason=reason)
    return jsonify(ctx.dispatch.to_dict())


@dispatching_bp.delete('/<int:dispatch_id>')
def delete_dispatch(dispatch_id):
    DispatchContext.load(dispatch_id).delete_if_pending(_actor_id())
    return '', 204


@dispatching_bp.get('/booking/<int:booking_id>')
def get_dispatch_by_booking(booking_id):
    include_cancelled = request.args.get('include_cancelled', 'false').lower() in ('true', '1', 'yes')
    return jsonify(DispatchService.get_by_booking(booking_id, include_cancelled=include_cancelled).to_dict())


@dispatching_bp.get('/driver/<int:driver_id>')
def get_dispatches_by_driver(driver_id):
    skip, limit = _page_args()
    return _dispatch_list(DispatchService.get_by_driver(driver_id, skip=skip, limit=limit))


@dispatching_bp.get('/status/<status>')
def get_dispatches_by_status(status):
    skip, limit = _page_args()
    return _dispatch_list(DispatchService.list_by_status(_parse_status(status), skip=skip, limit=limit))
