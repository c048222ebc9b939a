from flask import jsonify
from fleet_dispatch.presentation.routes.dispatching import dispatching_bp
from fleet_dispatch.buisness.dispatching.policies.driver_availability import DriverAvailabilityResolver


@dispatching_bp.get('/available-drivers')
def available_drivers():
    """Drivers that could be assigned to a pending dispatch right now"""
    return jsonify([driver.to_dict() for driver in DriverAvailabilityResolver.list_available()])
