"""
Test the database build and debug data loader.
"""

from fleet_dispatch.build import build_database
from fleet_dispatch.data.bookings.booking import Booking
from fleet_dispatch.data.fleet.driver import Driver
from fleet_dispatch.data.dispatching.dispatch import Dispatch
from fleet_dispatch.buisness.dispatching.policies.driver_availability import DriverAvailabilityResolver
from fleet_dispatch.services.dispatching.dispatch_service import DispatchService


def test_build_without_debug_data(app):
    build_database(enable_debug_data=False, app=app)

    assert Driver.query.count() == 0
    assert Dispatch.query.count() == 0


def test_build_with_debug_data_is_repeatable(app):
    build_database(enable_debug_data=True, app=app)
    build_database(enable_debug_data=True, app=app)

    assert Driver.query.count() == 5
    assert Booking.query.count() == 5
    assert Dispatch.query.count() == 4

    summary = DispatchService.status_summary()
    assert summary['completed'] == 1
    assert summary['in_transit'] == 1
    assert summary['pending'] == 1
    assert summary['cancelled'] == 1

    # DRV-001 is free again after completing; DRV-002 is on the road
    available = [d.employee_id for d in DriverAvailabilityResolver.list_available()]
    assert available == ['DRV-001', 'DRV-003']
