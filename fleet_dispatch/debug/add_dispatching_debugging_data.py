#!/usr/bin/env python3
"""
Dispatching Debug Data Insertion
Inserts drivers, bookings and example dispatches for local development

Reference rows go through find_or_create_from_dict so the loader can be re-run.
Example dispatches go through DispatchContext so their history and timestamps
look exactly like those produced by the API.
"""

from pathlib import Path
import json
from fleet_dispatch import db
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.debug.dispatching")

DEBUG_DATA_FILE = Path(__file__).parent.parent / 'data' / 'build_data_debug.json'


def load_debug_data(path=None):
    path = Path(path) if path else DEBUG_DATA_FILE
    if not path.exists():
        raise FileNotFoundError(f"Debug data file not found: {path}")
    with open(path, 'r') as f:
        return json.load(f)


def insert_debug_data(debug_data=None, system_user_id=0):
    """
    Insert debug data for the dispatching module

    Args:
        debug_data (dict, optional): Debug data; loaded from build_data_debug.json if omitted
        system_user_id (int): Actor ID for audit fields

    Raises:
        Exception: If insertion fails (fail-fast)
    """
    if debug_data is None:
        debug_data = load_debug_data()

    dispatching_data = debug_data.get('Dispatching', {})
    if not dispatching_data:
        logger.info("No dispatching debug data to insert")
        return

    logger.info("Inserting dispatching debug data...")

    try:
        # 1. Reference data owned by other services
        if 'Drivers' in dispatching_data:
            _insert_drivers(dispatching_data['Drivers'])
        if 'Bookings' in dispatching_data:
            _insert_bookings(dispatching_data['Bookings'])
        db.session.commit()

        # 2. Example dispatches (each commits on its own)
        if 'Example_Dispatches' in dispatching_data:
            _insert_example_dispatches(dispatching_data['Example_Dispatches'], system_user_id)

        logger.info("Successfully inserted dispatching debug data")

    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to insert dispatching debug data: {e}")
        raise


def _insert_drivers(drivers_data):
    from fleet_dispatch.data.fleet.driver import Driver

    for driver_data in drivers_data:
        Driver.find_or_create_from_dict(driver_data, lookup_fields=['employee_id'], commit=False)
        logger.debug(f"Inserted driver: {driver_data.get('employee_id')}")


def _insert_bookings(bookings_data):
    from fleet_dispatch.data.bookings.booking import Booking

    for booking_data in bookings_data:
        Booking.find_or_create_from_dict(booking_data, lookup_fields=['id'], commit=False)
        logger.debug(f"Inserted booking: {booking_data.get('id')}")


def _insert_example_dispatches(dispatches_data, system_user_id):
    """
    Walk each example dispatch to its target status.

    Entry format: {"booking_id": int, "driver_employee_id": str?, "status": str}
    Bookings that already have a dispatch are skipped.
    """
    from fleet_dispatch.data.fleet.driver import Driver
    from fleet_dispatch.data.dispatching.dispatch import Dispatch, DispatchStatus
    from fleet_dispatch.buisness.dispatching.context import DispatchContext

    path = [
        DispatchStatus.DISPATCHED,
        DispatchStatus.IN_TRANSIT,
        DispatchStatus.ARRIVED,
        DispatchStatus.COMPLETED,
    ]

    for example in dispatches_data:
        booking_id = example['booking_id']
        if Dispatch.query.filter_by(booking_id=booking_id).first() is not None:
            logger.debug(f"Booking {booking_id} already has a dispatch, skipping")
            continue

        ctx = DispatchContext.create(booking_id, actor_id=system_user_id)

        employee_id = example.get('driver_employee_id')
        if employee_id:
            driver = Driver.query.filter_by(employee_id=employee_id).first()
            if driver is None:
                raise ValueError(f"Debug driver {employee_id} not found")
            ctx.assign_driver(system_user_id, driver.id)

        target = DispatchStatus(example.get('status', 'pending'))
        if target is DispatchStatus.CANCELLED:
            ctx.cancel(system_user_id, reason=example.get('reason'))
        elif target in path:
            for status in path[:path.index(target) + 1]:
                ctx.advance(system_user_id, status)

        logger.debug(f"Inserted example dispatch for booking {booking_id} ({target.value})")
