"""
Test the from_dict / to_dict helpers shared by the models.
"""

from datetime import date, time
from decimal import Decimal
from fleet_dispatch import db
from fleet_dispatch.data.bookings.booking import Booking
from fleet_dispatch.data.fleet.driver import Driver
from fleet_dispatch.data.dispatching.dispatch import Dispatch, DispatchStatus


def test_from_dict_coerces_column_types():
    driver = Driver.from_dict({
        'employee_id': 'DRV-100',
        'license_number': 'LIC-100',
        'license_expiry': '2031-01-31',
        'shift_start': '06:00:00',
        'shift_end': '18:00:00',
        'not_a_column': 'ignored',
    })

    assert driver.license_expiry == date(2031, 1, 31)
    assert driver.shift_start == time(6, 0)
    assert not hasattr(driver, 'not_a_column')


def test_from_dict_sets_audit_fields_and_enum():
    dispatch = Dispatch.from_dict({'booking_id': 1, 'status': 'pending'}, user_id=3)

    assert dispatch.status is DispatchStatus.PENDING
    assert dispatch.created_by_id == 3
    assert dispatch.updated_by_id == 3


def test_to_dict_is_json_safe():
    booking = Booking.from_dict({'source': 'A', 'destination': 'B', 'price': 1250.5})
    db.session.add(booking)
    db.session.commit()

    assert booking.price == Decimal('1250.50')
    result = booking.to_dict(include_audit_fields=False)
    assert result['price'] == 1250.5
    assert 'created_at' not in result


def test_find_or_create_is_idempotent():
    data = {'employee_id': 'DRV-200', 'license_number': 'LIC-200', 'license_expiry': '2030-06-30'}

    first, created = Driver.find_or_create_from_dict(data, lookup_fields=['employee_id'])
    second, created_again = Driver.find_or_create_from_dict(data, lookup_fields=['employee_id'])

    assert created is True
    assert created_again is False
    assert first.id == second.id
    assert Driver.query.count() == 1
