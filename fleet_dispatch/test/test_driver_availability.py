"""
Test driver eligibility for assignment.
"""

from datetime import datetime, time, timedelta
import pytest
from fleet_dispatch.data.fleet.driver import Driver
from fleet_dispatch.data.dispatching.dispatch import DispatchStatus
from fleet_dispatch.buisness.dispatching.context import DispatchContext
from fleet_dispatch.buisness.dispatching.policies.driver_availability import DriverAvailabilityResolver
from fleet_dispatch.buisness.dispatching.errors import DispatchNotFoundError, DriverUnavailableError


def test_only_eligible_drivers_are_listed(make_driver):
    """Inactive, unavailable and expired-license drivers are excluded"""
    today = datetime.utcnow().date()
    eligible = make_driver()
    make_driver(status=Driver.SUSPENDED)
    make_driver(status=Driver.INACTIVE)
    make_driver(is_available=False)
    make_driver(license_expiry=today)
    make_driver(license_expiry=today - timedelta(days=1))

    available = DriverAvailabilityResolver.list_available()

    assert [d.id for d in available] == [eligible.id]


def test_listing_is_ordered_by_id(make_driver):
    first = make_driver()
    second = make_driver()
    third = make_driver()

    assert [d.id for d in DriverAvailabilityResolver.list_available()] == [first.id, second.id, third.id]


def test_empty_fleet_returns_empty_list():
    assert DriverAvailabilityResolver.list_available() == []


def test_open_dispatches_block_the_driver(make_driver, make_booking):
    """A driver held by a pending or active dispatch is not offered again"""
    driver = make_driver()
    ctx = DispatchContext.create(make_booking().id, actor_id=1)
    ctx.assign_driver(1, driver.id)

    assert DriverAvailabilityResolver.list_available() == []

    ctx.advance(1, DispatchStatus.DISPATCHED)
    assert DriverAvailabilityResolver.list_available() == []


def test_terminal_dispatches_release_the_driver(make_driver, make_booking):
    driver = make_driver()
    ctx = DispatchContext.create(make_booking().id, actor_id=1)
    ctx.assign_driver(1, driver.id)
    ctx.advance(1, DispatchStatus.DISPATCHED)
    ctx.cancel(1, reason='Customer cancelled')

    assert [d.id for d in DriverAvailabilityResolver.list_available()] == [driver.id]


def test_check_reports_reason(make_driver):
    driver = make_driver(is_available=False)

    with pytest.raises(DriverUnavailableError, match="unavailable"):
        DriverAvailabilityResolver.check(driver.id)


def test_check_unknown_driver_is_not_found():
    with pytest.raises(DispatchNotFoundError):
        DriverAvailabilityResolver.check(999)


def test_is_assignable_ignores_the_dispatch_being_reassigned(make_driver, make_booking):
    driver = make_driver()
    ctx = DispatchContext.create(make_booking().id, actor_id=1)
    ctx.assign_driver(1, driver.id)

    assignable, reason = DriverAvailabilityResolver.is_assignable(driver)
    assert not assignable
    assert str(ctx.dispatch.id) in reason

    assignable, reason = DriverAvailabilityResolver.is_assignable(driver, exclude_dispatch_id=ctx.dispatch.id)
    assert assignable
    assert reason is None


def test_shift_window_day_and_overnight():
    day = Driver(shift_start=time(6, 0), shift_end=time(18, 0))
    night = Driver(shift_start=time(20, 0), shift_end=time(6, 0))
    anytime = Driver()

    assert DriverAvailabilityResolver.is_on_shift(day, datetime(2024, 5, 1, 12, 0))
    assert not DriverAvailabilityResolver.is_on_shift(day, datetime(2024, 5, 1, 19, 0))
    assert DriverAvailabilityResolver.is_on_shift(night, datetime(2024, 5, 1, 23, 0))
    assert DriverAvailabilityResolver.is_on_shift(night, datetime(2024, 5, 1, 3, 0))
    assert not DriverAvailabilityResolver.is_on_shift(night, datetime(2024, 5, 1, 12, 0))
    assert DriverAvailabilityResolver.is_on_shift(anytime, datetime(2024, 5, 1, 12, 0))


def test_shift_window_only_applies_when_enforced(make_driver):
    driver = make_driver(shift_start=time(6, 0), shift_end=time(18, 0))
    evening = datetime.combine(datetime.utcnow().date(), time(21, 0))

    assert [d.id for d in DriverAvailabilityResolver.list_available(now=evening)] == [driver.id]
    assert DriverAvailabilityResolver.list_available(now=evening, enforce_shift_window=True) == []
