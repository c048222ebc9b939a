"""
Pytest configuration and fixtures for the dispatch core tests
"""
import os

# Keep test runs off the filesystem: in-memory database, console-only logging
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['LOG_DIR'] = ''
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from datetime import datetime, timedelta  # noqa: E402
import pytest  # noqa: E402
from fleet_dispatch import create_app  # noqa: E402
from fleet_dispatch import db as _db  # noqa: E402


@pytest.fixture(scope='session')
def app():
    """Create Flask application for testing"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'DISPATCH_ENFORCE_SHIFT_WINDOW': False,
    })

    with app.app_context():
        yield app


@pytest.fixture(scope='function', autouse=True)
def db(app):
    """Fresh schema for every test"""
    _db.create_all()
    yield _db
    _db.session.remove()
    _db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create Flask test client"""
    return app.test_client()


@pytest.fixture
def make_driver(db):
    """Factory for drivers; eligible for assignment unless overridden"""
    from fleet_dispatch.data.fleet.driver import Driver

    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        values = {
            'employee_id': f"EMP-{counter['n']:03d}",
            'license_number': f"LIC-{counter['n']:06d}",
            'license_type': 'HMV',
            'license_expiry': (datetime.utcnow() + timedelta(days=365)).date(),
            'status': Driver.ACTIVE,
            'is_available': True,
        }
        values.update(overrides)
        driver = Driver(**values)
        db.session.add(driver)
        db.session.commit()
        return driver

    return _make


@pytest.fixture
def make_booking(db):
    """Factory for bookings"""
    from fleet_dispatch.data.bookings.booking import Booking

    def _make(**overrides):
        values = {
            'source': 'Warehouse A',
            'destination': 'Depot B',
            'service_type': 'full_truck',
        }
        values.update(overrides)
        booking = Booking(**values)
        db.session.add(booking)
        db.session.commit()
        return booking

    return _make
