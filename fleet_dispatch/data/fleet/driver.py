from fleet_dispatch import db
from datetime import datetime
from fleet_dispatch.buisness.core.data_insertion_mixin import DataInsertionMixin


class Driver(db.Model, DataInsertionMixin):
    """
    Fleet driver, owned by the fleet service.

    The dispatch core reads drivers to decide who may be assigned; it never
    changes a driver's status or availability flag.
    """
    __tablename__ = 'drivers'

    # Driver status values
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    SUSPENDED = 'suspended'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)
    employee_id = db.Column(db.String(50), nullable=False, unique=True)
    license_number = db.Column(db.String(50), nullable=False)
    license_type = db.Column(db.String(20), nullable=True)
    license_expiry = db.Column(db.Date, nullable=False)
    experience_years = db.Column(db.Integer, nullable=True)
    phone_emergency = db.Column(db.String(30), nullable=True)
    address = db.Column(db.Text, nullable=True)
    blood_group = db.Column(db.String(5), nullable=True)

    # Shift window (time of day); start > end means the shift crosses midnight
    shift_start = db.Column(db.Time, nullable=True)
    shift_end = db.Column(db.Time, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=ACTIVE)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    rating = db.Column(db.Float, nullable=True)
    total_trips = db.Column(db.Integer, nullable=False, default=0)
    total_distance_km = db.Column(db.Float, nullable=False, default=0.0)
    assigned_truck_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Driver {self.id} {self.employee_id} ({self.status})>"
