from fleet_dispatch import db
from datetime import datetime
from fleet_dispatch.buisness.core.data_insertion_mixin import DataInsertionMixin


class Booking(db.Model, DataInsertionMixin):
    """
    Customer booking, owned by the booking service.

    The dispatch core only reads bookings; booking_status is the booking's own
    billing/fulfilment status and is independent of any dispatch status.
    """
    __tablename__ = 'bookings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)
    source = db.Column(db.String(255), nullable=False)
    destination = db.Column(db.String(255), nullable=False)
    service_type = db.Column(db.String(50), nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=True)
    truck_id = db.Column(db.Integer, nullable=True)
    vehicle_id = db.Column(db.Integer, nullable=True)
    booking_status = db.Column(db.String(50), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Booking {self.id} {self.source} -> {self.destination}>"
