import enum
from fleet_dispatch import db
from fleet_dispatch.data.core.user_created_base import UserCreatedBase


class DispatchStatus(str, enum.Enum):
    """Closed set of dispatch statuses; the string value is what gets persisted"""
    PENDING = 'pending'
    DISPATCHED = 'dispatched'
    IN_TRANSIT = 'in_transit'
    ARRIVED = 'arrived'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    def __str__(self):
        return self.value


# Statuses in which a dispatch consumes its driver's capacity
ACTIVE_STATUSES = frozenset({DispatchStatus.DISPATCHED, DispatchStatus.IN_TRANSIT, DispatchStatus.ARRIVED})
TERMINAL_STATUSES = frozenset({DispatchStatus.COMPLETED, DispatchStatus.CANCELLED})
OPEN_STATUSES = frozenset(DispatchStatus) - TERMINAL_STATUSES


class Dispatch(UserCreatedBase):
    """
    Operational record tracking the physical fulfilment of one booking.

    Mutated only through DispatchContext (state machine transitions and driver
    assignment). Rows are hard-deleted only while still pending.
    """
    __tablename__ = 'dispatches'

    booking_id = db.Column(db.Integer, db.ForeignKey('bookings.id'), nullable=False, index=True)
    assigned_driver_id = db.Column(db.Integer, db.ForeignKey('drivers.id'), nullable=True, index=True)

    status = db.Column(
        db.Enum(
            DispatchStatus,
            name='dispatch_status',
            native_enum=False,
            create_constraint=True,
            validate_strings=True,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=DispatchStatus.PENDING,
        index=True,
    )

    dispatch_time = db.Column(db.DateTime, nullable=True)
    arrival_time = db.Column(db.DateTime, nullable=True)

    cancelled_by_id = db.Column(db.Integer, nullable=True)
    cancelled_reason = db.Column(db.Text, nullable=True)

    # Optimistic lock counter, bumped on every UPDATE
    version_id = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version_id}

    __table_args__ = (
        # One open (non-cancelled) dispatch per booking
        db.Index(
            'uq_dispatches_open_booking',
            'booking_id',
            unique=True,
            sqlite_where=db.text("status != 'cancelled'"),
            postgresql_where=db.text("status != 'cancelled'"),
        ),
    )

    _private_columns = frozenset({'version_id'})

    # Relationships
    booking = db.relationship('Booking')
    assigned_driver = db.relationship('Driver', foreign_keys=[assigned_driver_id])
    history = db.relationship(
        'DispatchHistory',
        back_populates='dispatch',
        cascade='all, delete-orphan',
        order_by='DispatchHistory.id',
    )

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    def to_dict(self, include_audit_fields=True):
        result = super().to_dict(include_audit_fields=include_audit_fields)
        result['dispatch_id'] = result.pop('id')
        result['assigned_driver'] = result.pop('assigned_driver_id')
        return result

    def __repr__(self):
        return f"<Dispatch {self.id} booking={self.booking_id} status={self.status}>"
