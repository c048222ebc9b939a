from fleet_dispatch import db
from datetime import datetime
from fleet_dispatch.buisness.core.data_insertion_mixin import DataInsertionMixin


class DispatchHistory(db.Model, DataInsertionMixin):
    """
    Machine-generated timeline entry for a dispatch.

    One row per lifecycle change (creation, driver assignment/unassignment,
    status transition). Message text is composed by DispatchNarrator.
    """
    __tablename__ = 'dispatch_history'

    # Actions
    CREATED = 'created'
    ASSIGNED = 'assigned'
    UNASSIGNED = 'unassigned'
    TRANSITION = 'transition'

    id = db.Column(db.Integer, primary_key=True)
    dispatch_id = db.Column(
        db.Integer,
        db.ForeignKey('dispatches.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    action = db.Column(db.String(20), nullable=False)
    from_status = db.Column(db.String(20), nullable=True)
    to_status = db.Column(db.String(20), nullable=True)
    driver_id = db.Column(db.Integer, nullable=True)
    message = db.Column(db.Text, nullable=False)
    actor_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    dispatch = db.relationship('Dispatch', back_populates='history')
