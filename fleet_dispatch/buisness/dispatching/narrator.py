"""
DispatchNarrator - Message composer for dispatch lifecycle events

Ensures every lifecycle change produces a consistent machine-generated message.
Separates audit narrative formatting from transition logic.
"""

from datetime import datetime
from typing import Optional


def _fmt_time(value: Optional[datetime]) -> str:
    return value.strftime('%Y-%m-%d %H:%M') if value else 'N/A'


class DispatchNarrator:
    """
    Composes machine-generated messages for dispatch lifecycle events.

    Messages are stored on DispatchHistory rows and echoed to the log.
    """

    @staticmethod
    def dispatch_created(dispatch) -> str:
        return f"Dispatch created for booking {dispatch.booking_id} (ID: {dispatch.id})"

    @staticmethod
    def driver_assigned(driver_id: int, previous_driver_id: Optional[int] = None) -> str:
        if previous_driver_id is not None:
            return f"Driver reassigned: {previous_driver_id} → {driver_id}"
        return f"Driver {driver_id} assigned"

    @staticmethod
    def driver_unassigned(driver_id: int) -> str:
        return f"Driver {driver_id} unassigned"

    @staticmethod
    def status_changed(dispatch, from_status, to_status, reason: Optional[str] = None) -> str:
        """Message for a status transition, including the timestamp it recorded"""
        message = f"Status changed: {from_status.value} → {to_status.value}"
        if to_status.value == 'dispatched':
            message += f" | Dispatched at {_fmt_time(dispatch.dispatch_time)}"
        elif to_status.value == 'arrived':
            message += f" | Arrived at {_fmt_time(dispatch.arrival_time)}"
        if reason:
            message += f" | Reason: {reason}"
        return message

    @staticmethod
    def cancelled_after_arrival(dispatch) -> str:
        return (
            f"Dispatch {dispatch.id} cancelled after arrival "
            f"(arrived {_fmt_time(dispatch.arrival_time)}); review required"
        )

    @staticmethod
    def dispatch_deleted(dispatch_id: int, booking_id: int) -> str:
        return f"Pending dispatch {dispatch_id} for booking {booking_id} deleted"
