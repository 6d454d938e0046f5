"""
Status transition tables for trips and bookings.

Every path that changes a trip or booking status goes through
``ensure_trip_transition`` or ``ensure_booking_transition`` so there is
exactly one table per entity.
"""

from typing import Dict, FrozenSet

from busops.constants import TripStatus, BookingStatus
from busops.exceptions import InvalidStateError

TRIP_TRANSITIONS: Dict[TripStatus, FrozenSet[TripStatus]] = {
    TripStatus.SCHEDULED: frozenset({
        TripStatus.IN_PROGRESS, TripStatus.DELAYED, TripStatus.CANCELLED, TripStatus.COMPLETED
    }),
    TripStatus.DELAYED: frozenset({
        TripStatus.SCHEDULED, TripStatus.IN_PROGRESS, TripStatus.CANCELLED
    }),
    TripStatus.IN_PROGRESS: frozenset({TripStatus.COMPLETED, TripStatus.DELAYED}),
    TripStatus.COMPLETED: frozenset(),
    TripStatus.CANCELLED: frozenset(),
}

BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

def can_transition(table: Dict, current, target) -> bool:
    return target in table.get(current, frozenset())

def ensure_trip_transition(current: str, target: TripStatus) -> TripStatus:
    """Validate a trip status change and return the target status"""
    current = TripStatus(current)
    if not can_transition(TRIP_TRANSITIONS, current, target):
        raise InvalidStateError(
            f"Invalid trip status transition from {current.value} to {target.value}"
        )
    return target

def ensure_booking_transition(current: str, target: BookingStatus) -> BookingStatus:
    """Validate a booking status change and return the target status"""
    current = BookingStatus(current)
    if not can_transition(BOOKING_TRANSITIONS, current, target):
        raise InvalidStateError(
            f"Invalid status transition from {current.value} to {target.value}"
        )
    return target
