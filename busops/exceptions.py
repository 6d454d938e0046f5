"""
Error taxonomy for the trip allocation and reservation engine.

Every error here is recoverable and user facing. Services raise them, the
application renders them (see ``busops.main``). Anything else escaping a
request is treated as an internal error.
"""

from typing import Iterable, List


class BookingEngineError(Exception):
    """Base class for all domain errors"""

    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingEngineError):
    """Referenced trip, booking, bus, route or user does not exist"""

    status_code = 404
    kind = "not_found"


class ValidationError(BookingEngineError):
    """Malformed input"""

    status_code = 422
    kind = "validation"


class ResourceConflictError(BookingEngineError):
    """Bus, driver or helper already committed to an active trip that day"""

    status_code = 409
    kind = "resource_conflict"

    def __init__(self, resource: str, message: str = None):
        super().__init__(message or f"The {resource} is already assigned to another trip on this date")
        self.resource = resource


class SeatConflictError(BookingEngineError):
    """Requested seats already held by another active booking"""

    status_code = 409
    kind = "seat_conflict"

    def __init__(self, seat_numbers: Iterable[int]):
        self.seat_numbers: List[int] = sorted(set(seat_numbers))
        seats = ", ".join(str(n) for n in self.seat_numbers)
        super().__init__(f"Seats {seats} are already booked")


class CapacityExceededError(BookingEngineError):
    """Requested seat count exceeds the trip's remaining inventory"""

    status_code = 409
    kind = "capacity_exceeded"


class InvalidStateError(BookingEngineError):
    """Current status of the booking or trip forbids the operation"""

    status_code = 409
    kind = "invalid_state"


class ForbiddenError(BookingEngineError):
    """Actor lacks rights over the target"""

    status_code = 403
    kind = "forbidden"


class ConflictError(BookingEngineError):
    """Generic write conflict (referential integrity, identifier collision)"""

    status_code = 409
    kind = "conflict"
