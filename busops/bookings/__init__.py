"""
Booking & Reservation Module

Seat reservations against scheduled trips. It includes:

- Seat allocation with per-trip exclusivity and capacity checks
- Booking lifecycle management (pending, confirmed, completed, cancelled)
- Time-tiered cancellation refunds
- Seat release back to the trip inventory on cancellation

Key Components:
- booking_service.py: Core reservation management
- refund_policy.py: Refund tiers keyed on hours before departure
- router.py: FastAPI endpoints for bookings
- schemas.py: Pydantic models for booking requests and responses
"""

from .router import router
from .booking_service import BookingService
from .refund_policy import refund_fraction, refund_amount
from .schemas import (
    BookingCreateRequest, BookingCancellationRequest, BookingStatusUpdate,
    BookingSearchFilters, Booking, BookingListResponse, CancellationResult,
    SeatAssignment
)

__all__ = [
    "router",
    "BookingService",
    "refund_fraction",
    "refund_amount",
    "BookingCreateRequest",
    "BookingCancellationRequest",
    "BookingStatusUpdate",
    "BookingSearchFilters",
    "Booking",
    "BookingListResponse",
    "CancellationResult",
    "SeatAssignment"
]
