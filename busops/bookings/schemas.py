from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal

from busops.constants import BookingStatus, PaymentStatus, PaymentMethod, PassengerGender
from busops.auth.schemas import UserSummary
from busops.registry.schemas import BusSummary, RouteSummary

# Passenger Information
class SeatAssignment(BaseModel):
    """One seat of a booking and the passenger travelling in it"""
    seat_number: int
    passenger_name: str = Field(..., min_length=1, max_length=50)
    passenger_age: int = Field(..., ge=1, le=120)
    passenger_gender: PassengerGender
    passenger_phone: str = Field(..., pattern=r"^(\+91|91)?[6-9]\d{9}$")

    @validator('passenger_name')
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Passenger name is required')
        return v

# Booking Request Models
class BookingCreateRequest(BaseModel):
    """Request to reserve seats on a trip"""
    trip_id: int
    seats: List[SeatAssignment]
    boarding_point: str = Field(..., min_length=1)
    dropping_point: str = Field(..., min_length=1)
    payment_method: Optional[PaymentMethod] = PaymentMethod.UPI

class BookingCancellationRequest(BaseModel):
    """Request to cancel a booking"""
    reason: Optional[str] = None

class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    reason: Optional[str] = None

class BookingSearchFilters(BaseModel):
    """Filters for listing bookings"""
    user_id: Optional[int] = None
    trip_id: Optional[int] = None
    bus_id: Optional[int] = None
    route_id: Optional[int] = None
    booking_status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    booking_reference: Optional[str] = None

# Booking Response Models
class TripSummary(BaseModel):
    id: int
    trip_number: str
    departure_time: str
    arrival_time: str

    class Config:
        from_attributes = True

class Booking(BaseModel):
    """Booking details with denormalised display fields"""
    id: int
    booking_reference: str
    user_id: int
    trip_id: int
    bus_id: int
    route_id: int
    journey_date: date
    seats: List[SeatAssignment]
    total_amount: Decimal
    booking_status: BookingStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    boarding_point: str
    dropping_point: str
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    refund_amount: Optional[Decimal] = None
    refund_percentage: Optional[Decimal] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    bus: Optional[BusSummary] = None
    route: Optional[RouteSummary] = None
    trip: Optional[TripSummary] = None

    class Config:
        from_attributes = True

class CancellationResult(BaseModel):
    """Outcome of cancelling a booking"""
    booking: Booking
    refund_amount: Decimal
    refund_percentage: Decimal
    hours_until_departure: int

class BookingListResponse(BaseModel):
    bookings: List[Booking]
    total: int
    page: int
    limit: int
