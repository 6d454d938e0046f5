from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal

from busops.constants import TripStatus, TIME_OF_DAY_PATTERN
from busops.auth.schemas import UserSummary
from busops.registry.schemas import BusSummary, RouteSummary

class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

class StopPoint(BaseModel):
    """A pickup or drop point along the route"""
    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    time: str = Field(..., pattern=TIME_OF_DAY_PATTERN, description="HH:MM")
    coordinates: Optional[Coordinates] = None

    @validator('name', 'address')
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v

# Request Models
class TripCreateRequest(BaseModel):
    """Request to schedule a new trip"""
    route_id: int
    bus_id: int
    driver_id: int
    helper_id: Optional[int] = None
    departure_time: str = Field(..., description="HH:MM, 24 hour clock")
    arrival_time: str = Field(..., description="HH:MM, 24 hour clock")
    departure_date: date
    pickup_points: List[StopPoint] = Field(..., min_length=1)
    drop_points: List[StopPoint] = Field(..., min_length=1)
    fare: Decimal = Field(..., ge=0)

class TripUpdateRequest(BaseModel):
    """Partial update of a trip's schedule, staff, stops or fare"""
    driver_id: Optional[int] = None
    helper_id: Optional[int] = None
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    departure_date: Optional[date] = None
    pickup_points: Optional[List[StopPoint]] = None
    drop_points: Optional[List[StopPoint]] = None
    fare: Optional[Decimal] = Field(None, ge=0)

class TripStatusUpdate(BaseModel):
    status: TripStatus

class TripFilters(BaseModel):
    status: Optional[TripStatus] = None
    route_id: Optional[int] = None
    bus_id: Optional[int] = None
    driver_id: Optional[int] = None
    departure_date: Optional[date] = None

# Response Models
class Trip(BaseModel):
    id: int
    trip_number: str
    route_id: int
    bus_id: int
    driver_id: int
    helper_id: Optional[int] = None
    departure_time: str
    arrival_time: str
    departure_date: date
    pickup_points: List[StopPoint] = []
    drop_points: List[StopPoint] = []
    status: TripStatus
    total_bookings: int
    available_seats: int
    fare: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TripDetail(Trip):
    route: Optional[RouteSummary] = None
    bus: Optional[BusSummary] = None
    driver: Optional[UserSummary] = None
    helper: Optional[UserSummary] = None

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class TripListResponse(BaseModel):
    trips: List[TripDetail]
    pagination: Pagination

class SeatMap(BaseModel):
    """Seat availability of a single trip"""
    trip_id: int
    total_seats: int
    available_seats: List[int]
    booked_seats: List[int]
    bus_type: Optional[str] = None
    occupancy_percentage: int
