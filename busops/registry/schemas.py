from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from decimal import Decimal

from busops.constants import BusStatus

class BusInfo(BaseModel):
    id: int
    bus_number: str
    bus_name: str
    bus_type: str
    total_seats: int
    status: BusStatus
    operator_id: int

    class Config:
        from_attributes = True

class BusSummary(BaseModel):
    """Bus fields shown next to a trip or booking"""
    id: int
    bus_number: str
    bus_name: str
    bus_type: str

    class Config:
        from_attributes = True

class RouteInfo(BaseModel):
    id: int
    route_name: str
    origin: str
    destination: str
    distance_km: Optional[Decimal] = None
    duration_minutes: Optional[int] = None
    is_active: bool = True

    class Config:
        from_attributes = True

class RouteSummary(BaseModel):
    id: int
    route_name: str
    origin: str
    destination: str

    class Config:
        from_attributes = True

class BusSeatUsage(BaseModel):
    """Seats a bus has committed on one service date, derived from bookings"""
    bus_id: int
    service_date: date
    total_seats: int
    seats_in_use: int
    available_seats: int
    trip_ids: List[int] = []
