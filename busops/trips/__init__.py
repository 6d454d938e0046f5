"""
Trip Scheduling Module

Schedules bus trips over routes and guards the physical resources behind
them. It includes:

- Trip creation with bus, route, driver and helper validation
- Per-date exclusivity of buses, drivers and helpers across active trips
- Trip lifecycle (scheduled, delayed, in progress, completed, cancelled)
- Seat inventory counters and per-trip seat maps

Key Components:
- service.py: TripScheduler and the trip row lock shared with bookings
- router.py: FastAPI endpoints for trip management
- schemas.py: Pydantic models for trip requests and responses
"""

from .router import router
from .service import TripScheduler, lock_trip
from .schemas import (
    TripCreateRequest, TripUpdateRequest, TripStatusUpdate, TripFilters,
    Trip, TripDetail, TripListResponse, SeatMap, StopPoint
)

__all__ = [
    "router",
    "TripScheduler",
    "lock_trip",
    "TripCreateRequest",
    "TripUpdateRequest",
    "TripStatusUpdate",
    "TripFilters",
    "Trip",
    "TripDetail",
    "TripListResponse",
    "SeatMap",
    "StopPoint"
]
