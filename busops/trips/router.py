from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from busops.database import get_db
from busops.auth.dependencies import get_current_actor, require_admin
from busops.constants import TripStatus
from busops.trips.schemas import (
    TripCreateRequest, TripUpdateRequest, TripStatusUpdate, TripFilters,
    TripDetail, TripListResponse, Pagination, SeatMap
)
from busops.trips.service import TripScheduler

router = APIRouter()

@router.post("/", response_model=TripDetail, status_code=status.HTTP_201_CREATED)
def schedule_trip(
    request: TripCreateRequest,
    db: Session = Depends(get_db),
    actor = Depends(require_admin)
):
    """Schedule a new trip for a bus, driver and optional helper"""
    return TripScheduler(db).create_trip(request)

@router.get("/", response_model=TripListResponse)
def list_trips(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Trips per page"),
    trip_status: Optional[TripStatus] = Query(None, alias="status", description="Filter by status"),
    route_id: Optional[int] = Query(None, description="Filter by route"),
    bus_id: Optional[int] = Query(None, description="Filter by bus"),
    driver_id: Optional[int] = Query(None, description="Filter by driver"),
    departure_date: Optional[date] = Query(None, description="Filter by service date"),
    db: Session = Depends(get_db),
    actor = Depends(get_current_actor)
):
    """Get trips with pagination and filters"""
    filters = TripFilters(
        status=trip_status,
        route_id=route_id,
        bus_id=bus_id,
        driver_id=driver_id,
        departure_date=departure_date
    )

    trips, total = TripScheduler(db).list_trips(filters, page=page, limit=limit)

    return TripListResponse(
        trips=[TripDetail.from_orm(trip) for trip in trips],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=TripScheduler.total_pages(total, limit)
        )
    )

@router.get("/{trip_id}", response_model=TripDetail)
def get_trip(
    trip_id: int,
    db: Session = Depends(get_db),
    actor = Depends(get_current_actor)
):
    """Get trip details by ID"""
    return TripScheduler(db).get_trip(trip_id)

@router.get("/{trip_id}/seats", response_model=SeatMap)
def get_trip_seats(
    trip_id: int,
    db: Session = Depends(get_db),
    actor = Depends(get_current_actor)
):
    """Get free and booked seats of a trip"""
    return TripScheduler(db).get_seat_map(trip_id)

@router.put("/{trip_id}", response_model=TripDetail)
def update_trip(
    trip_id: int,
    update: TripUpdateRequest,
    db: Session = Depends(get_db),
    actor = Depends(require_admin)
):
    """Update schedule, staff, stops or fare of a trip"""
    return TripScheduler(db).update_trip(trip_id, update)

@router.patch("/{trip_id}/status", response_model=TripDetail)
def update_trip_status(
    trip_id: int,
    status_update: TripStatusUpdate,
    db: Session = Depends(get_db),
    actor = Depends(require_admin)
):
    """Move a trip to a new status"""
    return TripScheduler(db).update_status(trip_id, status_update.status)

@router.delete("/{trip_id}")
def delete_trip(
    trip_id: int,
    db: Session = Depends(get_db),
    actor = Depends(require_admin)
):
    """Delete a trip that has no bookings"""
    trip_number = TripScheduler(db).delete_trip(trip_id)
    return {
        "message": "Trip deleted successfully",
        "trip_id": trip_id,
        "trip_number": trip_number
    }
