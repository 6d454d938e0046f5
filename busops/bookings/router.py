from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from busops.database import get_db
from busops.auth.dependencies import get_current_actor
from busops.auth.schemas import Actor
from busops.constants import BookingStatus, PaymentStatus
from busops.bookings.schemas import (
    BookingCreateRequest, BookingCancellationRequest, BookingStatusUpdate,
    BookingSearchFilters, Booking, BookingListResponse, CancellationResult
)
from busops.bookings.booking_service import BookingService
from busops.bookings import refund_policy

router = APIRouter()

@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Reserve seats on a scheduled trip"""
    return BookingService(db).create_booking(request, user_id=actor.id)

@router.get("/", response_model=BookingListResponse)
def list_bookings(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Bookings per page"),
    booking_status: Optional[BookingStatus] = Query(None, description="Filter by booking status"),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    user_id: Optional[int] = Query(None, description="Filter by user"),
    trip_id: Optional[int] = Query(None, description="Filter by trip"),
    bus_id: Optional[int] = Query(None, description="Filter by bus"),
    route_id: Optional[int] = Query(None, description="Filter by route"),
    date_from: Optional[date] = Query(None, description="Journey date from"),
    date_to: Optional[date] = Query(None, description="Journey date to"),
    search: Optional[str] = Query(None, description="Search by booking reference"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """List bookings visible to the caller"""
    filters = BookingSearchFilters(
        user_id=user_id,
        trip_id=trip_id,
        bus_id=bus_id,
        route_id=route_id,
        booking_status=booking_status,
        payment_status=payment_status,
        date_from=date_from,
        date_to=date_to,
        booking_reference=search
    )

    bookings, total = BookingService(db).list_bookings(actor, filters, page=page, limit=limit)
    return BookingListResponse(
        bookings=[Booking.from_orm(booking) for booking in bookings],
        total=total,
        page=page,
        limit=limit
    )

@router.get("/refund-policy")
def get_refund_policy():
    """Refund tiers applied on cancellation"""
    return {"tiers": refund_policy.describe_tiers()}

@router.get("/reference/{booking_reference}", response_model=Booking)
def get_booking_by_reference(
    booking_reference: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Get booking by reference number"""
    return BookingService(db).get_booking_by_reference(booking_reference, actor)

@router.get("/{booking_id}", response_model=Booking)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Get booking details by ID"""
    return BookingService(db).get_booking(booking_id, actor)

@router.post("/{booking_id}/cancel", response_model=CancellationResult)
def cancel_booking(
    booking_id: int,
    cancellation: BookingCancellationRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Cancel a booking and compute its refund"""
    outcome = BookingService(db).cancel_booking(booking_id, cancellation.reason, actor)
    return CancellationResult(
        booking=Booking.from_orm(outcome["booking"]),
        refund_amount=outcome["refund_amount"],
        refund_percentage=outcome["refund_percentage"],
        hours_until_departure=outcome["hours_until_departure"]
    )

@router.patch("/{booking_id}/status", response_model=Booking)
def update_booking_status(
    booking_id: int,
    status_update: BookingStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Move a booking to a new status"""
    return BookingService(db).update_booking_status(
        booking_id, status_update.status, actor, reason=status_update.reason
    )
