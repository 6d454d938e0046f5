from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional
from datetime import date

from busops.models import Bus, Route, User, Trip, SeatAllocation
from busops.constants import ACTIVE_TRIP_STATUSES
from busops.registry.schemas import BusSeatUsage

class ResourceRegistry:
    """Read-only lookups of buses, routes and staff used by the scheduler"""

    @staticmethod
    def get_bus(db: Session, bus_id: int) -> Optional[Bus]:
        """Get bus by ID"""
        return db.query(Bus).filter(Bus.id == bus_id).first()

    @staticmethod
    def get_route(db: Session, route_id: int) -> Optional[Route]:
        """Get route by ID"""
        return db.query(Route).filter(Route.id == route_id).first()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID (role and subrole are what callers look at)"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def bus_seat_usage(db: Session, bus_id: int, service_date: date) -> Optional[BusSeatUsage]:
        """Seats held on a bus for a date, across its active trips.

        There is no bus-level counter to drift; the figure is the count of
        live seat allocations on the bus's active trips that day.
        """
        bus = ResourceRegistry.get_bus(db, bus_id)
        if not bus:
            return None

        trip_ids = [
            trip_id for (trip_id,) in db.query(Trip.id).filter(
                Trip.bus_id == bus_id,
                Trip.departure_date == service_date,
                Trip.status.in_([s.value for s in ACTIVE_TRIP_STATUSES])
            ).all()
        ]

        seats_in_use = 0
        if trip_ids:
            seats_in_use = db.query(func.count(SeatAllocation.id)).filter(
                SeatAllocation.trip_id.in_(trip_ids)
            ).scalar() or 0

        return BusSeatUsage(
            bus_id=bus.id,
            service_date=service_date,
            total_seats=bus.total_seats,
            seats_in_use=seats_in_use,
            available_seats=max(bus.total_seats - seats_in_use, 0),
            trip_ids=trip_ids
        )
