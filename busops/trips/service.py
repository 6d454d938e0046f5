import logging
import math
import re
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime, date

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError

from busops.config import settings
from busops.constants import (
    BusStatus, TripStatus, EmployeeSubrole, ClaimedResource,
    ACTIVE_TRIP_STATUSES, TIME_OF_DAY_PATTERN
)
from busops.exceptions import (
    NotFoundError, ValidationError, ResourceConflictError, InvalidStateError, ConflictError
)
from busops.lifecycle import ensure_trip_transition
from busops.models import Trip, TripResourceClaim, Booking, SeatAllocation
from busops.registry.service import ResourceRegistry
from busops.auth.service import UserService
from busops.trips.schemas import (
    TripCreateRequest, TripUpdateRequest, TripFilters, SeatMap, StopPoint
)

logger = logging.getLogger(__name__)

_TIME_OF_DAY = re.compile(TIME_OF_DAY_PATTERN)

def lock_trip(db: Session, trip_id: int) -> Optional[Trip]:
    """Load a trip holding a row lock for the rest of the transaction.

    SQLite has no row locks; there the unique constraints on claims and seat
    allocations are what keep concurrent writers apart.
    """
    return db.query(Trip).filter(Trip.id == trip_id).with_for_update().first()

class TripScheduler:
    """Schedules trips and keeps buses, drivers and helpers to one active trip per day"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock

    def create_trip(self, request: TripCreateRequest) -> Trip:
        """Schedule a trip after validating references and resource availability"""

        bus = ResourceRegistry.get_bus(self.db, request.bus_id)
        if not bus:
            raise NotFoundError("Bus not found")
        if bus.status != BusStatus.ACTIVE.value:
            raise ValidationError(f"Bus {bus.bus_number} is not active")

        if not ResourceRegistry.get_route(self.db, request.route_id):
            raise NotFoundError("Route not found")

        self._validate_staff(request.driver_id, EmployeeSubrole.DRIVER)
        if request.helper_id is not None:
            self._validate_staff(request.helper_id, EmployeeSubrole.HELPER)

        self._validate_schedule(request.departure_time, request.arrival_time, request.departure_date)

        resources = self._resources(request.bus_id, request.driver_id, request.helper_id)
        self._ensure_resources_free(resources, request.departure_date)

        trip = Trip(
            route_id=request.route_id,
            bus_id=request.bus_id,
            driver_id=request.driver_id,
            helper_id=request.helper_id,
            departure_time=request.departure_time,
            arrival_time=request.arrival_time,
            departure_date=request.departure_date,
            pickup_points=self._dump_points(request.pickup_points),
            drop_points=self._dump_points(request.drop_points),
            status=TripStatus.SCHEDULED.value,
            total_bookings=0,
            available_seats=bus.total_seats,
            fare=request.fare
        )
        self.db.add(trip)
        self.db.flush()

        # Storage-assigned key, so numbers never repeat under concurrent creation
        trip.trip_number = f"{settings.TRIP_NUMBER_PREFIX}-{trip.id:03d}"

        self._claim_resources(trip, resources)
        self.db.commit()
        self.db.refresh(trip)

        logger.info(
            "Trip %s scheduled: bus=%s driver=%s helper=%s date=%s",
            trip.trip_number, trip.bus_id, trip.driver_id, trip.helper_id, trip.departure_date
        )
        return trip

    def update_trip(self, trip_id: int, update: TripUpdateRequest) -> Trip:
        """Update schedule, staff, stops or fare of an active trip"""

        trip = lock_trip(self.db, trip_id)
        if not trip:
            raise NotFoundError("Trip not found")

        if trip.status in (TripStatus.COMPLETED.value, TripStatus.CANCELLED.value):
            raise InvalidStateError(f"Cannot update a {trip.status} trip")

        update_data = update.dict(exclude_unset=True)

        if update_data.get("driver_id") is not None:
            self._validate_staff(update_data["driver_id"], EmployeeSubrole.DRIVER)
        elif "driver_id" in update_data:
            raise ValidationError("A trip must have a driver")
        if "fare" in update_data and update_data["fare"] is None:
            raise ValidationError("Fare is required")
        if update_data.get("helper_id") is not None:
            self._validate_staff(update_data["helper_id"], EmployeeSubrole.HELPER)

        departure_time = update_data.get("departure_time", trip.departure_time)
        arrival_time = update_data.get("arrival_time", trip.arrival_time)
        departure_date = update_data.get("departure_date") or trip.departure_date
        if any(k in update_data for k in ("departure_time", "arrival_time", "departure_date")):
            self._validate_schedule(departure_time, arrival_time, departure_date)

        reassigning = any(k in update_data for k in ("driver_id", "helper_id", "departure_date"))
        holds_claims = trip.status in {s.value for s in ACTIVE_TRIP_STATUSES}

        for field in ("driver_id", "helper_id", "departure_time", "arrival_time", "fare"):
            if field in update_data:
                setattr(trip, field, update_data[field])
        if "departure_date" in update_data and update_data["departure_date"]:
            trip.departure_date = update_data["departure_date"]
        if update.pickup_points is not None:
            trip.pickup_points = self._dump_points(update.pickup_points)
        if update.drop_points is not None:
            trip.drop_points = self._dump_points(update.drop_points)

        if reassigning and holds_claims:
            resources = self._resources(trip.bus_id, trip.driver_id, trip.helper_id)
            try:
                self._ensure_resources_free(resources, trip.departure_date, exclude_trip_id=trip.id)
            except ResourceConflictError:
                self.db.rollback()
                raise
            self._release_claims(trip)
            self._claim_resources(trip, resources)

        if "departure_date" in update_data:
            # Bookings carry the journey date for display
            self.db.query(Booking).filter(Booking.trip_id == trip.id).update(
                {Booking.journey_date: trip.departure_date}, synchronize_session=False
            )

        self.db.commit()
        self.db.refresh(trip)
        logger.info("Trip %s updated: %s", trip.trip_number, sorted(update_data))
        return trip

    def update_status(self, trip_id: int, new_status: TripStatus) -> Trip:
        """Move a trip through its lifecycle, acquiring or releasing its resources"""

        trip = lock_trip(self.db, trip_id)
        if not trip:
            raise NotFoundError("Trip not found")

        previous = trip.status
        ensure_trip_transition(previous, new_status)

        was_active = TripStatus(previous) in ACTIVE_TRIP_STATUSES
        now_active = new_status in ACTIVE_TRIP_STATUSES

        if now_active and not was_active:
            resources = self._resources(trip.bus_id, trip.driver_id, trip.helper_id)
            self._ensure_resources_free(resources, trip.departure_date, exclude_trip_id=trip.id)
            trip.status = new_status.value
            self._claim_resources(trip, resources)
        else:
            trip.status = new_status.value
            if was_active and not now_active:
                self._release_claims(trip)

        self.db.commit()
        self.db.refresh(trip)
        logger.info("Trip %s status %s -> %s", trip.trip_number, previous, trip.status)
        return trip

    def delete_trip(self, trip_id: int) -> str:
        """Delete a trip that has never been booked; returns its trip number"""

        trip = lock_trip(self.db, trip_id)
        if not trip:
            raise NotFoundError("Trip not found")

        has_bookings = self.db.query(Booking.id).filter(Booking.trip_id == trip_id).first() is not None
        if has_bookings:
            raise ConflictError("Cannot delete trip with existing bookings")

        trip_number = trip.trip_number
        self.db.delete(trip)
        self.db.commit()
        logger.info("Trip %s deleted", trip_number)
        return trip_number

    def get_trip(self, trip_id: int) -> Trip:
        trip = self.db.query(Trip).options(
            joinedload(Trip.route),
            joinedload(Trip.bus),
            joinedload(Trip.driver),
            joinedload(Trip.helper)
        ).filter(Trip.id == trip_id).first()
        if not trip:
            raise NotFoundError("Trip not found")
        return trip

    def list_trips(
        self,
        filters: Optional[TripFilters] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Trip], int]:
        """Get trips ordered by departure with optional filters"""
        query = self.db.query(Trip).options(
            joinedload(Trip.route),
            joinedload(Trip.bus),
            joinedload(Trip.driver),
            joinedload(Trip.helper)
        )

        if filters:
            if filters.status:
                query = query.filter(Trip.status == filters.status.value)
            if filters.route_id:
                query = query.filter(Trip.route_id == filters.route_id)
            if filters.bus_id:
                query = query.filter(Trip.bus_id == filters.bus_id)
            if filters.driver_id:
                query = query.filter(Trip.driver_id == filters.driver_id)
            if filters.departure_date:
                query = query.filter(Trip.departure_date == filters.departure_date)

        total = query.count()
        trips = query.order_by(
            Trip.departure_date, Trip.departure_time
        ).offset((page - 1) * limit).limit(limit).all()

        return trips, total

    def get_seat_map(self, trip_id: int) -> SeatMap:
        """Free and held seat numbers of a trip"""
        trip = self.get_trip(trip_id)
        total_seats = trip.bus.total_seats

        booked = sorted(
            seat for (seat,) in self.db.query(SeatAllocation.seat_number).filter(
                SeatAllocation.trip_id == trip_id
            ).all()
        )
        booked_set = set(booked)

        return SeatMap(
            trip_id=trip.id,
            total_seats=total_seats,
            available_seats=[n for n in range(1, total_seats + 1) if n not in booked_set],
            booked_seats=booked,
            bus_type=trip.bus.bus_type,
            occupancy_percentage=round(len(booked) / total_seats * 100) if total_seats else 0
        )

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    def _validate_staff(self, user_id: int, subrole: EmployeeSubrole):
        label = subrole.value.lower()
        user = ResourceRegistry.get_user(self.db, user_id)
        if not user:
            raise NotFoundError(f"{label.title()} not found")
        if not UserService.has_subrole(user, subrole):
            raise ValidationError(f"Invalid {label}")

    def _validate_schedule(self, departure_time: str, arrival_time: str, departure_date: date):
        for label, value in (("departure", departure_time), ("arrival", arrival_time)):
            if not value or not _TIME_OF_DAY.match(value):
                raise ValidationError(f"Please enter a valid {label} time format (HH:MM)")
        if departure_date < self.clock().date():
            raise ValidationError("Departure date cannot be in the past")

    @staticmethod
    def _resources(bus_id: int, driver_id: int, helper_id: Optional[int]) -> Dict[ClaimedResource, int]:
        resources = {ClaimedResource.BUS: bus_id, ClaimedResource.DRIVER: driver_id}
        if helper_id is not None:
            resources[ClaimedResource.HELPER] = helper_id
        return resources

    def _ensure_resources_free(
        self,
        resources: Dict[ClaimedResource, int],
        service_date: date,
        exclude_trip_id: Optional[int] = None
    ):
        """Reject the schedule if any resource already serves an active trip that day"""
        columns = {
            ClaimedResource.BUS: Trip.bus_id,
            ClaimedResource.DRIVER: Trip.driver_id,
            ClaimedResource.HELPER: Trip.helper_id,
        }
        for resource, resource_id in resources.items():
            query = self.db.query(Trip.id).filter(
                columns[resource] == resource_id,
                Trip.departure_date == service_date,
                Trip.status.in_([s.value for s in ACTIVE_TRIP_STATUSES])
            )
            if exclude_trip_id is not None:
                query = query.filter(Trip.id != exclude_trip_id)
            if query.first() is not None:
                logger.warning(
                    "Resource conflict: %s %s already assigned on %s",
                    resource.value, resource_id, service_date
                )
                raise ResourceConflictError(resource.value)

    def _claim_resources(self, trip: Trip, resources: Dict[ClaimedResource, int]):
        """Record the claims one by one so a violated constraint names its resource"""
        for resource, resource_id in resources.items():
            self.db.add(TripResourceClaim(
                trip_id=trip.id,
                resource_type=resource.value,
                resource_id=resource_id,
                service_date=trip.departure_date
            ))
            try:
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    "Resource conflict on write: %s %s on %s",
                    resource.value, resource_id, trip.departure_date
                )
                raise ResourceConflictError(resource.value)

    def _release_claims(self, trip: Trip):
        self.db.query(TripResourceClaim).filter(
            TripResourceClaim.trip_id == trip.id
        ).delete(synchronize_session=False)
        self.db.expire(trip, ["claims"])
        self.db.flush()

    @staticmethod
    def _dump_points(points: List[StopPoint]) -> List[dict]:
        return [point.dict(exclude_none=True) for point in points]
