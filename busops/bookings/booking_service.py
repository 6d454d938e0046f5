import logging
import secrets
import string
import time
from typing import Callable, List, Optional, Tuple
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError

from busops.config import settings
from busops.constants import BookingStatus, PaymentStatus, PaymentMethod, TripStatus
from busops.exceptions import (
    NotFoundError, ValidationError, SeatConflictError, CapacityExceededError,
    InvalidStateError, ForbiddenError, ConflictError
)
from busops.lifecycle import ensure_booking_transition
from busops.models import Booking, Trip, SeatAllocation
from busops.auth.schemas import Actor
from busops.trips.service import lock_trip
from busops.bookings import refund_policy
from busops.bookings.schemas import (
    BookingCreateRequest, BookingSearchFilters, SeatAssignment
)

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase

class BookingService:
    """Allocates seats on trips and runs the booking lifecycle"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock

    def create_booking(self, request: BookingCreateRequest, user_id: int) -> Booking:
        """Reserve the requested seats on a trip for a user"""

        trip = lock_trip(self.db, request.trip_id)
        if not trip:
            raise NotFoundError("Trip not found")

        if trip.status != TripStatus.SCHEDULED.value:
            raise InvalidStateError("Trip is not available for booking")

        now = self.clock()
        if refund_policy.departure_moment(trip.departure_date, trip.departure_time) < now:
            raise InvalidStateError("Cannot book past trips")

        requested = self._validate_seats(request.seats, trip.bus.total_seats)

        if len(requested) > trip.available_seats:
            raise CapacityExceededError("Not enough seats available")

        held = self._held_seats(trip.id)
        conflicting = [seat for seat in requested if seat in held]
        if conflicting:
            logger.warning("Seat conflict on trip %s: %s", trip.trip_number, conflicting)
            raise SeatConflictError(conflicting)

        # Flat per-seat pricing
        total_amount = Decimal(trip.fare) * len(requested)

        booking_reference = self._generate_booking_reference()
        if self.db.query(Booking.id).filter(Booking.booking_reference == booking_reference).first():
            logger.warning("Booking reference collision: %s", booking_reference)
            raise ConflictError("Could not allocate a booking reference, please retry")

        booking = Booking(
            booking_reference=booking_reference,
            user_id=user_id,
            trip_id=trip.id,
            bus_id=trip.bus_id,
            route_id=trip.route_id,
            journey_date=trip.departure_date,
            seats=[seat.dict() for seat in request.seats],
            seat_count=len(requested),
            total_amount=total_amount,
            booking_status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=(request.payment_method or PaymentMethod.UPI).value,
            boarding_point=request.boarding_point.strip(),
            dropping_point=request.dropping_point.strip()
        )
        self.db.add(booking)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Could not allocate a booking reference, please retry")

        # Conditional decrement: a concurrent booking that drained the trip loses here
        reserved = self.db.query(Trip).filter(
            Trip.id == trip.id,
            Trip.status == TripStatus.SCHEDULED.value,
            Trip.available_seats >= len(requested)
        ).update({
            Trip.available_seats: Trip.available_seats - len(requested),
            Trip.total_bookings: Trip.total_bookings + len(requested)
        }, synchronize_session=False)
        if reserved == 0:
            self.db.rollback()
            raise CapacityExceededError("Not enough seats available")

        self.db.add_all([
            SeatAllocation(trip_id=trip.id, booking_id=booking.id, seat_number=seat)
            for seat in requested
        ])
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            taken = self._held_seats(request.trip_id)
            conflicting = [seat for seat in requested if seat in taken] or requested
            logger.warning("Seat conflict on write for trip %s: %s", request.trip_id, conflicting)
            raise SeatConflictError(conflicting)

        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            "Booking %s created: trip=%s seats=%s amount=%s",
            booking.booking_reference, booking.trip_id, requested, booking.total_amount
        )
        return self.get_booking(booking.id)

    def cancel_booking(self, booking_id: int, reason: Optional[str], actor: Actor) -> dict:
        """Cancel a booking, refund per policy and release its seats"""

        booking = self._lock_booking(booking_id)
        self._ensure_can_act(booking, actor)

        if booking.booking_status == BookingStatus.CANCELLED.value:
            raise InvalidStateError("Booking is already cancelled")
        if booking.booking_status == BookingStatus.COMPLETED.value:
            raise InvalidStateError("Cannot cancel completed booking")
        ensure_booking_transition(booking.booking_status, BookingStatus.CANCELLED)

        outcome = self._cancel(booking, reason, actor)
        self.db.commit()

        logger.info(
            "Booking %s cancelled by %s: refund=%s (%s%%)",
            booking.booking_reference, actor.id, outcome["refund_amount"], outcome["refund_percentage"]
        )
        outcome["booking"] = self.get_booking(booking_id)
        return outcome

    def update_booking_status(
        self,
        booking_id: int,
        new_status: BookingStatus,
        actor: Actor,
        reason: Optional[str] = None
    ) -> Booking:
        """Move a booking through its lifecycle"""

        booking = self._lock_booking(booking_id)
        self._ensure_can_act(booking, actor)

        # Owners may only withdraw; confirming and completing are operator actions
        if new_status != BookingStatus.CANCELLED and not actor.is_admin:
            raise ForbiddenError("Access denied")

        previous = booking.booking_status
        ensure_booking_transition(previous, new_status)

        if new_status == BookingStatus.CANCELLED:
            self._cancel(booking, reason, actor)
        elif new_status == BookingStatus.CONFIRMED:
            booking.booking_status = new_status.value
            booking.confirmed_at = self.clock()
        elif new_status == BookingStatus.COMPLETED:
            booking.booking_status = new_status.value
            booking.completed_at = self.clock()

        self.db.commit()
        logger.info("Booking %s status %s -> %s", booking.booking_reference, previous, new_status.value)
        return self.get_booking(booking_id)

    def get_booking(self, booking_id: int, actor: Optional[Actor] = None) -> Booking:
        """Get booking by ID with user, bus, route and trip attached"""
        booking = self._with_display_fields().filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking not found")
        if actor is not None:
            self._ensure_can_act(booking, actor)
        return booking

    def get_booking_by_reference(self, booking_reference: str, actor: Actor) -> Booking:
        """Get booking by its reference (case-insensitive)"""
        booking = self._with_display_fields().filter(
            Booking.booking_reference == booking_reference.strip().upper()
        ).first()
        if not booking:
            raise NotFoundError("Booking not found")
        self._ensure_can_act(booking, actor)
        return booking

    def list_bookings(
        self,
        actor: Actor,
        filters: Optional[BookingSearchFilters] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Booking], int]:
        """List bookings, newest first; non-admin actors only see their own"""
        query = self._with_display_fields()

        if not actor.is_admin:
            query = query.filter(Booking.user_id == actor.id)

        if filters:
            if filters.user_id:
                query = query.filter(Booking.user_id == filters.user_id)
            if filters.trip_id:
                query = query.filter(Booking.trip_id == filters.trip_id)
            if filters.bus_id:
                query = query.filter(Booking.bus_id == filters.bus_id)
            if filters.route_id:
                query = query.filter(Booking.route_id == filters.route_id)
            if filters.booking_status:
                query = query.filter(Booking.booking_status == filters.booking_status.value)
            if filters.payment_status:
                query = query.filter(Booking.payment_status == filters.payment_status.value)
            if filters.date_from:
                query = query.filter(Booking.journey_date >= filters.date_from)
            if filters.date_to:
                query = query.filter(Booking.journey_date <= filters.date_to)
            if filters.booking_reference:
                query = query.filter(Booking.booking_reference.ilike(f"%{filters.booking_reference}%"))

        total = query.count()
        bookings = query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(
            (page - 1) * limit
        ).limit(limit).all()
        return bookings, total

    def _cancel(self, booking: Booking, reason: Optional[str], actor: Actor) -> dict:
        """Refund and release seats; caller commits"""

        trip = lock_trip(self.db, booking.trip_id)
        now = self.clock()
        hours = refund_policy.hours_until_departure(trip.departure_date, trip.departure_time, now)
        fraction, amount = refund_policy.refund_amount(booking.total_amount, hours)

        booking.booking_status = BookingStatus.CANCELLED.value
        booking.payment_status = PaymentStatus.REFUNDED.value
        booking.cancellation_reason = reason
        booking.cancelled_at = now
        booking.cancelled_by = actor.id
        booking.refund_amount = amount
        booking.refund_percentage = fraction * 100

        released = self.db.query(SeatAllocation).filter(
            SeatAllocation.booking_id == booking.id
        ).delete(synchronize_session=False)
        self.db.expire(booking, ["allocations"])

        self.db.query(Trip).filter(Trip.id == trip.id).update({
            Trip.available_seats: Trip.available_seats + released,
            Trip.total_bookings: Trip.total_bookings - released
        }, synchronize_session=False)
        self.db.expire(trip)

        return {
            "refund_amount": amount,
            "refund_percentage": fraction * 100,
            "hours_until_departure": round(hours)
        }

    def _lock_booking(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).with_for_update().first()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    @staticmethod
    def _ensure_can_act(booking: Booking, actor: Actor):
        if booking.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Access denied")

    def _with_display_fields(self):
        return self.db.query(Booking).options(
            joinedload(Booking.user),
            joinedload(Booking.bus),
            joinedload(Booking.route),
            joinedload(Booking.trip)
        )

    def _held_seats(self, trip_id: int) -> set:
        """Seat numbers held on the trip by any booking not yet cancelled"""
        return {
            seat for (seat,) in self.db.query(SeatAllocation.seat_number).filter(
                SeatAllocation.trip_id == trip_id
            ).all()
        }

    @staticmethod
    def _validate_seats(seats: List[SeatAssignment], total_seats: int) -> List[int]:
        if not seats:
            raise ValidationError("At least one seat is required")
        if len(seats) > settings.MAX_SEATS_PER_BOOKING:
            raise ValidationError(f"Maximum {settings.MAX_SEATS_PER_BOOKING} seats per booking")

        requested = [seat.seat_number for seat in seats]
        invalid = [n for n in requested if n < 1 or n > total_seats]
        if invalid:
            raise ValidationError(
                f"Invalid seat numbers provided: {', '.join(str(n) for n in invalid)} "
                f"(bus has {total_seats} seats)"
            )
        if len(set(requested)) != len(requested):
            raise ValidationError("Duplicate seat numbers in booking request")
        return requested

    @staticmethod
    def _generate_booking_reference() -> str:
        """Human-readable reference from the clock plus randomness"""
        millis = int(time.time() * 1000)
        stamp = ""
        while millis:
            millis, remainder = divmod(millis, 36)
            stamp = _BASE36[remainder] + stamp
        suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
        return f"{settings.BOOKING_REFERENCE_PREFIX}{stamp}{suffix}".upper()
