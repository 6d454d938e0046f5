from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from busops.constants import BookingStatus, PaymentStatus, TripStatus, SEAT_HOLDING_BOOKING_STATUSES
from busops.exceptions import (
    NotFoundError, ValidationError, SeatConflictError, CapacityExceededError,
    InvalidStateError, ForbiddenError
)
from busops.models import Booking, SeatAllocation, TripResourceClaim
from busops import lifecycle
from busops.auth.schemas import Actor
from busops.bookings.refund_policy import departure_moment
from busops.bookings.schemas import BookingSearchFilters


def departure_of(trip):
    return departure_moment(trip.departure_date, trip.departure_time)


def assert_inventory_conserved(db, trip):
    db.expire_all()
    db.refresh(trip)
    held = sum(
        booking.seat_count
        for booking in db.query(Booking).filter(Booking.trip_id == trip.id)
        if BookingStatus(booking.booking_status) in SEAT_HOLDING_BOOKING_STATUSES
    )
    assert trip.available_seats + held == trip.bus.total_seats
    assert trip.total_bookings == held
    assert db.query(SeatAllocation).filter(SeatAllocation.trip_id == trip.id).count() == held


@pytest.fixture
def trip(create_trip, create_bus):
    return create_trip(bus_id=create_bus(total_seats=40).id, fare=Decimal("500"))


class TestCreateBooking:
    def test_books_seats_at_flat_fare(self, db, trip, book, customer):
        booking = book(trip, 5, 6)

        assert booking.total_amount == Decimal("1000")
        assert booking.booking_status == BookingStatus.PENDING.value
        assert booking.payment_status == PaymentStatus.PENDING.value
        assert booking.seat_count == 2
        assert booking.user_id == customer.id
        assert booking.journey_date == trip.departure_date
        assert booking.booking_reference.startswith("BE")
        assert [s["seat_number"] for s in booking.seats] == [5, 6]

        db.refresh(trip)
        assert trip.available_seats == 38
        assert trip.total_bookings == 2

    def test_held_seat_is_rejected(self, db, trip, book, create_user):
        book(trip, 5, 6)

        with pytest.raises(SeatConflictError) as exc_info:
            book(trip, 5, user=create_user())
        assert exc_info.value.seat_numbers == [5]
        assert "5" in exc_info.value.message
        assert_inventory_conserved(db, trip)

    def test_conflict_names_every_taken_seat(self, trip, book):
        book(trip, 5, 6, 7)
        with pytest.raises(SeatConflictError) as exc_info:
            book(trip, 8, 7, 5)
        assert exc_info.value.seat_numbers == [5, 7]

    def test_more_seats_than_available(self, create_trip, create_bus, book):
        small = create_trip(bus_id=create_bus(total_seats=8).id)
        book(small, 1, 2, 3, 4, 5)

        with pytest.raises(CapacityExceededError, match="Not enough seats"):
            book(small, 4, 5, 6, 7, 8)

    @pytest.mark.parametrize("numbers, message", [
        ((0,), "Invalid seat numbers"),
        ((41,), "Invalid seat numbers"),
        ((3, 3), "Duplicate seat numbers"),
        ((), "At least one seat"),
        (tuple(range(1, 12)), "Maximum 10 seats"),
    ])
    def test_invalid_seat_requests(self, trip, book, numbers, message):
        with pytest.raises(ValidationError, match=message):
            book(trip, *numbers)

    def test_unknown_trip(self, book):
        class Missing:
            id = 9999

        with pytest.raises(NotFoundError, match="Trip not found"):
            book(Missing, 1)

    @pytest.mark.parametrize("status", [TripStatus.CANCELLED, TripStatus.DELAYED])
    def test_trip_must_be_scheduled(self, scheduler, trip, book, status):
        scheduler.update_status(trip.id, status)
        with pytest.raises(InvalidStateError, match="not available for booking"):
            book(trip, 1)

    def test_departed_trip_cannot_be_booked(self, trip, book, clock):
        clock.now = departure_of(trip) + timedelta(minutes=1)
        with pytest.raises(InvalidStateError, match="Cannot book past trips"):
            book(trip, 1)

    def test_references_are_unique(self, trip, book):
        references = {book(trip, n).booking_reference for n in range(1, 6)}
        assert len(references) == 5


class TestCancelBooking:
    def test_early_cancellation_refunds_in_full(self, db, trip, book, booking_service, customer_actor, clock):
        booking = book(trip, 5, 6)
        clock.now = departure_of(trip) - timedelta(hours=30)

        outcome = booking_service.cancel_booking(booking.id, "Change of plans", customer_actor)

        assert outcome["refund_amount"] == Decimal("1000.00")
        assert outcome["refund_percentage"] == Decimal("100")
        assert outcome["hours_until_departure"] == 30
        cancelled = outcome["booking"]
        assert cancelled.booking_status == BookingStatus.CANCELLED.value
        assert cancelled.payment_status == PaymentStatus.REFUNDED.value
        assert cancelled.cancellation_reason == "Change of plans"
        assert cancelled.cancelled_at == clock.now

        db.refresh(trip)
        assert trip.available_seats == 40
        assert trip.total_bookings == 0

    def test_late_cancellation_refunds_nothing(self, trip, book, booking_service, customer_actor, clock):
        booking = book(trip, 1, 2, 3)
        clock.now = departure_of(trip) - timedelta(hours=1)

        outcome = booking_service.cancel_booking(booking.id, None, customer_actor)

        assert outcome["refund_amount"] == Decimal("0.00")
        assert outcome["refund_percentage"] == Decimal("0")

    def test_half_refund_window(self, trip, book, booking_service, customer_actor, clock):
        booking = book(trip, 1)
        clock.now = departure_of(trip) - timedelta(hours=24)

        outcome = booking_service.cancel_booking(booking.id, None, customer_actor)
        assert outcome["refund_amount"] == Decimal("250.00")

    def test_released_seats_can_be_booked_again(self, db, trip, book, booking_service, customer_actor, create_user):
        booking = book(trip, 5)
        booking_service.cancel_booking(booking.id, None, customer_actor)

        rebooked = book(trip, 5, user=create_user())
        assert rebooked.booking_status == BookingStatus.PENDING.value
        assert_inventory_conserved(db, trip)

    @pytest.mark.parametrize("terminal", ["cancelled", "completed"])
    def test_terminal_bookings_cannot_be_cancelled(
        self, db, trip, book, booking_service, customer_actor, admin_actor, terminal
    ):
        booking = book(trip, 1, 2)
        if terminal == "cancelled":
            booking_service.cancel_booking(booking.id, None, customer_actor)
        else:
            booking_service.update_booking_status(booking.id, BookingStatus.CONFIRMED, admin_actor)
            booking_service.update_booking_status(booking.id, BookingStatus.COMPLETED, admin_actor)
        db.refresh(trip)
        seats_before = trip.available_seats

        with pytest.raises(InvalidStateError):
            booking_service.cancel_booking(booking.id, "again", customer_actor)

        db.expire_all()
        assert db.get(Booking, booking.id).booking_status == terminal
        assert trip.available_seats == seats_before
        assert_inventory_conserved(db, trip)

    def test_cancellation_follows_the_transition_table(
        self, db, trip, book, booking_service, customer_actor, monkeypatch
    ):
        booking = book(trip, 1)
        monkeypatch.setitem(lifecycle.BOOKING_TRANSITIONS, BookingStatus.PENDING, frozenset({BookingStatus.CONFIRMED}))

        with pytest.raises(InvalidStateError, match="from pending to cancelled"):
            booking_service.cancel_booking(booking.id, None, customer_actor)

        db.expire_all()
        assert db.get(Booking, booking.id).booking_status == BookingStatus.PENDING.value
        assert_inventory_conserved(db, trip)

    def test_other_customers_are_forbidden(self, trip, book, booking_service, create_user):
        booking = book(trip, 1)
        stranger = create_user()

        with pytest.raises(ForbiddenError):
            booking_service.cancel_booking(booking.id, None, Actor(id=stranger.id, role=stranger.role))

    def test_admin_may_cancel_any_booking(self, trip, book, booking_service, admin_actor):
        booking = book(trip, 1)
        outcome = booking_service.cancel_booking(booking.id, "Operator cancelled", admin_actor)
        assert outcome["booking"].booking_status == BookingStatus.CANCELLED.value

    def test_unknown_booking(self, booking_service, customer_actor):
        with pytest.raises(NotFoundError):
            booking_service.cancel_booking(9999, None, customer_actor)


class TestBookingStatus:
    def test_admin_confirms_then_completes(self, trip, book, booking_service, admin_actor, clock):
        booking = book(trip, 1)

        confirmed = booking_service.update_booking_status(booking.id, BookingStatus.CONFIRMED, admin_actor)
        assert confirmed.booking_status == BookingStatus.CONFIRMED.value
        assert confirmed.confirmed_at == clock.now

        completed = booking_service.update_booking_status(booking.id, BookingStatus.COMPLETED, admin_actor)
        assert completed.booking_status == BookingStatus.COMPLETED.value

    def test_completed_booking_keeps_its_seats(self, db, trip, book, booking_service, admin_actor, create_user):
        booking = book(trip, 3, 4)
        booking_service.update_booking_status(booking.id, BookingStatus.CONFIRMED, admin_actor)
        booking_service.update_booking_status(booking.id, BookingStatus.COMPLETED, admin_actor)

        db.refresh(trip)
        assert trip.available_seats == 38
        assert db.query(SeatAllocation).filter(SeatAllocation.booking_id == booking.id).count() == 2
        with pytest.raises(SeatConflictError):
            book(trip, 3, user=create_user())
        assert_inventory_conserved(db, trip)

    def test_owner_cannot_confirm(self, trip, book, booking_service, customer_actor):
        booking = book(trip, 1)
        with pytest.raises(ForbiddenError):
            booking_service.update_booking_status(booking.id, BookingStatus.CONFIRMED, customer_actor)

    def test_pending_cannot_skip_to_completed(self, trip, book, booking_service, admin_actor):
        booking = book(trip, 1)
        with pytest.raises(InvalidStateError):
            booking_service.update_booking_status(booking.id, BookingStatus.COMPLETED, admin_actor)

    def test_cancelling_through_status_releases_seats(
        self, db, trip, book, booking_service, customer_actor, clock
    ):
        booking = book(trip, 7, 8)
        clock.now = departure_of(trip) - timedelta(hours=5)

        cancelled = booking_service.update_booking_status(
            booking.id, BookingStatus.CANCELLED, customer_actor, reason="Sick"
        )

        assert cancelled.refund_amount == Decimal("500.00")
        assert cancelled.cancellation_reason == "Sick"
        assert db.query(SeatAllocation).filter(SeatAllocation.booking_id == booking.id).count() == 0
        assert_inventory_conserved(db, trip)


class TestReads:
    def test_owners_only_list_their_own(self, trip, book, booking_service, customer_actor, admin_actor, create_user):
        mine = book(trip, 1)
        book(trip, 2, user=create_user())

        bookings, total = booking_service.list_bookings(customer_actor)
        assert total == 1
        assert bookings[0].id == mine.id

        _, total = booking_service.list_bookings(admin_actor)
        assert total == 2

    def test_list_filters_by_status(self, trip, book, booking_service, admin_actor, customer_actor):
        first = book(trip, 1)
        book(trip, 2)
        booking_service.cancel_booking(first.id, None, customer_actor)

        bookings, total = booking_service.list_bookings(
            admin_actor, BookingSearchFilters(booking_status=BookingStatus.CANCELLED)
        )
        assert total == 1
        assert bookings[0].id == first.id

    def test_lookup_by_reference_ignores_case(self, trip, book, booking_service, customer_actor):
        booking = book(trip, 1)
        found = booking_service.get_booking_by_reference(booking.booking_reference.lower(), customer_actor)
        assert found.id == booking.id
        assert found.trip.trip_number == trip.trip_number

    def test_strangers_cannot_read(self, trip, book, booking_service, create_user):
        booking = book(trip, 1)
        stranger = create_user()
        with pytest.raises(ForbiddenError):
            booking_service.get_booking(booking.id, Actor(id=stranger.id, role=stranger.role))


class TestStorageGuards:
    def test_seat_cannot_be_allocated_twice(self, db, trip, book):
        booking = book(trip, 5)
        db.add(SeatAllocation(trip_id=trip.id, booking_id=booking.id, seat_number=5))
        with pytest.raises(IntegrityError):
            db.flush()
        db.rollback()

    def test_resource_cannot_be_claimed_twice(self, db, trip):
        db.add(TripResourceClaim(
            trip_id=trip.id, resource_type="bus", resource_id=trip.bus_id, service_date=trip.departure_date
        ))
        with pytest.raises(IntegrityError):
            db.flush()
        db.rollback()

    def test_inventory_survives_a_mixed_sequence(self, db, trip, book, booking_service, customer_actor, admin_actor):
        kept = book(trip, 1, 2, 3)
        dropped = book(trip, 4, 5)
        book(trip, 6)
        booking_service.update_booking_status(kept.id, BookingStatus.CONFIRMED, admin_actor)
        booking_service.cancel_booking(dropped.id, None, customer_actor)
        book(trip, 4, 5, 7)

        assert_inventory_conserved(db, trip)
        seats = [n for (n,) in db.query(SeatAllocation.seat_number).filter(SeatAllocation.trip_id == trip.id)]
        assert sorted(seats) == [1, 2, 3, 4, 5, 6, 7]
