from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, JSON, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from busops.database import Base

# SQLite only autoincrements INTEGER primary keys
Identifier = BigInteger().with_variant(Integer, "sqlite")

# ================================
# Users (accounts are managed elsewhere; read for role/subrole checks)
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(Identifier, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(20))
    role = Column(String(50), nullable=False, index=True)
    subrole = Column(String(50))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    buses = relationship("Bus", back_populates="operator")
    bookings = relationship("Booking", back_populates="user", foreign_keys="Booking.user_id")

# ================================
# Fleet & Routes
# ================================
class Bus(Base):
    __tablename__ = "buses"

    id = Column(Identifier, primary_key=True, index=True)
    bus_number = Column(String(50), unique=True, nullable=False, index=True)
    bus_name = Column(String(100), nullable=False)
    operator_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    bus_type = Column(String(50), nullable=False)
    total_seats = Column(Integer, nullable=False)
    status = Column(String(20), default="active", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    operator = relationship("User", back_populates="buses")
    trips = relationship("Trip", back_populates="bus")

    __table_args__ = (
        CheckConstraint("total_seats >= 1 AND total_seats <= 100", name="check_bus_total_seats"),
    )

class Route(Base):
    __tablename__ = "routes"

    id = Column(Identifier, primary_key=True, index=True)
    route_name = Column(String(255), nullable=False)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    distance_km = Column(Numeric(8, 2))
    duration_minutes = Column(Integer)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    trips = relationship("Trip", back_populates="route")

# ================================
# Trips
# ================================
class Trip(Base):
    __tablename__ = "trips"

    id = Column(Identifier, primary_key=True, index=True)
    trip_number = Column(String(20), unique=True, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id"), nullable=False, index=True)
    bus_id = Column(BigInteger, ForeignKey("buses.id"), nullable=False, index=True)
    driver_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    helper_id = Column(BigInteger, ForeignKey("users.id"), index=True)
    departure_time = Column(String(5), nullable=False)
    arrival_time = Column(String(5), nullable=False)
    departure_date = Column(Date, nullable=False, index=True)
    pickup_points = Column(JSON, default=list)
    drop_points = Column(JSON, default=list)
    status = Column(String(20), nullable=False, default="scheduled", index=True)
    total_bookings = Column(Integer, nullable=False, default=0)
    available_seats = Column(Integer, nullable=False)
    fare = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    route = relationship("Route", back_populates="trips")
    bus = relationship("Bus", back_populates="trips")
    driver = relationship("User", foreign_keys=[driver_id])
    helper = relationship("User", foreign_keys=[helper_id])
    claims = relationship("TripResourceClaim", back_populates="trip", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="trip")

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_trip_available_seats"),
        CheckConstraint("total_bookings >= 0", name="check_trip_total_bookings"),
        CheckConstraint("fare >= 0", name="check_trip_fare"),
    )

class TripResourceClaim(Base):
    """A bus, driver or helper held by an active trip for one service date.

    Rows exist only while the owning trip is scheduled or in progress, so the
    unique constraint is the per-date exclusivity rule itself.
    """
    __tablename__ = "trip_resource_claims"

    id = Column(Identifier, primary_key=True, index=True)
    trip_id = Column(BigInteger, ForeignKey("trips.id"), nullable=False, index=True)
    resource_type = Column(String(20), nullable=False)
    resource_id = Column(BigInteger, nullable=False)
    service_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    trip = relationship("Trip", back_populates="claims")

    __table_args__ = (
        UniqueConstraint("resource_type", "resource_id", "service_date", name="uq_resource_per_service_date"),
    )

# ================================
# Bookings & Seat Allocations
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Identifier, primary_key=True, index=True)
    booking_reference = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    trip_id = Column(BigInteger, ForeignKey("trips.id"), nullable=False, index=True)
    bus_id = Column(BigInteger, ForeignKey("buses.id"), nullable=False, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id"), nullable=False, index=True)
    journey_date = Column(Date, nullable=False, index=True)
    seats = Column(JSON, nullable=False, default=list)
    seat_count = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    booking_status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    payment_method = Column(String(20))
    boarding_point = Column(String(255), nullable=False)
    dropping_point = Column(String(255), nullable=False)
    cancellation_reason = Column(Text)
    cancelled_at = Column(DateTime(timezone=True))
    cancelled_by = Column(BigInteger, ForeignKey("users.id"))
    refund_amount = Column(Numeric(10, 2))
    refund_percentage = Column(Numeric(5, 2))
    confirmed_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    trip = relationship("Trip", back_populates="bookings")
    bus = relationship("Bus")
    route = relationship("Route")
    allocations = relationship("SeatAllocation", back_populates="booking", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("seat_count > 0", name="check_booking_seat_count_positive"),
        CheckConstraint("total_amount >= 0", name="check_booking_total_amount"),
    )

class SeatAllocation(Base):
    """A seat held on a trip by a booking until that booking is cancelled.

    Released (deleted) when the booking is cancelled; the passenger details
    stay on ``Booking.seats``.
    """
    __tablename__ = "seat_allocations"

    id = Column(Identifier, primary_key=True, index=True)
    trip_id = Column(BigInteger, ForeignKey("trips.id"), nullable=False, index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    booking = relationship("Booking", back_populates="allocations")

    __table_args__ = (
        UniqueConstraint("trip_id", "seat_number", name="uq_trip_seat"),
        CheckConstraint("seat_number >= 1", name="check_seat_number_positive"),
    )
