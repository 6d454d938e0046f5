from datetime import datetime, date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from busops.database import Base, get_db
from busops.constants import UserRole, EmployeeSubrole, BusStatus
from busops.models import User, Bus, Route
from busops.auth.schemas import Actor
from busops.auth.utils import create_access_token
from busops.trips.schemas import TripCreateRequest, StopPoint
from busops.trips.service import TripScheduler
from busops.bookings.schemas import SeatAssignment, BookingCreateRequest
from busops.bookings.booking_service import BookingService


class FrozenClock:
    """Callable clock the services read instead of datetime.now"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Frozen at 08:00 on 10 Jan 2030"""
    return FrozenClock(datetime(2030, 1, 10, 8, 0))


@pytest.fixture
def service_date(clock):
    """Two days after the frozen clock"""
    return clock.now.date() + timedelta(days=2)


@pytest.fixture
def scheduler(db, clock):
    return TripScheduler(db, clock=clock)


@pytest.fixture
def booking_service(db, clock):
    return BookingService(db, clock=clock)


@pytest.fixture
def create_user(db):
    """User factory (factories as fixtures)"""
    counter = {"n": 0}

    def _factory(role: UserRole = UserRole.CUSTOMER, subrole: EmployeeSubrole = None, name: str = None) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=f"user{counter['n']}@example.com",
            phone=f"98765{counter['n']:05d}",
            role=role.value,
            subrole=subrole.value if subrole else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _factory


@pytest.fixture
def owner(create_user):
    return create_user(UserRole.BUS_OWNER, name="Fleet Owner")


@pytest.fixture
def admin_actor(create_user):
    user = create_user(UserRole.BUS_ADMIN, name="Bus Admin")
    return Actor(id=user.id, role=user.role)


@pytest.fixture
def customer(create_user):
    return create_user(UserRole.CUSTOMER, name="Priya Sharma")


@pytest.fixture
def customer_actor(customer):
    return Actor(id=customer.id, role=customer.role)


@pytest.fixture
def create_driver(create_user):
    def _factory() -> User:
        return create_user(UserRole.BUS_EMPLOYEE, EmployeeSubrole.DRIVER)

    return _factory


@pytest.fixture
def create_helper(create_user):
    def _factory() -> User:
        return create_user(UserRole.BUS_EMPLOYEE, EmployeeSubrole.HELPER)

    return _factory


@pytest.fixture
def create_bus(db, owner):
    counter = {"n": 0}

    def _factory(total_seats: int = 40, status: BusStatus = BusStatus.ACTIVE) -> Bus:
        counter["n"] += 1
        bus = Bus(
            bus_number=f"KA01AB{counter['n']:04d}",
            bus_name=f"Coach {counter['n']}",
            operator_id=owner.id,
            bus_type="AC",
            total_seats=total_seats,
            status=status.value,
        )
        db.add(bus)
        db.commit()
        db.refresh(bus)
        return bus

    return _factory


@pytest.fixture
def route(db):
    route = Route(
        route_name="Bengaluru - Chennai Express",
        origin="Bengaluru",
        destination="Chennai",
        distance_km=Decimal("346.00"),
        duration_minutes=360,
    )
    db.add(route)
    db.commit()
    db.refresh(route)
    return route


def stop(name: str, time: str) -> StopPoint:
    return StopPoint(name=name, address=f"{name} bus stand", time=time)


@pytest.fixture
def trip_request(route, create_bus, create_driver, service_date):
    """Builds a valid TripCreateRequest; keyword overrides replace fields"""

    def _factory(**overrides) -> TripCreateRequest:
        fields = {
            "route_id": route.id,
            "departure_time": "10:00",
            "arrival_time": "16:00",
            "departure_date": service_date,
            "pickup_points": [stop("Majestic", "10:00")],
            "drop_points": [stop("Koyambedu", "16:00")],
            "fare": Decimal("500"),
        }
        fields.update(overrides)
        if "bus_id" not in fields:
            fields["bus_id"] = create_bus().id
        if "driver_id" not in fields:
            fields["driver_id"] = create_driver().id
        return TripCreateRequest(**fields)

    return _factory


@pytest.fixture
def create_trip(scheduler, trip_request):
    def _factory(**overrides):
        return scheduler.create_trip(trip_request(**overrides))

    return _factory


def seat(number: int, name: str = None) -> SeatAssignment:
    return SeatAssignment(
        seat_number=number,
        passenger_name=name or f"Passenger {number}",
        passenger_age=30,
        passenger_gender="Female",
        passenger_phone="9876543210",
    )


@pytest.fixture
def book(booking_service, customer):
    """Books the given seat numbers on a trip for the default customer"""

    def _book(trip, *numbers, user=None):
        request = BookingCreateRequest(
            trip_id=trip.id,
            seats=[seat(n) for n in numbers],
            boarding_point="Majestic",
            dropping_point="Koyambedu",
        )
        return booking_service.create_booking(request, user_id=(user or customer).id)

    return _book


@pytest.fixture
def client(session_factory):
    from busops.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def future_date():
    """A service date relative to the real clock, for API tests"""
    return date.today() + timedelta(days=5)
