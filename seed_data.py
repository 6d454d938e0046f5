#!/usr/bin/env python3

from decimal import Decimal

from busops.database import SessionLocal, init_db
from busops.constants import UserRole, EmployeeSubrole, BusStatus
from busops.models import User, Bus, Route, Trip, TripResourceClaim, Booking, SeatAllocation

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for the bus operator backend...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(SeatAllocation).delete()
        db.query(Booking).delete()
        db.query(TripResourceClaim).delete()
        db.query(Trip).delete()
        db.query(Route).delete()
        db.query(Bus).delete()
        db.query(User).delete()

        # 1. Create accounts
        print("Creating accounts...")
        owner = User(name="Ravi Transport", email="owner@busops.local", phone="9876500001",
                     role=UserRole.BUS_OWNER.value)
        admin = User(name="Meera Admin", email="admin@busops.local", phone="9876500002",
                     role=UserRole.BUS_ADMIN.value)
        booking_man = User(name="Counter Desk", email="counter@busops.local", phone="9876500003",
                           role=UserRole.BOOKING_MAN.value)
        db.add_all([owner, admin, booking_man])
        db.flush()

        staff = [
            User(name="Suresh Kumar", email="driver1@busops.local", phone="9876500011",
                 role=UserRole.BUS_EMPLOYEE.value, subrole=EmployeeSubrole.DRIVER.value),
            User(name="Anil Singh", email="driver2@busops.local", phone="9876500012",
                 role=UserRole.BUS_EMPLOYEE.value, subrole=EmployeeSubrole.DRIVER.value),
            User(name="Vijay Rao", email="helper1@busops.local", phone="9876500021",
                 role=UserRole.BUS_EMPLOYEE.value, subrole=EmployeeSubrole.HELPER.value),
        ]
        db.add_all(staff)

        customers = [
            User(name="Priya Sharma", email="priya@example.com", phone="9876511111",
                 role=UserRole.CUSTOMER.value),
            User(name="Arjun Mehta", email="arjun@example.com", phone="9876522222",
                 role=UserRole.CUSTOMER.value),
        ]
        db.add_all(customers)
        db.flush()

        # 2. Create buses
        print("Creating buses...")
        buses = [
            Bus(bus_number="KA01AB1234", bus_name="Night Rider", operator_id=owner.id,
                bus_type="Sleeper", total_seats=36, status=BusStatus.ACTIVE.value),
            Bus(bus_number="KA01AB5678", bus_name="City Link", operator_id=owner.id,
                bus_type="AC", total_seats=40, status=BusStatus.ACTIVE.value),
            Bus(bus_number="KA01AB9999", bus_name="Old Faithful", operator_id=owner.id,
                bus_type="Non-AC", total_seats=44, status=BusStatus.MAINTENANCE.value),
        ]
        db.add_all(buses)

        # 3. Create routes
        print("Creating routes...")
        routes = [
            Route(route_name="Bengaluru - Chennai Express", origin="Bengaluru", destination="Chennai",
                  distance_km=Decimal("346.00"), duration_minutes=360),
            Route(route_name="Bengaluru - Mysuru", origin="Bengaluru", destination="Mysuru",
                  distance_km=Decimal("145.00"), duration_minutes=180),
            Route(route_name="Bengaluru - Hyderabad Overnight", origin="Bengaluru", destination="Hyderabad",
                  distance_km=Decimal("570.00"), duration_minutes=600),
        ]
        db.add_all(routes)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - 3 operator accounts")
        print(f"  - {len(staff)} bus employees")
        print(f"  - {len(customers)} customers")
        print(f"  - {len(buses)} buses")
        print(f"  - {len(routes)} routes")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
