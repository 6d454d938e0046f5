from enum import Enum

class UserRole(str, Enum):
    """Organisational roles, highest first"""
    MASTER_ADMIN = "MASTER_ADMIN"
    BUS_OWNER = "BUS_OWNER"
    BUS_ADMIN = "BUS_ADMIN"
    BOOKING_MAN = "BOOKING_MAN"
    BUS_EMPLOYEE = "BUS_EMPLOYEE"
    CUSTOMER = "CUSTOMER"

class EmployeeSubrole(str, Enum):
    DRIVER = "DRIVER"
    HELPER = "HELPER"

# Roles allowed to act on any booking or trip
ADMIN_ROLES = frozenset({UserRole.MASTER_ADMIN, UserRole.BUS_OWNER, UserRole.BUS_ADMIN})

class BusStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"

class TripStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DELAYED = "delayed"

class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class PaymentMethod(str, Enum):
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    UPI = "UPI"
    NET_BANKING = "Net Banking"
    WALLET = "Wallet"
    CASH = "Cash"

class PassengerGender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"

class ClaimedResource(str, Enum):
    """Physical resources a trip holds exclusively for its service date"""
    BUS = "bus"
    DRIVER = "driver"
    HELPER = "helper"

ACTIVE_TRIP_STATUSES = frozenset({TripStatus.SCHEDULED, TripStatus.IN_PROGRESS})
ACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
# Seat allocations outlive completion; only cancellation releases them
SEAT_HOLDING_BOOKING_STATUSES = ACTIVE_BOOKING_STATUSES | {BookingStatus.COMPLETED}

# HH:MM, 24 hour clock
TIME_OF_DAY_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
