"""
Cancellation refund policy.

Refunds are tiered on the hours left before departure. Tier bounds are
exclusive: exactly 24 hours out falls into the 50% tier, exactly 2 hours out
into the no-refund tier. Cancelling after departure (negative hours) gets the
lowest tier.
"""

from typing import List, Tuple
from datetime import datetime, date, time
from decimal import Decimal, ROUND_HALF_UP

# (hours strictly greater than, fraction refunded), highest tier first
REFUND_TIERS: Tuple[Tuple[int, Decimal], ...] = (
    (24, Decimal("1.00")),
    (2, Decimal("0.50")),
)
LOWEST_TIER_FRACTION = Decimal("0.00")

CENT = Decimal("0.01")

def refund_fraction(hours_until_departure: float) -> Decimal:
    """Fraction of the booking amount returned on cancellation"""
    for threshold, fraction in REFUND_TIERS:
        if hours_until_departure > threshold:
            return fraction
    return LOWEST_TIER_FRACTION

def refund_amount(total_amount: Decimal, hours_until_departure: float) -> Tuple[Decimal, Decimal]:
    """Return (fraction, amount) for cancelling a booking worth ``total_amount``"""
    fraction = refund_fraction(hours_until_departure)
    amount = (Decimal(total_amount) * fraction).quantize(CENT, rounding=ROUND_HALF_UP)
    return fraction, amount

def departure_moment(departure_date: date, departure_time: str) -> datetime:
    """Combine a service date and an HH:MM departure time"""
    hours, minutes = (int(part) for part in departure_time.split(":"))
    return datetime.combine(departure_date, time(hours, minutes))

def hours_until_departure(departure_date: date, departure_time: str, now: datetime) -> float:
    return (departure_moment(departure_date, departure_time) - now).total_seconds() / 3600

def describe_tiers() -> List[dict]:
    """Human-readable tier table for clients"""
    tiers = [
        {"more_than_hours": threshold, "refund_percentage": int(fraction * 100)}
        for threshold, fraction in REFUND_TIERS
    ]
    tiers.append({"more_than_hours": None, "refund_percentage": int(LOWEST_TIER_FRACTION * 100)})
    return tiers
