"""
Resource Registry

Read-only access to the fleet, the route catalogue and staff records, used by
the trip scheduler and the reservation manager to validate references:

- does this bus exist and is it active
- does this route exist
- is this user a driver or helper
- how many seats does a bus have committed on a given date
"""

from .router import router
from .service import ResourceRegistry
from .schemas import BusInfo, BusSummary, RouteInfo, RouteSummary, BusSeatUsage

__all__ = [
    "router",
    "ResourceRegistry",
    "BusInfo",
    "BusSummary",
    "RouteInfo",
    "RouteSummary",
    "BusSeatUsage"
]
