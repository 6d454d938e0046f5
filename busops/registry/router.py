from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date

from busops.database import get_db
from busops.auth.dependencies import get_current_actor
from busops.exceptions import NotFoundError
from busops.registry.schemas import BusInfo, RouteInfo, BusSeatUsage
from busops.registry.service import ResourceRegistry

router = APIRouter(dependencies=[Depends(get_current_actor)])

@router.get("/buses/{bus_id}", response_model=BusInfo)
def get_bus(bus_id: int, db: Session = Depends(get_db)):
    """Get bus details by ID"""
    bus = ResourceRegistry.get_bus(db, bus_id)
    if not bus:
        raise NotFoundError(f"Bus with ID {bus_id} not found")
    return bus

@router.get("/buses/{bus_id}/seat-usage", response_model=BusSeatUsage)
def get_bus_seat_usage(
    bus_id: int,
    service_date: date = Query(..., description="Service date to inspect"),
    db: Session = Depends(get_db)
):
    """Seats committed on a bus for one service date"""
    usage = ResourceRegistry.bus_seat_usage(db, bus_id, service_date)
    if usage is None:
        raise NotFoundError(f"Bus with ID {bus_id} not found")
    return usage

@router.get("/routes/{route_id}", response_model=RouteInfo)
def get_route(route_id: int, db: Session = Depends(get_db)):
    """Get route details by ID"""
    route = ResourceRegistry.get_route(db, route_id)
    if not route:
        raise NotFoundError(f"Route with ID {route_id} not found")
    return route
