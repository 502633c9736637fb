# viarapida/routes/trips.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from viarapida.dependencies import get_availability_tracker, get_occupancy_resolver, get_trip_service
from viarapida.models.trip import SeatStatus, ServiceTier, Trip
from viarapida.services.availability import ReconcileReport, TripAvailabilityTracker
from viarapida.services.occupancy import SeatOccupancyResolver
from viarapida.services.trips import TripService
from viarapida.utils.auth_utils import operator_required

router = APIRouter()


@router.get("/search", response_model=List[Trip])
async def search_trips(
    origin: str,
    destination: str,
    date: date,
    trips: TripService = Depends(get_trip_service),
):
    return await trips.search_trips(origin, destination, date)


@router.get("", response_model=List[Trip])
async def list_trips(
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    service_tier: Optional[ServiceTier] = None,
    trips: TripService = Depends(get_trip_service),
):
    return await trips.list_trips(origin, destination, service_tier)


@router.get("/{trip_id}", response_model=Trip)
async def get_trip(trip_id: str, trips: TripService = Depends(get_trip_service)):
    return await trips.get_trip(trip_id)


@router.get("/{trip_id}/occupied-seats", response_model=List[str])
async def occupied_seats(trip_id: str, occupancy: SeatOccupancyResolver = Depends(get_occupancy_resolver)):
    return sorted(await occupancy.occupied_seats(trip_id))


@router.get("/{trip_id}/seats", response_model=List[SeatStatus])
async def seat_map(
    trip_id: str,
    trips: TripService = Depends(get_trip_service),
    occupancy: SeatOccupancyResolver = Depends(get_occupancy_resolver),
):
    trip = await trips.get_trip(trip_id)
    return await occupancy.seat_map(trip)


@router.post("/{trip_id}/reconcile", response_model=ReconcileReport)
async def reconcile_trip(
    trip_id: str,
    user=Depends(operator_required),
    availability: TripAvailabilityTracker = Depends(get_availability_tracker),
):
    return await availability.reconcile(trip_id)
