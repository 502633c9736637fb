# viarapida/dependencies.py
from fastapi import Depends

from viarapida.database import get_store
from viarapida.services.availability import TripAvailabilityTracker
from viarapida.services.occupancy import SeatOccupancyResolver
from viarapida.services.reservations import ReservationManager
from viarapida.services.trips import TripService
from viarapida.store import DocumentStore


def get_trip_service(store: DocumentStore = Depends(get_store)) -> TripService:
    return TripService(store)


def get_occupancy_resolver(store: DocumentStore = Depends(get_store)) -> SeatOccupancyResolver:
    return SeatOccupancyResolver(store)


def get_availability_tracker(store: DocumentStore = Depends(get_store)) -> TripAvailabilityTracker:
    return TripAvailabilityTracker(store)


def get_reservation_manager(
    occupancy: SeatOccupancyResolver = Depends(get_occupancy_resolver),
    availability: TripAvailabilityTracker = Depends(get_availability_tracker),
) -> ReservationManager:
    return ReservationManager(availability.store, occupancy=occupancy, availability=availability)
