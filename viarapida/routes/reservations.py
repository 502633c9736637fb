# viarapida/routes/reservations.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from viarapida.dependencies import get_reservation_manager, get_trip_service
from viarapida.exceptions import NotFound
from viarapida.models.reservation import Reservation, ReservationRequest
from viarapida.models.trip import TripSnapshot
from viarapida.services.reservations import ReservationManager
from viarapida.services.trips import TripService
from viarapida.utils.auth_utils import get_current_user_id, get_optional_user_id

router = APIRouter()


@router.post("", response_model=Reservation, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    request: ReservationRequest,
    user_id: Optional[str] = Depends(get_optional_user_id),
    trips: TripService = Depends(get_trip_service),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    # Price and trip details come from the stored trip, never from the client
    trip = await trips.get_trip(request.trip_id)
    return await manager.create(
        trip_id=trip.id,
        passengers=request.passengers,
        price_per_seat=trip.price,
        payment_method=request.payment_method,
        snapshot=TripSnapshot.from_trip(trip),
        user_id=user_id,
    )


@router.get("", response_model=List[Reservation])
async def list_reservations(
    user_id: str = Depends(get_current_user_id),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    return await manager.list_all(user_id)


@router.get("/active", response_model=List[Reservation])
async def list_active_reservations(
    user_id: str = Depends(get_current_user_id),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    return await manager.list_active(user_id)


@router.get("/history", response_model=List[Reservation])
async def list_reservation_history(
    user_id: str = Depends(get_current_user_id),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    return await manager.list_history(user_id)


@router.get("/code/{booking_code}", response_model=Reservation)
async def find_reservation_by_code(
    booking_code: str,
    user_id: str = Depends(get_current_user_id),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    reservation = await manager.find_by_code(booking_code)
    if reservation.user_id != user_id:
        raise NotFound(f"Reservation {booking_code} not found")
    return reservation


@router.get("/{reservation_id}", response_model=Reservation)
async def get_reservation(
    reservation_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    reservation = await manager.get(reservation_id)
    if reservation.user_id != user_id:
        raise NotFound(f"Reservation {reservation_id} not found")
    return reservation


@router.post("/{reservation_id}/cancel", response_model=Reservation)
async def cancel_reservation(
    reservation_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    return await manager.cancel(reservation_id, user_id=user_id)
