# viarapida/services/reservations.py
"""Reservation lifecycle: booking, cancellation and the user-facing queries.

Booking touches three records (seat claims, the trip counter and the
reservation itself). They are written in that order and undone in reverse
if a later step fails, so a reservation is either fully booked or leaves
nothing behind.
"""
import asyncio
import uuid
from datetime import datetime
from typing import List, Optional

from loguru import logger
from pymongo import ASCENDING, DESCENDING

from viarapida.config import (
    BOOKING_CODE_MAX_ATTEMPTS,
    CANCELLATION_CUTOFF_HOURS,
    MAX_PASSENGERS_PER_RESERVATION,
)
from viarapida.exceptions import (
    BookingError,
    CancellationWindowExpired,
    DuplicateRecord,
    NotFound,
    ReservationNotActive,
    SeatAlreadyTaken,
    StoreUnavailable,
    TripNotBookable,
    Unauthenticated,
)
from viarapida.models.reservation import (
    ACTIVE_STATUSES,
    HISTORY_STATUSES,
    Passenger,
    PaymentMethod,
    Reservation,
    ReservationStatus,
)
from viarapida.models.trip import TripSnapshot
from viarapida.services.availability import TripAvailabilityTracker
from viarapida.services.occupancy import SeatOccupancyResolver
from viarapida.store import RESERVATIONS, DocumentStore
from viarapida.utils.booking_code import generate_booking_code
from viarapida.utils.dates import ensure_utc, hours_between, to_millis, utc_now
from viarapida.utils.pricing import calculate_total_price
from viarapida.utils.validation import validate_passenger_count, validate_passengers


class ReservationManager:
    def __init__(
        self,
        store: DocumentStore,
        occupancy: Optional[SeatOccupancyResolver] = None,
        availability: Optional[TripAvailabilityTracker] = None,
        max_passengers: int = MAX_PASSENGERS_PER_RESERVATION,
        cutoff_hours: int = CANCELLATION_CUTOFF_HOURS,
        code_attempts: int = BOOKING_CODE_MAX_ATTEMPTS,
    ):
        self.store = store
        self.occupancy = occupancy or SeatOccupancyResolver(store)
        self.availability = availability or TripAvailabilityTracker(store)
        self.claims = self.availability.claims
        self.max_passengers = max_passengers
        self.cutoff_hours = cutoff_hours
        self.code_attempts = code_attempts

    async def create(
        self,
        trip_id: str,
        passengers: List[Passenger],
        price_per_seat: float,
        payment_method: PaymentMethod,
        snapshot: TripSnapshot,
        user_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> Reservation:
        validate_passenger_count(len(passengers), self.max_passengers)
        validate_passengers(passengers)
        total_price = calculate_total_price(price_per_seat, len(passengers))
        if not user_id:
            raise Unauthenticated()

        now = to_millis(ensure_utc(now or utc_now()))
        if ensure_utc(snapshot.departure_time) <= now:
            raise TripNotBookable(f"Trip {trip_id} has already departed")

        seats = [passenger.seat for passenger in passengers]
        taken = await self.occupancy.taken_among(trip_id, seats)
        if taken:
            raise SeatAlreadyTaken(taken)

        reservation_id = str(uuid.uuid4())
        try:
            await self.claims.claim(trip_id, seats, reservation_id, now)
            await self.availability.take_seats(trip_id, reservation_id, len(passengers), now)
            reservation = await self._insert(
                reservation_id=reservation_id,
                user_id=user_id,
                trip_id=trip_id,
                passengers=passengers,
                passenger_count=len(passengers),
                total_price=total_price,
                created_at=now,
                status=ReservationStatus.CONFIRMED,
                payment_method=payment_method,
                trip_origin=snapshot.origin,
                trip_destination=snapshot.destination,
                trip_company=snapshot.company,
                trip_departure_time=snapshot.departure_time,
            )
        except SeatAlreadyTaken:
            # claim() already dropped whatever it had stored
            raise
        except (Exception, asyncio.CancelledError) as exc:
            await asyncio.shield(self._undo_create(trip_id, reservation_id, len(passengers), exc))
            raise

        logger.info(
            f"Reservation {reservation.booking_code} booked on trip {trip_id}: "
            f"{reservation.passenger_count} seat(s) {', '.join(seats)} for user {user_id}"
        )
        return reservation

    async def _insert(self, reservation_id: str, **fields) -> Reservation:
        for attempt in range(1, self.code_attempts + 1):
            reservation = Reservation(id=reservation_id, booking_code=generate_booking_code(), **fields)
            try:
                await self.store.insert(RESERVATIONS, reservation.model_dump())
                return reservation
            except DuplicateRecord:
                logger.warning(
                    f"Booking code {reservation.booking_code} already in use "
                    f"(attempt {attempt}/{self.code_attempts})"
                )
        raise StoreUnavailable("Could not allocate a unique booking code")

    async def _undo_create(self, trip_id: str, reservation_id: str, seats: int, cause: BaseException) -> None:
        try:
            # A timed-out insert may still have landed; then the booking stands as is
            if await self.store.get(RESERVATIONS, reservation_id) is not None:
                logger.warning(f"Reservation {reservation_id} was stored despite {cause!r}; keeping it")
                return
            # No-op unless the seats were actually taken, even by a call that timed out
            await self.availability.return_seats(trip_id, reservation_id, seats)
            await self.claims.release(trip_id, reservation_id)
            logger.warning(f"Rolled back booking {reservation_id} on trip {trip_id} after {cause!r}")
        except BookingError as exc:
            logger.error(
                f"Could not roll back booking {reservation_id} on trip {trip_id}: {exc.message}; "
                f"trip needs reconcile"
            )

    async def cancel(
        self,
        reservation_id: str,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """Cancel an active reservation and give its seats back to the trip.

        With ``user_id`` the reservation must belong to that user, otherwise
        it is reported as not found.
        """
        reservation = await self.get(reservation_id)
        if user_id is not None and reservation.user_id != user_id:
            raise NotFound(f"Reservation {reservation_id} not found")
        if not reservation.is_active():
            raise ReservationNotActive(f"Reservation {reservation.booking_code} is {reservation.status}")

        now = to_millis(ensure_utc(now or utc_now()))
        hours_remaining = hours_between(now, reservation.trip_departure_time)
        if hours_remaining < self.cutoff_hours:
            raise CancellationWindowExpired(self.cutoff_hours, hours_remaining)

        previous_status = reservation.status
        flipped = await self.store.update(
            RESERVATIONS,
            reservation_id,
            {"status": ReservationStatus.CANCELLED.value, "cancelled_at": now},
            expect={"status": previous_status},
        )
        if not flipped:
            # Someone else changed it between our read and write
            raise ReservationNotActive(f"Reservation {reservation.booking_code} is no longer active")

        try:
            await self.availability.return_seats(reservation.trip_id, reservation_id, reservation.passenger_count)
        except (Exception, asyncio.CancelledError) as exc:
            kept = await asyncio.shield(self._undo_cancel(reservation, previous_status, exc))
            if not kept or isinstance(exc, asyncio.CancelledError):
                raise

        try:
            await self.claims.release(reservation.trip_id, reservation_id)
        except StoreUnavailable as exc:
            logger.warning(
                f"Seats of cancelled reservation {reservation.booking_code} are still claimed "
                f"({exc.message}); trip {reservation.trip_id} needs reconcile"
            )

        logger.info(
            f"Reservation {reservation.booking_code} cancelled, "
            f"{reservation.passenger_count} seat(s) returned to trip {reservation.trip_id}"
        )
        return reservation.model_copy(
            update={"status": ReservationStatus.CANCELLED.value, "cancelled_at": now}
        )

    async def _undo_cancel(self, reservation: Reservation, previous_status: str, cause: BaseException) -> bool:
        """Roll the cancellation back unless the seats did get returned. True when the cancellation stands."""
        try:
            if not await self.availability.holds_seats(reservation.trip_id, reservation.id):
                logger.warning(
                    f"Seats of {reservation.booking_code} were returned despite {cause!r}; keeping the cancellation"
                )
                return True
            await self.store.update(
                RESERVATIONS,
                reservation.id,
                {"status": previous_status, "cancelled_at": None},
                expect={"status": ReservationStatus.CANCELLED.value},
            )
            logger.warning(f"Cancellation of {reservation.booking_code} rolled back after {cause!r}")
        except BookingError as exc:
            logger.error(
                f"Reservation {reservation.booking_code} is cancelled but its seats were not returned "
                f"({exc.message}); trip {reservation.trip_id} needs reconcile"
            )
        return False

    async def get(self, reservation_id: str) -> Reservation:
        document = await self.store.get(RESERVATIONS, reservation_id)
        if document is None:
            raise NotFound(f"Reservation {reservation_id} not found")
        return Reservation(**document)

    async def find_by_code(self, booking_code: str) -> Reservation:
        documents = await self.store.query(
            RESERVATIONS, equals={"booking_code": booking_code.strip().upper()}, limit=1
        )
        if not documents:
            raise NotFound(f"Reservation {booking_code} not found")
        return Reservation(**documents[0])

    async def list_active(self, user_id: str, now: Optional[datetime] = None) -> List[Reservation]:
        """Pending and confirmed reservations whose trip has not left yet, soonest first."""
        now = ensure_utc(now or utc_now())
        documents = await self.store.query(
            RESERVATIONS,
            equals={"user_id": user_id, "status": ACTIVE_STATUSES},
            order_by=[("trip_departure_time", ASCENDING)],
        )
        reservations = [Reservation(**document) for document in documents]
        return [reservation for reservation in reservations if not reservation.has_departed(now)]

    async def list_history(self, user_id: str) -> List[Reservation]:
        documents = await self.store.query(
            RESERVATIONS,
            equals={"user_id": user_id, "status": HISTORY_STATUSES},
            order_by=[("created_at", DESCENDING)],
        )
        return [Reservation(**document) for document in documents]

    async def list_all(self, user_id: str) -> List[Reservation]:
        documents = await self.store.query(
            RESERVATIONS,
            equals={"user_id": user_id},
            order_by=[("created_at", DESCENDING)],
        )
        return [Reservation(**document) for document in documents]
