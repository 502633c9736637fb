# viarapida/services/availability.py
"""Seat counter of a trip.

Bookings never move ``seats_available`` on their own: every change is made
together with a hold entry (``holds.<reservation_id>``) in one conditional
update, so ``seats_available == seats_total - sum(held seats)`` holds at all
times, and taking or returning the same reservation's seats twice is a no-op.
"""
from datetime import datetime, timedelta
from typing import Dict, Optional

from loguru import logger
from pydantic import BaseModel

from viarapida.config import CLAIM_GRACE_SECONDS, RECONCILE_ATTEMPTS
from viarapida.exceptions import InsufficientCapacity, TripNotBookable
from viarapida.models.reservation import ACTIVE_STATUSES
from viarapida.models.trip import SeatHold, Trip
from viarapida.services.seat_claims import SeatClaimLedger
from viarapida.services.trips import TripService
from viarapida.store import RESERVATIONS, TRIPS, DocumentStore
from viarapida.utils.dates import ensure_utc, utc_now


def hold_path(reservation_id: str) -> str:
    return f"holds.{reservation_id}"


class ReconcileReport(BaseModel):
    trip_id: str
    seats_available_before: int
    seats_available_after: int
    settled: bool = True
    released_holds: int = 0
    restored_holds: int = 0
    released_claims: int = 0
    restored_claims: int = 0


class TripAvailabilityTracker:
    def __init__(
        self,
        store: DocumentStore,
        claim_grace_seconds: int = CLAIM_GRACE_SECONDS,
        reconcile_attempts: int = RECONCILE_ATTEMPTS,
    ):
        self.store = store
        self.trips = TripService(store)
        self.claims = SeatClaimLedger(store)
        self.claim_grace = timedelta(seconds=claim_grace_seconds)
        self.reconcile_attempts = reconcile_attempts

    async def get_trip(self, trip_id: str) -> Trip:
        return await self.trips.get_trip(trip_id)

    async def adjust_seats(self, trip_id: str, delta: int) -> int:
        """Apply a bare ``delta`` to the trip's available seats and return the new count.

        Taking seats (negative delta) only succeeds on an active trip with
        enough seats left. Returning seats never pushes the count above
        ``seats_total``. Reservations go through take_seats/return_seats.
        """
        if delta < 0:
            updated = await self.store.increment(
                TRIPS, trip_id, "seats_available", delta,
                minimum=-delta, expect={"active": True},
            )
            if updated is None:
                trip = await self.get_trip(trip_id)
                if not trip.active:
                    raise TripNotBookable(f"Trip {trip_id} is no longer offered")
                raise InsufficientCapacity(-delta, trip.seats_available)
        elif delta > 0:
            trip = await self.get_trip(trip_id)
            updated = await self.store.increment(
                TRIPS, trip_id, "seats_available", delta, maximum=trip.seats_total - delta,
            )
            if updated is None:
                logger.error(
                    f"Returning {delta} seat(s) to trip {trip_id} would exceed its {trip.seats_total} seats; "
                    f"counter left unchanged, run reconcile"
                )
                return trip.seats_available
        else:
            return (await self.get_trip(trip_id)).seats_available

        logger.debug(f"Trip {trip_id} seats_available {delta:+d} -> {updated['seats_available']}")
        return updated["seats_available"]

    async def _place_hold(
        self, trip_id: str, reservation_id: str, seats: int, now: datetime, require_active: bool = True
    ) -> Optional[dict]:
        expect = {hold_path(reservation_id): {"$exists": False}}
        if require_active:
            expect["active"] = True
        return await self.store.increment(
            TRIPS, trip_id, "seats_available", -seats,
            minimum=seats,
            expect=expect,
            also_set={hold_path(reservation_id): SeatHold(seats=seats, at=now).model_dump()},
        )

    async def take_seats(
        self, trip_id: str, reservation_id: str, seats: int, now: Optional[datetime] = None
    ) -> int:
        """Take ``seats`` for a reservation and return the new count. Repeating it takes nothing more."""
        now = ensure_utc(now or utc_now())
        updated = await self._place_hold(trip_id, reservation_id, seats, now)
        if updated is None:
            trip = await self.get_trip(trip_id)
            if reservation_id in trip.holds:
                return trip.seats_available
            if not trip.active:
                raise TripNotBookable(f"Trip {trip_id} is no longer offered")
            raise InsufficientCapacity(seats, trip.seats_available)
        logger.debug(f"Trip {trip_id}: {reservation_id} holds {seats} seat(s), {updated['seats_available']} left")
        return updated["seats_available"]

    async def return_seats(self, trip_id: str, reservation_id: str, seats: int) -> bool:
        """Give back what ``reservation_id`` holds. False when it holds nothing (never taken or already returned)."""
        updated = await self.store.increment(
            TRIPS, trip_id, "seats_available", seats,
            expect={f"{hold_path(reservation_id)}.seats": seats},
            also_unset=[hold_path(reservation_id)],
        )
        if updated is None:
            logger.debug(f"Trip {trip_id}: no hold of {reservation_id} to return")
            return False
        logger.debug(f"Trip {trip_id}: {reservation_id} returned {seats} seat(s), {updated['seats_available']} left")
        return True

    async def holds_seats(self, trip_id: str, reservation_id: str) -> bool:
        trip = await self.get_trip(trip_id)
        return reservation_id in trip.holds

    async def has_capacity(self, trip_id: str, requested_seats: int) -> bool:
        """Advisory only; booking takes seats through take_seats."""
        trip = await self.get_trip(trip_id)
        return trip.active and trip.has_capacity(requested_seats)

    async def _release_stale_holds(self, trip: Trip, now: datetime) -> int:
        released = 0
        for reservation_id, hold in trip.holds.items():
            reservation = await self.store.get(RESERVATIONS, reservation_id)
            if reservation is not None and reservation["status"] in ACTIVE_STATUSES:
                continue
            # No reservation yet: a booking may still be writing it
            if reservation is None and now - ensure_utc(hold.at) < self.claim_grace:
                continue
            if await self.return_seats(trip.id, reservation_id, hold.seats):
                logger.warning(f"Trip {trip.id}: released stale hold of {reservation_id} ({hold.seats} seat(s))")
                released += 1
        return released

    async def _restore_missing_holds(self, trip_id: str, reservations: Dict[str, dict], now: datetime) -> int:
        trip = await self.get_trip(trip_id)
        restored = 0
        for reservation_id, reservation in reservations.items():
            if reservation_id in trip.holds:
                continue
            seats = reservation["passenger_count"]
            if await self._place_hold(trip_id, reservation_id, seats, now, require_active=False) is None:
                logger.error(f"Trip {trip_id}: cannot hold {seats} seat(s) of reservation {reservation_id}, trip is oversold")
                continue
            # It may have been cancelled while we were restoring
            current = await self.store.get(RESERVATIONS, reservation_id)
            if current is None or current["status"] not in ACTIVE_STATUSES:
                await self.return_seats(trip_id, reservation_id, seats)
                continue
            logger.warning(f"Trip {trip_id}: restored missing hold of {reservation_id} ({seats} seat(s))")
            restored += 1
        return restored

    async def _settle_counter(self, trip_id: str) -> Optional[int]:
        """Make the counter agree with the holds. None if every attempt lost a race."""
        for _ in range(self.reconcile_attempts):
            trip = await self.get_trip(trip_id)
            expected = trip.seats_total - sum(hold.seats for hold in trip.holds.values())
            if expected < 0:
                logger.error(f"Trip {trip_id} is oversold by {-expected} seat(s)")
                expected = 0
            if expected == trip.seats_available:
                return expected
            # Hold changes always move the counter, so an unchanged counter means unchanged holds
            if await self.store.update(
                TRIPS, trip_id, {"seats_available": expected},
                expect={"seats_available": trip.seats_available},
            ):
                logger.warning(f"Trip {trip_id} seats_available drifted: {trip.seats_available} -> {expected}")
                return expected
        logger.warning(f"Trip {trip_id} kept changing, counter left for the next reconcile")
        return None

    async def reconcile(self, trip_id: str, now: Optional[datetime] = None) -> ReconcileReport:
        """Bring holds, counter and seat claims of a trip back in line with its active reservations.

        Safe to run while bookings and cancellations are in progress: holds
        younger than the grace period without a reservation belong to bookings
        in flight and are counted as taken.
        """
        now = ensure_utc(now or utc_now())
        trip = await self.get_trip(trip_id)
        documents = await self.store.query(
            RESERVATIONS, equals={"trip_id": trip_id, "status": ACTIVE_STATUSES}
        )
        reservations = {document["id"]: document for document in documents}

        released_holds = await self._release_stale_holds(trip, now)
        settled = await self._settle_counter(trip_id)
        restored_holds = await self._restore_missing_holds(trip_id, reservations, now)
        if restored_holds:
            settled = await self._settle_counter(trip_id)

        released = 0
        claimed = set()
        for claim in await self.claims.for_trip(trip_id):
            if claim["reservation_id"] in reservations:
                claimed.add(claim["seat"])
                continue
            # Younger claims may belong to a booking still in flight
            if now - ensure_utc(claim["claimed_at"]) >= self.claim_grace:
                await self.claims.drop(claim["id"])
                released += 1

        restored = 0
        for reservation in reservations.values():
            missing = [p["seat"] for p in reservation["passengers"] if p["seat"] not in claimed]
            for seat in missing:
                if await self.claims.restore(trip_id, seat, reservation["id"], now):
                    restored += 1
                else:
                    logger.error(f"Seat {seat} on trip {trip_id} of reservation {reservation['id']} is claimed by another booking")

        after = await self.get_trip(trip_id)
        report = ReconcileReport(
            trip_id=trip_id,
            seats_available_before=trip.seats_available,
            seats_available_after=after.seats_available,
            settled=settled is not None,
            released_holds=released_holds,
            restored_holds=restored_holds,
            released_claims=released,
            restored_claims=restored,
        )
        logger.info(f"Reconciled trip {trip_id}: {report}")
        return report
