# viarapida/services/occupancy.py
from string import ascii_uppercase
from typing import Iterable, List, Set

from loguru import logger

from viarapida.config import OCCUPANCY_FAIL_OPEN, SEAT_ROWS, SEATS_PER_ROW
from viarapida.exceptions import LookupFailure, StoreUnavailable
from viarapida.models.reservation import ACTIVE_STATUSES
from viarapida.models.trip import SeatStatus, Trip
from viarapida.store import RESERVATIONS, DocumentStore


def seat_layout(seats_total: int, rows: int = SEAT_ROWS, per_row: int = SEATS_PER_ROW) -> List[str]:
    """Seat codes in row order ("1A", "1B", ...), capped at seats_total."""
    columns = ascii_uppercase[:per_row]
    rows = max(rows, -(-seats_total // per_row))
    layout = [f"{row}{column}" for row in range(1, rows + 1) for column in columns]
    return layout[:seats_total]


class SeatOccupancyResolver:
    def __init__(self, store: DocumentStore, fail_open: bool = OCCUPANCY_FAIL_OPEN):
        self.store = store
        self.fail_open = fail_open

    async def occupied_seats(self, trip_id: str) -> Set[str]:
        """Seats held by pending or confirmed reservations on the trip.

        A store failure raises LookupFailure unless the resolver was built
        with fail_open, in which case the trip is reported as empty.
        """
        try:
            reservations = await self.store.query(
                RESERVATIONS,
                equals={"trip_id": trip_id, "status": ACTIVE_STATUSES},
            )
        except StoreUnavailable as exc:
            if self.fail_open:
                logger.warning(f"Occupancy lookup failed for trip {trip_id}, assuming no seats taken: {exc}")
                return set()
            raise LookupFailure(f"Seat occupancy for trip {trip_id} is unknown") from exc

        return {
            passenger["seat"]
            for reservation in reservations
            for passenger in reservation.get("passengers", [])
        }

    async def is_seat_occupied(self, trip_id: str, seat: str) -> bool:
        return seat in await self.occupied_seats(trip_id)

    async def taken_among(self, trip_id: str, seats: Iterable[str]) -> Set[str]:
        """The subset of seats that is already occupied."""
        return set(seats) & await self.occupied_seats(trip_id)

    async def seat_map(self, trip: Trip) -> List[SeatStatus]:
        occupied = await self.occupied_seats(trip.id)
        return [SeatStatus(seat=seat, occupied=seat in occupied) for seat in seat_layout(trip.seats_total)]
