# viarapida/services/seat_claims.py
from datetime import datetime
from typing import Iterable, List, Optional

from loguru import logger

from viarapida.exceptions import DuplicateRecord, SeatAlreadyTaken
from viarapida.store import SEAT_CLAIMS, DocumentStore
from viarapida.utils.dates import utc_now


def claim_id(trip_id: str, seat: str) -> str:
    return f"{trip_id}:{seat}"


def claim_document(trip_id: str, seat: str, reservation_id: str, now: datetime) -> dict:
    key = claim_id(trip_id, seat)
    return {
        "_id": key,
        "id": key,
        "trip_id": trip_id,
        "seat": seat,
        "reservation_id": reservation_id,
        "claimed_at": now,
    }


class SeatClaimLedger:
    """One document per held seat; its _id makes a second claim on the same seat fail."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def claim(
        self, trip_id: str, seats: Iterable[str], reservation_id: str, now: Optional[datetime] = None
    ) -> None:
        now = now or utc_now()
        seats = list(seats)
        try:
            await self.store.insert_many(
                SEAT_CLAIMS, [claim_document(trip_id, seat, reservation_id, now) for seat in seats]
            )
        except DuplicateRecord as exc:
            # An ordered insert may have stored some of ours before the clash
            await self.release(trip_id, reservation_id)
            taken = await self.holders(trip_id, seats, exclude=reservation_id)
            raise SeatAlreadyTaken(taken or seats) from exc

    async def restore(self, trip_id: str, seat: str, reservation_id: str, now: datetime) -> bool:
        """Claim a single seat; False if someone else already holds it."""
        try:
            await self.store.insert(SEAT_CLAIMS, claim_document(trip_id, seat, reservation_id, now))
        except DuplicateRecord:
            return False
        return True

    async def holders(self, trip_id: str, seats: List[str], exclude: str) -> List[str]:
        """Seats in ``seats`` currently claimed by a reservation other than ``exclude``."""
        claims = await self.store.query(SEAT_CLAIMS, equals={"trip_id": trip_id, "seat": seats})
        return [claim["seat"] for claim in claims if claim["reservation_id"] != exclude]

    async def release(self, trip_id: str, reservation_id: str) -> int:
        released = await self.store.delete_where(
            SEAT_CLAIMS, {"trip_id": trip_id, "reservation_id": reservation_id}
        )
        logger.debug(f"Released {released} seat claim(s) of reservation {reservation_id}")
        return released

    async def drop(self, key: str) -> bool:
        return await self.store.delete(SEAT_CLAIMS, key)

    async def for_trip(self, trip_id: str) -> List[dict]:
        return await self.store.query(SEAT_CLAIMS, equals={"trip_id": trip_id})
