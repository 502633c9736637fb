# viarapida/services/trips.py
from datetime import date
from typing import List, Optional

from pymongo import ASCENDING

from viarapida.config import SEARCH_TIMEZONE
from viarapida.exceptions import NotFound
from viarapida.models.trip import ServiceTier, Trip
from viarapida.store import TRIPS, DocumentStore
from viarapida.utils.dates import day_bounds
from viarapida.utils.validation import validate_search


class TripService:
    def __init__(self, store: DocumentStore, timezone: str = SEARCH_TIMEZONE):
        self.store = store
        self.timezone = timezone

    async def search_trips(self, origin: str, destination: str, day: date) -> List[Trip]:
        """Active trips on the route leaving during ``day`` (local calendar day), earliest first."""
        validate_search(origin, destination)
        start, end = day_bounds(day, self.timezone)
        documents = await self.store.query(
            TRIPS,
            equals={"origin": origin.strip(), "destination": destination.strip(), "active": True},
            ranges={"departure_time": (start, end)},
            order_by=[("departure_time", ASCENDING)],
        )
        return [Trip(**document) for document in documents]

    async def list_trips(
        self,
        origin: Optional[str] = None,
        destination: Optional[str] = None,
        service_tier: Optional[ServiceTier] = None,
    ) -> List[Trip]:
        equals = {"active": True}
        if origin:
            equals["origin"] = origin
        if destination:
            equals["destination"] = destination
        if service_tier:
            equals["service_tier"] = ServiceTier(service_tier).value
        documents = await self.store.query(TRIPS, equals=equals, order_by=[("departure_time", ASCENDING)])
        return [Trip(**document) for document in documents]

    async def get_trip(self, trip_id: str) -> Trip:
        document = await self.store.get(TRIPS, trip_id)
        if document is None:
            raise NotFound(f"Trip {trip_id} not found")
        return Trip(**document)
