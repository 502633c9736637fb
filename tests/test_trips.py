from datetime import date, datetime, timezone

import pytest

from viarapida.exceptions import InvalidSearch, NotFound
from viarapida.models.trip import ServiceTier
from viarapida.services.trips import TripService


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def trips(store):
    return TripService(store, timezone="America/Lima")


@pytest.mark.asyncio
async def test_search_uses_the_local_calendar_day(trips, seed_trip):
    # Lima is UTC-5: the 10th runs from 05:00 UTC on the 10th to 04:59 UTC on the 11th
    night_bus = seed_trip(departure_time=utc(2025, 3, 11, 3, 0))
    morning_bus = seed_trip(departure_time=utc(2025, 3, 10, 13, 0))
    seed_trip(departure_time=utc(2025, 3, 10, 4, 30))
    seed_trip(departure_time=utc(2025, 3, 11, 6, 0))

    found = await trips.search_trips("Ayacucho", "Lima", date(2025, 3, 10))

    assert [trip.id for trip in found] == [morning_bus.id, night_bus.id]


@pytest.mark.asyncio
async def test_search_skips_inactive_and_other_routes(trips, seed_trip):
    offered = seed_trip(departure_time=utc(2025, 3, 10, 15, 0))
    seed_trip(departure_time=utc(2025, 3, 10, 16, 0), active=False)
    seed_trip(departure_time=utc(2025, 3, 10, 17, 0), destination="Huancayo")
    seed_trip(departure_time=utc(2025, 3, 10, 18, 0), origin="Lima", destination="Ayacucho")

    found = await trips.search_trips(" Ayacucho ", "Lima", date(2025, 3, 10))

    assert [trip.id for trip in found] == [offered.id]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "origin, destination",
    [("", "Lima"), ("Ayacucho", "  "), ("Lima", "lima")],
)
async def test_invalid_search(trips, origin, destination):
    with pytest.raises(InvalidSearch):
        await trips.search_trips(origin, destination, date(2025, 3, 10))


@pytest.mark.asyncio
async def test_list_trips_by_tier(trips, seed_trip):
    suite = seed_trip(service_tier="Suite", departure_time=utc(2025, 3, 12, 1, 0))
    seed_trip(service_tier="Economy")

    found = await trips.list_trips(service_tier=ServiceTier.SUITE)

    assert [trip.id for trip in found] == [suite.id]
    assert found[0].service_tier == "Suite"


@pytest.mark.asyncio
async def test_get_trip(trips, seed_trip):
    trip = seed_trip()

    assert await trips.get_trip(trip.id) == trip
    with pytest.raises(NotFound):
        await trips.get_trip("missing")


def test_trip_helpers(seed_trip):
    trip = seed_trip(seats_total=40, seats_available=30)

    assert trip.has_capacity(30)
    assert not trip.has_capacity(31)
    assert trip.occupancy_percentage() == 25
    assert trip.route_label() == "Ayacucho → Lima"
