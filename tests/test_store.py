from datetime import timedelta

import pytest
from pymongo.errors import OperationFailure

from fakes import FakeDatabase
from helpers import NOW
from viarapida.exceptions import DuplicateRecord, StoreUnavailable
from viarapida.store import RESERVATIONS, TRIPS, DocumentStore, build_filter


def test_build_filter_equality_and_membership():
    query = build_filter({"trip_id": "t-1", "status": ["pending", "confirmed"]})

    assert query == {"trip_id": "t-1", "status": {"$in": ["pending", "confirmed"]}}


def test_build_filter_ranges_are_inclusive_and_open_ended():
    start, end = NOW, NOW + timedelta(days=1)

    assert build_filter(ranges={"departure_time": (start, end)}) == {
        "departure_time": {"$gte": start, "$lte": end}
    }
    assert build_filter(ranges={"seats_available": (1, None)}) == {"seats_available": {"$gte": 1}}
    assert build_filter(ranges={"seats_available": (None, None)}) == {}


@pytest.mark.asyncio
async def test_slow_store_times_out():
    db = FakeDatabase()
    db[TRIPS].delays["find_one"] = 0.2
    store = DocumentStore(db, timeout=0.05)

    with pytest.raises(StoreUnavailable):
        await store.get(TRIPS, "t-1")


@pytest.mark.asyncio
async def test_driver_errors_become_store_unavailable(db, store):
    db[TRIPS].fail("find", error=OperationFailure("not primary"))

    with pytest.raises(StoreUnavailable):
        await store.query(TRIPS, equals={"active": True})


@pytest.mark.asyncio
async def test_unique_index_violation_is_duplicate_record(store):
    await store.insert(RESERVATIONS, {"id": "r-1", "booking_code": "VR0000011111"})

    with pytest.raises(DuplicateRecord):
        await store.insert(RESERVATIONS, {"id": "r-2", "booking_code": "VR0000011111"})


@pytest.mark.asyncio
async def test_insert_does_not_leak_mongo_ids(store):
    record = {"id": "r-1", "booking_code": "VR0000011111"}
    await store.insert(RESERVATIONS, record)

    assert "_id" not in record
    assert await store.get(RESERVATIONS, "r-1") == record


@pytest.mark.asyncio
async def test_conditional_update(store):
    await store.insert(RESERVATIONS, {"id": "r-1", "status": "confirmed"})

    assert await store.update(RESERVATIONS, "r-1", {"status": "cancelled"}, expect={"status": "confirmed"})
    assert not await store.update(RESERVATIONS, "r-1", {"status": "cancelled"}, expect={"status": "confirmed"})


@pytest.mark.asyncio
async def test_increment_respects_bounds(store):
    await store.insert(TRIPS, {"id": "t-1", "seats_available": 2, "active": True})

    updated = await store.increment(TRIPS, "t-1", "seats_available", -2, minimum=2)
    assert updated["seats_available"] == 0
    assert await store.increment(TRIPS, "t-1", "seats_available", -1, minimum=1) is None
    assert await store.increment(TRIPS, "t-1", "seats_available", 5, maximum=0, expect={"active": False}) is None


@pytest.mark.asyncio
async def test_increment_moves_a_hold_with_the_counter(store):
    await store.insert(TRIPS, {"id": "t-1", "seats_available": 5, "holds": {}})

    placed = await store.increment(
        TRIPS, "t-1", "seats_available", -2,
        expect={"holds.r-1": {"$exists": False}}, also_set={"holds.r-1": {"seats": 2}},
    )
    assert placed["seats_available"] == 3
    assert placed["holds"] == {"r-1": {"seats": 2}}
    assert await store.increment(
        TRIPS, "t-1", "seats_available", -2,
        expect={"holds.r-1": {"$exists": False}}, also_set={"holds.r-1": {"seats": 2}},
    ) is None

    released = await store.increment(
        TRIPS, "t-1", "seats_available", 2, expect={"holds.r-1.seats": 2}, also_unset=["holds.r-1"],
    )
    assert released["seats_available"] == 5
    assert released["holds"] == {}


@pytest.mark.asyncio
async def test_query_order_and_limit(store):
    for index, hour in enumerate([9, 7, 8]):
        await store.insert(TRIPS, {"id": f"t-{index}", "departure_time": NOW + timedelta(hours=hour)})

    documents = await store.query(TRIPS, order_by=[("departure_time", 1)], limit=2)

    assert [document["id"] for document in documents] == ["t-1", "t-2"]


@pytest.mark.asyncio
async def test_delete_where(store):
    await store.insert_many("seat_claims", [
        {"_id": "t-1:1A", "id": "t-1:1A", "trip_id": "t-1", "reservation_id": "r-1"},
        {"_id": "t-1:1B", "id": "t-1:1B", "trip_id": "t-1", "reservation_id": "r-1"},
        {"_id": "t-1:2A", "id": "t-1:2A", "trip_id": "t-1", "reservation_id": "r-2"},
    ])

    assert await store.delete_where("seat_claims", {"reservation_id": "r-1"}) == 2
    assert await store.delete("seat_claims", "t-1:2A")
    assert not await store.delete("seat_claims", "t-1:2A")


@pytest.mark.asyncio
async def test_insert_many_duplicate_is_duplicate_record(store):
    await store.insert_many("seat_claims", [{"_id": "t-1:1A", "id": "t-1:1A"}])

    with pytest.raises(DuplicateRecord):
        await store.insert_many("seat_claims", [{"_id": "t-1:1B", "id": "t-1:1B"}, {"_id": "t-1:1A", "id": "t-1:1A"}])
