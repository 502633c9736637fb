import uuid
from datetime import timedelta

import pytest
import pytest_asyncio

from fakes import FakeDatabase
from helpers import NOW
from viarapida.models.trip import Trip
from viarapida.services.reservations import ReservationManager
from viarapida.store import TRIPS, DocumentStore


@pytest.fixture
def db():
    return FakeDatabase()


@pytest_asyncio.fixture
async def store(db):
    store = DocumentStore(db, timeout=1.0)
    await store.ensure_indexes()
    return store


@pytest.fixture
def manager(store):
    return ReservationManager(store)


@pytest.fixture
def seed_trip(db):
    def _seed(**overrides):
        trip = {
            "id": str(uuid.uuid4()),
            "origin": "Ayacucho",
            "destination": "Lima",
            "company": "Vía Rápida",
            "departure_time": NOW + timedelta(days=3),
            "service_tier": "VIP",
            "price": 50.0,
            "seats_total": 40,
            "seats_available": 40,
            "amenities": ["WiFi", "TV"],
            "active": True,
        }
        trip.update(overrides)
        db[TRIPS].seed(trip)
        return Trip(**trip)

    return _seed
