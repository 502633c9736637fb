from datetime import datetime, timezone

from viarapida.models.reservation import Passenger, PaymentMethod
from viarapida.models.trip import TripSnapshot

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def passenger(seat, national_id="12345678", first_name="Rosa", last_name="Quispe"):
    return Passenger(first_name=first_name, last_name=last_name, national_id=national_id, seat=seat)


async def book(manager, trip, seats, user_id="user-1", now=NOW, **kwargs):
    return await manager.create(
        trip_id=trip.id,
        passengers=[passenger(seat) for seat in seats],
        price_per_seat=kwargs.pop("price_per_seat", trip.price),
        payment_method=kwargs.pop("payment_method", PaymentMethod.CARD),
        snapshot=TripSnapshot.from_trip(trip),
        user_id=user_id,
        now=now,
        **kwargs,
    )
