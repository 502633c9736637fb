# viarapida/utils/validation.py
from typing import List

from viarapida.exceptions import InvalidPassengerCount, InvalidPassengerData, InvalidSearch
from viarapida.models.reservation import Passenger

NATIONAL_ID_LENGTH = 8


def validate_passenger_count(count: int, maximum: int) -> None:
    if count <= 0:
        raise InvalidPassengerCount("At least 1 passenger is required")
    if count > maximum:
        raise InvalidPassengerCount(f"At most {maximum} passengers per reservation")


def validate_passenger(index: int, passenger: Passenger) -> None:
    for field in ("first_name", "last_name", "national_id", "seat"):
        if not getattr(passenger, field).strip():
            raise InvalidPassengerData(index, field, f"{field} cannot be blank")

    national_id = passenger.national_id
    # isdigit() alone would accept non-ASCII digits
    if len(national_id) != NATIONAL_ID_LENGTH or not (national_id.isascii() and national_id.isdigit()):
        raise InvalidPassengerData(
            index, "national_id", f"national_id must be exactly {NATIONAL_ID_LENGTH} digits"
        )


def validate_passengers(passengers: List[Passenger]) -> None:
    seen = set()
    for index, passenger in enumerate(passengers):
        validate_passenger(index, passenger)
        if passenger.seat in seen:
            raise InvalidPassengerData(index, "seat", f"seat {passenger.seat} is selected twice")
        seen.add(passenger.seat)


def validate_search(origin: str, destination: str) -> None:
    if not origin.strip():
        raise InvalidSearch("Select an origin")
    if not destination.strip():
        raise InvalidSearch("Select a destination")
    if origin.strip().casefold() == destination.strip().casefold():
        raise InvalidSearch("Origin and destination must be different")
