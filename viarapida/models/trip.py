# viarapida/models/trip.py
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ServiceTier(str, Enum):
    ECONOMY = "Economy"
    VIP = "VIP"
    SUITE = "Suite"


class SeatHold(BaseModel):
    """Seats a reservation holds against the counter, written together with it."""
    seats: int
    at: datetime


class TripBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    origin: str
    destination: str
    company: str
    departure_time: datetime
    arrival_time: Optional[str] = None   # display only, e.g. "21:30"
    duration: Optional[str] = None       # display only, e.g. "9h 30m"
    service_tier: ServiceTier = ServiceTier.ECONOMY
    price: float = Field(ge=0)           # per seat
    seats_total: int = Field(gt=0)
    seats_available: int = Field(ge=0)
    amenities: List[str] = []
    active: bool = True
    image_url: Optional[str] = None
    # seats_available == seats_total - sum of held seats; internal, not serialized
    holds: Dict[str, SeatHold] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="after")
    def check_seat_counts(self):
        if self.seats_available > self.seats_total:
            raise ValueError("seats_available cannot exceed seats_total")
        return self


class Trip(TripBase):
    id: str

    def has_capacity(self, passenger_count: int) -> bool:
        return self.seats_available >= passenger_count

    def occupancy_percentage(self) -> int:
        if self.seats_total == 0:
            return 0
        return (self.seats_total - self.seats_available) * 100 // self.seats_total

    def route_label(self) -> str:
        return f"{self.origin} → {self.destination}"


class TripSnapshot(BaseModel):
    """Trip fields copied onto a reservation when it is booked."""
    origin: str
    destination: str
    company: str
    departure_time: datetime

    @classmethod
    def from_trip(cls, trip: Trip) -> "TripSnapshot":
        return cls(
            origin=trip.origin,
            destination=trip.destination,
            company=trip.company,
            departure_time=trip.departure_time,
        )


class SeatStatus(BaseModel):
    seat: str
    occupied: bool
