# viarapida/models/reservation.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from viarapida.utils.dates import ensure_utc


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_STATUSES = [ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value]
HISTORY_STATUSES = [ReservationStatus.COMPLETED.value, ReservationStatus.CANCELLED.value]


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    YAPE = "yape"
    PLIN = "plin"


class Passenger(BaseModel):
    first_name: str
    last_name: str
    national_id: str  # DNI, 8 digits
    seat: str         # row + column, e.g. "3B"

    @field_validator("seat")
    def normalize_seat(cls, v):
        return v.strip().upper()

    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ReservationBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    trip_id: str
    passengers: List[Passenger]
    passenger_count: int
    total_price: float
    created_at: datetime
    status: ReservationStatus
    payment_method: PaymentMethod
    booking_code: str

    # Trip data frozen at booking time so listings need no extra lookup
    trip_origin: str
    trip_destination: str
    trip_company: str
    trip_departure_time: datetime

    cancelled_at: Optional[datetime] = None


class Reservation(ReservationBase):
    id: str

    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def has_departed(self, now: datetime) -> bool:
        return ensure_utc(self.trip_departure_time) < ensure_utc(now)

    def seat_codes(self) -> List[str]:
        return [passenger.seat for passenger in self.passengers]


class ReservationRequest(BaseModel):
    trip_id: str
    passengers: List[Passenger]
    payment_method: PaymentMethod
