# viarapida/utils/pricing.py
from viarapida.exceptions import InvalidPrice


def calculate_total_price(price_per_seat: float, passenger_count: int) -> float:
    """
    Calculate the frozen total for a reservation.
    """
    total_cost = round(price_per_seat * passenger_count, 2)
    if total_cost <= 0:
        raise InvalidPrice("Total price must be greater than zero")
    return total_cost
