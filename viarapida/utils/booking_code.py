# viarapida/utils/booking_code.py
import random
import time

BOOKING_CODE_PREFIX = "VR"


def generate_booking_code() -> str:
    """VR + last 6 digits of the millisecond clock + 4 random digits, e.g. VR4821937265."""
    millis = str(int(time.time() * 1000))[-6:]
    suffix = random.randint(1000, 9999)
    return f"{BOOKING_CODE_PREFIX}{millis}{suffix}"
