# viarapida/config.py
from decouple import config

MONGO_URI = config("MONGO_URI", default="mongodb://localhost:27017")
MONGO_DB_NAME = config("MONGO_DB_NAME", default="via_rapida")

SECRET_KEY = config("SECRET_KEY", default="your-secret-key")  # Load from environment in production
ALGORITHM = config("ALGORITHM", default="HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=30, cast=int)

# Booking policy
MAX_PASSENGERS_PER_RESERVATION = config("MAX_PASSENGERS_PER_RESERVATION", default=5, cast=int)
CANCELLATION_CUTOFF_HOURS = config("CANCELLATION_CUTOFF_HOURS", default=24, cast=int)
BOOKING_CODE_MAX_ATTEMPTS = config("BOOKING_CODE_MAX_ATTEMPTS", default=5, cast=int)

# Seat layout: rows of A..D
SEAT_ROWS = config("SEAT_ROWS", default=10, cast=int)
SEATS_PER_ROW = config("SEATS_PER_ROW", default=4, cast=int)

# Store behaviour
STORE_TIMEOUT_SECONDS = config("STORE_TIMEOUT_SECONDS", default=5.0, cast=float)
OCCUPANCY_FAIL_OPEN = config("OCCUPANCY_FAIL_OPEN", default=False, cast=bool)
CLAIM_GRACE_SECONDS = config("CLAIM_GRACE_SECONDS", default=300, cast=int)
RECONCILE_ATTEMPTS = config("RECONCILE_ATTEMPTS", default=3, cast=int)

SEARCH_TIMEZONE = config("SEARCH_TIMEZONE", default="America/Lima")

LOG_LEVEL = config("LOG_LEVEL", default="INFO")
LOG_DIR = config("LOG_DIR", default="")
