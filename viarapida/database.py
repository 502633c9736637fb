# viarapida/database.py
from motor.motor_asyncio import AsyncIOMotorClient

from viarapida.config import MONGO_DB_NAME, MONGO_URI, STORE_TIMEOUT_SECONDS
from viarapida.store import DocumentStore

client = AsyncIOMotorClient(MONGO_URI, tz_aware=True)
database = client[MONGO_DB_NAME]

store = DocumentStore(database, timeout=STORE_TIMEOUT_SECONDS)


def get_store() -> DocumentStore:
    return store
