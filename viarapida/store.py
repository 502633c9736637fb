# viarapida/store.py
"""Thin async adapter over the motor database.

Every call goes through :meth:`DocumentStore._call`, which bounds the round
trip with a timeout and turns driver errors into the booking error types,
so nothing from pymongo leaks past this module.
"""
import asyncio
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from viarapida.config import STORE_TIMEOUT_SECONDS
from viarapida.exceptions import DuplicateRecord, StoreUnavailable

DUPLICATE_KEY_CODE = 11000

USERS = "users"
TRIPS = "trips"
RESERVATIONS = "reservations"
SEAT_CLAIMS = "seat_claims"

Document = Dict[str, Any]
OrderBy = Sequence[Tuple[str, int]]


def _is_duplicate_bulk_error(exc: BulkWriteError) -> bool:
    errors = exc.details.get("writeErrors", []) if exc.details else []
    return bool(errors) and all(error.get("code") == DUPLICATE_KEY_CODE for error in errors)


def build_filter(
    equals: Optional[Dict[str, Any]] = None,
    ranges: Optional[Dict[str, Tuple[Any, Any]]] = None,
) -> Document:
    """Equality values that are lists become ``$in``; ranges are inclusive ``(low, high)``."""
    query: Document = {}
    for field, value in (equals or {}).items():
        if isinstance(value, (list, tuple, set)):
            query[field] = {"$in": list(value)}
        else:
            query[field] = value
    for field, (low, high) in (ranges or {}).items():
        bounds = {}
        if low is not None:
            bounds["$gte"] = low
        if high is not None:
            bounds["$lte"] = high
        if bounds:
            query[field] = bounds
    return query


class DocumentStore:
    def __init__(self, database, timeout: float = STORE_TIMEOUT_SECONDS):
        self._database = database
        self.timeout = timeout

    def _collection(self, name: str):
        return self._database.get_collection(name)

    async def _call(self, operation: str, collection: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except DuplicateKeyError as exc:
            raise DuplicateRecord(f"Duplicate record in {collection}") from exc
        except BulkWriteError as exc:
            if _is_duplicate_bulk_error(exc):
                raise DuplicateRecord(f"Duplicate record in {collection}") from exc
            logger.error(f"{operation} on {collection} failed: {exc.details}")
            raise StoreUnavailable(f"{operation} on {collection} failed") from exc
        except asyncio.TimeoutError as exc:
            logger.error(f"{operation} on {collection} timed out after {self.timeout}s")
            raise StoreUnavailable(f"{operation} on {collection} timed out") from exc
        except PyMongoError as exc:
            logger.error(f"{operation} on {collection} failed: {exc}")
            raise StoreUnavailable(f"{operation} on {collection} failed") from exc

    async def get(self, collection: str, record_id: str) -> Optional[Document]:
        return await self.find_one(collection, {"id": record_id})

    async def find_one(self, collection: str, equals: Dict[str, Any]) -> Optional[Document]:
        return await self._call(
            "find_one", collection,
            self._collection(collection).find_one(build_filter(equals), {"_id": 0}),
        )

    async def query(
        self,
        collection: str,
        equals: Optional[Dict[str, Any]] = None,
        ranges: Optional[Dict[str, Tuple[Any, Any]]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        cursor = self._collection(collection).find(build_filter(equals, ranges), {"_id": 0})
        if order_by:
            cursor = cursor.sort(list(order_by))
        if limit:
            cursor = cursor.limit(limit)
        return await self._call("query", collection, cursor.to_list(length=limit))

    async def insert(self, collection: str, record: Document) -> str:
        # motor writes the generated _id back into the dict it is given
        await self._call("insert", collection, self._collection(collection).insert_one(dict(record)))
        return record["id"]

    async def insert_many(self, collection: str, records: Iterable[Document]) -> None:
        documents = [dict(record) for record in records]
        if not documents:
            return
        await self._call(
            "insert_many", collection,
            self._collection(collection).insert_many(documents, ordered=True),
        )

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Document,
        expect: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Set ``fields`` on the record; ``expect`` adds guard conditions. Returns whether it matched."""
        query = build_filter({"id": record_id, **(expect or {})})
        result = await self._call(
            "update", collection,
            self._collection(collection).update_one(query, {"$set": fields}),
        )
        return result.matched_count > 0

    async def increment(
        self,
        collection: str,
        record_id: str,
        field: str,
        delta: int,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
        expect: Optional[Dict[str, Any]] = None,
        also_set: Optional[Document] = None,
        also_unset: Iterable[str] = (),
    ) -> Optional[Document]:
        """Atomically add ``delta`` to ``field`` if its current value lies in ``[minimum, maximum]``.

        ``also_set`` and ``also_unset`` are applied in the same update. Returns
        the updated document, or None when no record matched the guard.
        """
        query = build_filter({"id": record_id, **(expect or {})})
        bounds = {}
        if minimum is not None:
            bounds["$gte"] = minimum
        if maximum is not None:
            bounds["$lte"] = maximum
        if bounds:
            query[field] = bounds
        update: Document = {"$inc": {field: delta}}
        if also_set:
            update["$set"] = also_set
        unset = {path: "" for path in also_unset}
        if unset:
            update["$unset"] = unset
        return await self._call(
            "increment", collection,
            self._collection(collection).find_one_and_update(
                query,
                update,
                projection={"_id": 0},
                return_document=ReturnDocument.AFTER,
            ),
        )

    async def delete(self, collection: str, record_id: str) -> bool:
        result = await self._call(
            "delete", collection, self._collection(collection).delete_one({"id": record_id})
        )
        return result.deleted_count > 0

    async def delete_where(self, collection: str, equals: Dict[str, Any]) -> int:
        result = await self._call(
            "delete_where", collection,
            self._collection(collection).delete_many(build_filter(equals)),
        )
        return result.deleted_count

    async def ensure_indexes(self) -> None:
        for name in (USERS, TRIPS, RESERVATIONS):
            await self._call(
                "create_index", name,
                self._collection(name).create_index([("id", ASCENDING)], unique=True),
            )
        indexes = [
            (USERS, [("username", ASCENDING)], True),
            (USERS, [("email", ASCENDING)], True),
            (TRIPS, [("origin", ASCENDING), ("destination", ASCENDING), ("departure_time", ASCENDING)], False),
            (RESERVATIONS, [("booking_code", ASCENDING)], True),
            (RESERVATIONS, [("user_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)], False),
            (RESERVATIONS, [("trip_id", ASCENDING), ("status", ASCENDING)], False),
            (SEAT_CLAIMS, [("trip_id", ASCENDING), ("reservation_id", ASCENDING)], False),
        ]
        for name, keys, unique in indexes:
            await self._call(
                "create_index", name, self._collection(name).create_index(keys, unique=unique)
            )
        logger.info("Database indexes ensured")
