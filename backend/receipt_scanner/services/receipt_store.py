"""Receipt document persistence.

``ReceiptStore`` implements create / read / update-by-id over the receipts
collection.  Identifiers are MongoDB ``ObjectId`` values exposed to callers
as their 24-hex string form.  An identifier that does not parse is treated
exactly like one that matches nothing: ``None`` from ``get_by_id`` and
``False`` from ``update_by_id``.

Updates are a top-level ``$set`` merge.  Keys present in the patch replace
the stored values, absent keys are left alone, ``createdAt`` is restored
from the stored document and ``updatedAt`` is always refreshed.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from bson import ObjectId
from bson.errors import BSONError, InvalidId
from pymongo.errors import PyMongoError

from receipt_scanner.core.config import settings
from receipt_scanner.core.database import MongoConnectionPool, StorageFailure

# Errors raised when a write is rejected, including values BSON cannot encode
_WRITE_ERRORS = (PyMongoError, BSONError, OverflowError)

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if not value or not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


class ReceiptStore:
    def __init__(
        self,
        pool: MongoConnectionPool,
        collection_name: Optional[str] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.pool = pool
        self.collection_name = collection_name or settings.MONGODB_COLLECTION
        self.clock = clock

    def _collection(self):
        return self.pool.get_collection(self.collection_name)

    def create(self, doc: Mapping[str, Any]) -> str:
        """Insert ``doc`` stamped with ``createdAt``/``updatedAt``; return its id."""
        collection = self._collection()
        now = self.clock()
        to_insert = {**doc, "createdAt": now, "updatedAt": now}
        to_insert.pop("_id", None)
        try:
            result = collection.insert_one(to_insert)
        except _WRITE_ERRORS as exc:
            logger.error("[store] insert rejected: %s", exc)
            raise StorageFailure(f"Insert failed: {exc}") from exc
        if result is None or result.inserted_id is None:
            raise StorageFailure("Failed to get insertedId from MongoDB")
        return str(result.inserted_id)

    def get_by_id(self, receipt_id: str) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(receipt_id)
        if object_id is None:
            logger.info("[store] invalid ObjectId format: %s", receipt_id)
            return None
        try:
            document = self._collection().find_one({"_id": object_id})
        except PyMongoError as exc:
            logger.error("[store] lookup failed for %s: %s", receipt_id, exc)
            raise StorageFailure(f"Lookup failed: {exc}") from exc
        if document is None:
            logger.info("[store] no document found with id %s", receipt_id)
        return document

    def update_by_id(self, receipt_id: str, patch: Mapping[str, Any]) -> bool:
        object_id = parse_object_id(receipt_id)
        if object_id is None:
            logger.info("[store] invalid ObjectId format: %s", receipt_id)
            return False
        collection = self._collection()
        changes = {k: v for k, v in patch.items() if k != "_id"}
        changes["updatedAt"] = self.clock()
        try:
            existing = collection.find_one({"_id": object_id}, projection={"createdAt": 1})
            if existing and existing.get("createdAt"):
                changes["createdAt"] = existing["createdAt"]
            result = collection.update_one({"_id": object_id}, {"$set": changes})
        except _WRITE_ERRORS as exc:
            logger.error("[store] update of %s failed: %s", receipt_id, exc)
            return False
        if result is None or result.matched_count == 0:
            logger.info("[store] no document found with id %s", receipt_id)
            return False
        if result.modified_count == 0:
            logger.info("[store] document %s found but not modified", receipt_id)
        return True


__all__ = ["ReceiptStore", "StorageFailure", "parse_object_id", "utcnow"]
