"""MongoDB connection management.

A single ``MongoConnectionPool`` is owned by the application process (it is
created in the FastAPI lifespan and kept on ``app.state``).  The wrapped
``MongoClient`` already pools sockets; this class adds the liveness policy
around the shared handle:

* before the cached database is reused it is pinged;
* a failed ping discards the handle (closing the client) and exactly one
  fresh connection is attempted, with no retry loop or backoff;
* a failed connect never leaves a half-initialised handle cached.

Concurrent callers may race to replace a stale handle.  That is tolerated:
each runs the same discard-and-reconnect sequence and the last one wins.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import Request
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from receipt_scanner.core.config import settings

logger = logging.getLogger(__name__)


class StorageFailure(Exception):
    """The document store could not be reached or rejected a write."""


ClientFactory = Callable[..., Any]


class MongoConnectionPool:
    def __init__(
        self,
        uri: str,
        database: Optional[str] = None,
        client_factory: ClientFactory = MongoClient,
        **client_options: Any,
    ) -> None:
        if not uri:
            raise StorageFailure("MONGODB_URI is not configured")
        self.uri = uri
        self.default_database = database or settings.MONGODB_DATABASE
        self.client_factory = client_factory
        self.client_options: Dict[str, Any] = client_options
        self._client: Any = None
        self._db: Optional[Database] = None

    @classmethod
    def from_settings(cls, client_factory: ClientFactory = MongoClient) -> "MongoConnectionPool":
        return cls(
            settings.MONGODB_URI or "",
            database=settings.MONGODB_DATABASE,
            client_factory=client_factory,
            **settings.mongo_client_options(),
        )

    @property
    def connected(self) -> bool:
        return self._client is not None and self._db is not None

    def init(self) -> Database:
        """Open a new client, verify it with a ping and cache it."""
        logger.info("[store] creating new MongoDB connection")
        client = None
        try:
            client = self.client_factory(self.uri, **self.client_options)
            db = client.get_default_database(default=self.default_database)
            db.command("ping")
        except Exception as exc:
            logger.error("[store] failed to connect to MongoDB: %s", exc)
            self._discard(client)
            raise StorageFailure(f"MongoDB connection failed: {exc}") from exc
        self._client, self._db = client, db
        logger.info("[store] MongoDB connection established, database=%s", db.name)
        return db

    def health_check(self) -> bool:
        """Ping the cached database; False when there is none or it is stale."""
        if self._db is None:
            return False
        try:
            self._db.command("ping")
            return True
        except Exception as exc:
            logger.warning("[store] cached MongoDB connection is stale: %s", exc)
            return False

    def get_database(self) -> Database:
        if self.connected and self.health_check():
            return self._db  # type: ignore[return-value]
        if self._client is not None:
            self.close()
        return self.init()

    def get_collection(self, name: Optional[str] = None) -> Collection:
        return self.get_database()[name or settings.MONGODB_COLLECTION]

    def close(self) -> None:
        client = self._client
        self._client = None
        self._db = None
        self._discard(client)

    @staticmethod
    def _discard(client: Any) -> None:
        if client is None:
            return
        try:
            client.close()
        except Exception as exc:  # close errors do not matter once the handle is dropped
            logger.debug("[store] ignoring error while closing client: %s", exc)


def get_pool(request: Request) -> MongoConnectionPool:
    """Dependency returning the process-wide pool from ``app.state``."""
    pool = getattr(request.app.state, "mongo_pool", None)
    if pool is None:
        raise StorageFailure("MongoDB connection pool is not initialised")
    return pool


__all__ = ["MongoConnectionPool", "StorageFailure", "get_pool"]
