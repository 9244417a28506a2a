"""
MongoDB-backed storage.

The ``MongoClient`` owns the connection pool: every operation checks out a
connection for a single round-trip and hands it back, whatever the outcome.
"""

import logging
import threading
from typing import TYPE_CHECKING, List, Optional

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from secret_service.models import Secret
from secret_service.storage.base import Storage, StorageError

if TYPE_CHECKING:
    from secret_service.config import DbConfig

logger = logging.getLogger(__name__)

COLLECTION = "secrets"

# Upper bound on waiting for a free pooled connection
POOL_WAIT_TIMEOUT_MS = 5000
SERVER_SELECTION_TIMEOUT_MS = 5000


class MongoStorage(Storage):
    """Secrets stored one document per domain in the ``secrets`` collection."""

    def __init__(self, client: MongoClient, db_name: str):
        self.client = client
        self.collection: Collection = client[db_name][COLLECTION]
        self._index_ready = False
        self._index_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: "DbConfig") -> "MongoStorage":
        """
        Build the storage and its connection pool from a ``DbConfig``.

        Credentials are only used when both username and password are set.
        No connection is opened until the first operation.
        """
        options = {
            "host": config.host,
            "port": config.port,
            "maxPoolSize": config.pool_size,
            "waitQueueTimeoutMS": POOL_WAIT_TIMEOUT_MS,
            "serverSelectionTimeoutMS": SERVER_SELECTION_TIMEOUT_MS,
        }
        if config.username is not None and config.password is not None:
            options.update(
                username=config.username,
                password=config.password,
                authSource=config.db_name,
            )

        logger.info(
            "Using MongoDB storage at %s:%s/%s (pool size %d)",
            config.host,
            config.port,
            config.db_name,
            config.pool_size,
        )
        return cls(MongoClient(**options), config.db_name)

    def _ensure_index(self) -> None:
        """Create the unique ``domain`` index once per process."""
        if self._index_ready:
            return
        with self._index_lock:
            if not self._index_ready:
                self.collection.create_index("domain", unique=True)
                self._index_ready = True

    @staticmethod
    def _decode(document: dict) -> Secret:
        try:
            return Secret.model_validate(document)
        except ValidationError as e:
            raise StorageError(f"invalid stored document: {e}") from e

    def get_all(self) -> List[Secret]:
        try:
            documents = list(self.collection.find({}, {"_id": 0}))
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        return [self._decode(document) for document in documents]

    def get(self, domain: str) -> Optional[Secret]:
        try:
            document = self.collection.find_one({"domain": domain}, {"_id": 0})
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        if document is None:
            return None
        return self._decode(document)

    def set(self, secret: Secret) -> None:
        try:
            self._ensure_index()
            self.collection.update_one(
                {"domain": secret.domain},
                {"$set": secret.to_document()},
                upsert=True,
            )
        except PyMongoError as e:
            raise StorageError(str(e)) from e

    def delete(self, domain: str) -> bool:
        try:
            result = self.collection.delete_one({"domain": domain})
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        return result.deleted_count == 1

    def close(self) -> None:
        self.client.close()
