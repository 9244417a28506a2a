"""
Storage Package
"""

from secret_service.config import Settings, load_db_config
from secret_service.storage.base import Storage, StorageError
from secret_service.storage.memory import MemoryStorage
from secret_service.storage.mongo import MongoStorage

BACKENDS = ("memory", "mongo")


def create_storage(settings: Settings) -> Storage:
    """Build the storage backend selected by ``settings.backend``."""
    if settings.backend == "memory":
        return MemoryStorage()
    if settings.backend == "mongo":
        return MongoStorage.from_config(load_db_config(settings.config_path))
    raise ValueError(
        f"Unknown storage backend '{settings.backend}', expected one of {BACKENDS}"
    )


__all__ = [
    "BACKENDS",
    "MemoryStorage",
    "MongoStorage",
    "Storage",
    "StorageError",
    "create_storage",
]
