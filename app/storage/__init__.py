"""
Persistence backends.

``create_store`` picks the backend once at startup from
``settings.storage_backend`` so callers only ever see a WaterStore.
"""

import logging

from app.config import Settings
from app.storage.base import WaterStore
from app.storage.kv import (
    BlobStore,
    FileBlobStore,
    KeyValueWaterStore,
    RedisBlobStore,
)
from app.storage.sql import SqlWaterStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> WaterStore:
    """
    Build and initialize the configured store.

    Raises:
        ValueError: If ``storage_backend`` is not "sql" or "kv"
    """
    backend = settings.storage_backend.lower()

    if backend == "sql":
        from app.database import make_engine

        store: WaterStore = SqlWaterStore(make_engine(settings.database_url, settings.db_echo))
    elif backend == "kv":
        if settings.kv_redis_url:
            blobs: BlobStore = RedisBlobStore.from_url(settings.kv_redis_url, settings.kv_prefix)
        else:
            blobs = FileBlobStore(settings.kv_directory)
        store = KeyValueWaterStore(blobs)
    else:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")

    store.init()
    logger.info(f"Using {store.backend_name} storage backend")
    return store


__all__ = [
    "BlobStore",
    "FileBlobStore",
    "KeyValueWaterStore",
    "RedisBlobStore",
    "SqlWaterStore",
    "WaterStore",
    "create_store",
]
