"""Choose and build the storage backend from environment variables."""

import logging
import os

from database.base import StorageBackend
from database.connection import db
from database.exceptions import StorageError
from database.kv_storage import EdgeKvStorage, KvNamespace
from database.object_store import ObjectStore, s3_client_from_env
from database.s3_storage import ObjectStoreStorage
from database.sql_storage import SqlStorage

logger = logging.getLogger(__name__)

BACKENDS = ("sql", "s3", "kv")


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise StorageError(f"{name} is not configured")
    return value


def object_store_from_env() -> ObjectStore:
    return ObjectStore(s3_client_from_env(), _require_env("S3_BUCKET"))


async def create_storage(backend: str = None) -> StorageBackend:
    """Build the backend named by `backend` or STORAGE_BACKEND (default: sql)."""
    backend = (backend or os.getenv("STORAGE_BACKEND", "sql")).strip().lower()

    if backend == "sql":
        await db.initialize(_require_env("DATABASE_URL"))
        if os.getenv("DATABASE_INIT_SCHEMA", "").lower() in {"1", "true", "yes"}:
            await db.initialize_schema()
        storage = SqlStorage(db.pool, db)
    elif backend == "s3":
        storage = ObjectStoreStorage(object_store_from_env())
    elif backend == "kv":
        kv = KvNamespace(
            _require_env("KV_ACCOUNT_ID"),
            _require_env("KV_NAMESPACE_ID"),
            _require_env("KV_API_TOKEN"),
        )
        storage = EdgeKvStorage(kv, object_store_from_env())
    else:
        raise StorageError(
            f"Unknown STORAGE_BACKEND '{backend}', expected one of {', '.join(BACKENDS)}"
        )

    logger.info(f"Using {storage.name} storage backend")
    return storage
