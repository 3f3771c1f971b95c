from database.connection import DatabasePool, db
from database.base import StorageBackend, StepFactors
from database.sql_storage import SqlStorage
from database.s3_storage import ObjectStoreStorage
from database.kv_storage import EdgeKvStorage, KvNamespace
from database.object_store import ObjectStore
from database.factory import create_storage
from database.exceptions import StorageError, NotFoundError, DuplicateError, IntegrityError

__all__ = [
    "DatabasePool",
    "db",
    "StorageBackend",
    "StepFactors",
    "SqlStorage",
    "ObjectStoreStorage",
    "EdgeKvStorage",
    "KvNamespace",
    "ObjectStore",
    "create_storage",
    "StorageError",
    "NotFoundError",
    "DuplicateError",
    "IntegrityError",
]
