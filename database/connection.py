import asyncpg
from pathlib import Path
from typing import Optional

from database.exceptions import StorageError

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


class DatabasePool:
    """Owns the asyncpg pool behind the SQL backend.

    The pool is opened once from DATABASE_URL by the storage factory and
    closed when the backend is closed.
    """

    def __init__(self):
        self._pool: Optional[asyncpg.Pool] = None

    async def initialize(
        self,
        dsn: str,
        *,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 30.0,
    ) -> None:
        """Open the pool for `dsn`. A second call is a no-op."""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                dsn=dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise StorageError(f"Could not connect to database: {e}") from e

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool not initialized; call initialize() first")
        return self._pool

    async def initialize_schema(self, schema_path: Optional[Path] = None) -> None:
        """Run `schema.sql` (idempotent CREATE ... IF NOT EXISTS statements)."""
        path = Path(schema_path or SCHEMA_PATH)
        if not path.exists():
            raise StorageError(f"Schema file not found: {path}")
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(path.read_text(encoding="utf-8"))

    async def health_check(self) -> bool:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except (OSError, asyncpg.PostgresError, RuntimeError):
            return False


db = DatabasePool()
