from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)


class DatabaseService:
    """Pooled asyncpg access to the podcast store (papers and their lifecycle state)."""

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 5,
        command_timeout_seconds: float | None = 5.0,
        application_name: str = "podcast-backend",
    ) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max(min_size, max_size)
        self._command_timeout_seconds = command_timeout_seconds
        self._application_name = application_name
        self._pool: asyncpg.Pool | None = None

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        logger.info(
            "creating database connection pool",
            extra={"min_size": self._min_size, "max_size": self._max_size},
        )
        self._pool = await asyncpg.create_pool(
            dsn=self._dsn,
            min_size=self._min_size,
            max_size=self._max_size,
            command_timeout=self._command_timeout_seconds,
            server_settings={"application_name": self._application_name},
        )

    async def disconnect(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            logger.info("closing database connection pool")
            await pool.close()

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
        if self._pool is None:
            raise RuntimeError("database service is not connected")
        async with self._pool.acquire() as connection:
            yield connection

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        logger.debug("executing fetchrow", extra={"args_count": len(args)})
        async with self._connection() as connection:
            return await connection.fetchrow(query, *args)
