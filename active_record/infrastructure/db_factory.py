"""
Database connection factory utilities for pg-active-record.

Provides centralized management of the async PostgreSQL pools backing the
query executors (psycopg_pool for psycopg, asyncpg's own pool) with explicit
lifecycle management. The PoolManager singleton owns at most one pool per
driver; close_all() releases them.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Literal, Optional

import asyncpg
import psycopg
from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from active_record.config import Settings, get_settings
from active_record.storage.asyncpg_adapter import AsyncpgQueryExecutor
from active_record.storage.psycopg_adapter import PsycopgQueryExecutor
from active_record.utils.logging import get_logger

log = get_logger(__name__)

Driver = Literal["psycopg", "asyncpg"]

_TRANSIENT_ERRORS = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    OSError,
    ConnectionError,
)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def _retrying(settings: Settings) -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(max(settings.db_connect_retries, 1)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
    )


def _statement_timeout_configurator(timeout_ms: int):
    async def _configure(conn: AsyncConnection) -> None:
        await conn.execute(f"SET statement_timeout = {int(timeout_ms)}")
        await conn.commit()

    return _configure


async def open_psycopg_pool(
    dsn: Optional[str] = None, settings: Optional[Settings] = None
) -> AsyncConnectionPool:
    """
    Open a psycopg AsyncConnectionPool, retrying transient connection errors.

    Parameters
    ----------
    dsn : str | None
        Connection string; built from settings when omitted.
    settings : Settings | None
        Pool sizing, statement timeout and retry budget.

    Returns
    -------
    AsyncConnectionPool
        An opened pool whose minimum connections are established.
    """
    settings = settings or get_settings()
    timeout_ms = settings.db_statement_timeout_ms
    async for attempt in _retrying(settings):
        with attempt:
            pool = AsyncConnectionPool(
                conninfo=dsn or build_dsn(settings),
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                configure=_statement_timeout_configurator(timeout_ms) if timeout_ms > 0 else None,
                open=False,
            )
            try:
                await pool.open(wait=True)
            except Exception:
                # A half-open pool keeps retrying in the background; drop it.
                await pool.close()
                raise
    log.info(
        "psycopg pool opened",
        extra={"min_size": settings.db_pool_min_size, "max_size": settings.db_pool_max_size},
    )
    return pool


async def open_asyncpg_pool(
    dsn: Optional[str] = None, settings: Optional[Settings] = None
) -> asyncpg.Pool:
    """
    Create an asyncpg pool, retrying transient connection errors.
    """
    settings = settings or get_settings()
    server_settings = None
    if settings.db_statement_timeout_ms > 0:
        server_settings = {"statement_timeout": str(settings.db_statement_timeout_ms)}

    async for attempt in _retrying(settings):
        with attempt:
            pool = await asyncpg.create_pool(
                dsn or build_dsn(settings),
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                server_settings=server_settings,
            )
    log.info(
        "asyncpg pool opened",
        extra={"min_size": settings.db_pool_min_size, "max_size": settings.db_pool_max_size},
    )
    return pool


class PoolManager:
    """
    Singleton owning the process's async pools.

    Pools are opened lazily on first request and must be released with
    ``await PoolManager().close_all()`` before the event loop shuts down.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._psycopg_pool: Optional[AsyncConnectionPool] = None
                cls._instance._asyncpg_pool: Optional[asyncpg.Pool] = None
                cls._instance._open_lock = asyncio.Lock()
            return cls._instance

    async def psycopg_pool(self, dsn: Optional[str] = None) -> AsyncConnectionPool:
        async with self._open_lock:
            if self._psycopg_pool is None:
                self._psycopg_pool = await open_psycopg_pool(dsn)
            return self._psycopg_pool

    async def asyncpg_pool(self, dsn: Optional[str] = None) -> asyncpg.Pool:
        async with self._open_lock:
            if self._asyncpg_pool is None:
                self._asyncpg_pool = await open_asyncpg_pool(dsn)
            return self._asyncpg_pool

    async def close_all(self) -> None:
        """
        Close all managed pools and release resources.
        """
        async with self._open_lock:
            if self._psycopg_pool is not None:
                try:
                    await self._psycopg_pool.close()
                finally:
                    self._psycopg_pool = None

            if self._asyncpg_pool is not None:
                try:
                    await self._asyncpg_pool.close()
                finally:
                    self._asyncpg_pool = None


async def create_executor(
    driver: Driver = "psycopg", dsn: Optional[str] = None
) -> PsycopgQueryExecutor | AsyncpgQueryExecutor:
    """
    Return a query executor backed by the managed pool for ``driver``.
    """
    manager = PoolManager()
    if driver == "psycopg":
        return PsycopgQueryExecutor(await manager.psycopg_pool(dsn))
    if driver == "asyncpg":
        return AsyncpgQueryExecutor(await manager.asyncpg_pool(dsn))
    raise ValueError(f"Unknown driver '{driver}'. Available: psycopg, asyncpg")


__all__ = [
    "Driver",
    "PoolManager",
    "build_dsn",
    "create_executor",
    "open_asyncpg_pool",
    "open_psycopg_pool",
]
