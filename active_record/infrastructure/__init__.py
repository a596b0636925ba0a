"""
Infrastructure package for pg-active-record.

Centralizes database connectivity concerns (DSN, pools, executor factories).
The Record core never imports this layer; applications and the CLI use it to
obtain a ready QueryExecutor.
"""

from active_record.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    create_executor,
    open_asyncpg_pool,
    open_psycopg_pool,
)

__all__ = [
    "PoolManager",
    "build_dsn",
    "create_executor",
    "open_asyncpg_pool",
    "open_psycopg_pool",
]
