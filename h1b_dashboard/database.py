"""
h1b_dashboard/database.py — Async PostgreSQL access via asyncpg.

Security rules:
  - Read-only PostgreSQL role expected at DB level; every report query is a
    code-controlled constant, no request input reaches the SQL string.
  - Per-statement timeout so one slow report cannot pin a pooled connection.

Resilience:
  - Pool creation failure is logged but does NOT crash the app.
  - fetch() raises DatabaseUnavailableError while no pool exists; the cache
    manager turns that into an empty report like any other query failure.

Ownership:
  - One Database instance per process, owned by the ReportCacheManager.
    Nothing else creates a pool.
"""
import logging
import ssl
from decimal import Decimal
from typing import Any

import asyncpg

from h1b_dashboard.config import Settings

logger = logging.getLogger(__name__)


class DatabaseUnavailableError(RuntimeError):
    """Raised when a query is attempted without a live connection pool."""


def _no_verify_ssl_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def to_json_scalar(value: Any) -> Any:
    """
    Convert driver values to JSON-friendly primitives.

    NUMERIC columns arrive as Decimal. Values without a fractional scale
    (SUM, ROUND(AVG(..))) become int; scaled values such as ROUND(x, 2)
    stay float even when whole, so a rate column never mixes the two.
    """
    if isinstance(value, Decimal):
        exponent = value.as_tuple().exponent
        if isinstance(exponent, int) and exponent >= 0:
            return int(value)
        return float(value)
    return value


class Database:
    """Owns the asyncpg pool and runs read-only report queries."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: asyncpg.Pool | None = None

    # -----------------------------------------------------------------------
    # Pool lifecycle
    # -----------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Create the asyncpg connection pool.
        On failure the error is logged and the pool stays None — every report
        then degrades to an empty result.
        """
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._settings.database_url,
                min_size=self._settings.db_pool_min_size,
                max_size=self._settings.db_pool_max_size,
                command_timeout=self._settings.db_statement_timeout,
                statement_cache_size=0,
                timeout=self._settings.db_connection_timeout,
                ssl=_no_verify_ssl_context() if self._settings.db_ssl else None,
            )
            logger.info("PostgreSQL pool created successfully.")
        except Exception as exc:
            self._pool = None
            logger.warning(
                "Could not connect to PostgreSQL — reports will be empty. "
                "Reason: %s", exc
            )

    async def close(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            await pool.close()
            logger.info("PostgreSQL pool closed.")

    def is_available(self) -> bool:
        return self._pool is not None

    def _get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatabaseUnavailableError(
                "Database is not connected. Check DATABASE_URL in .env and ensure "
                "PostgreSQL is reachable."
            )
        return self._pool

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def fetch(self, sql: str) -> list[dict]:
        """Run a parameterless query and return its rows as plain dicts."""
        async with self._get_pool().acquire() as conn:
            records = await conn.fetch(sql, timeout=self._settings.db_statement_timeout)
        return [
            {key: to_json_scalar(value) for key, value in record.items()}
            for record in records
        ]
