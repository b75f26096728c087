"""
Async SQLAlchemy engine (connection pool) for PostgreSQL.

The engine owns every database connection for the process lifetime:
at most ``pool_max_conns`` connections, recycled after
``pool_max_conn_lifetime`` and discarded on checkout once idle for longer
than ``pool_max_conn_idle_time``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from sqlalchemy import event, exc, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from config.settings import PostgreSQLSettings
from database.models import Base

logger = logging.getLogger(__name__)

_CHECKED_IN_AT = "checked_in_at"


def create_engine_from_settings(settings: PostgreSQLSettings) -> AsyncEngine:
    """Build the pooled engine described by ``settings`` (no I/O happens here)."""
    engine = create_async_engine(
        settings.url(),
        echo=False,
        hide_parameters=True,
        pool_size=settings.pool_max_conns,
        max_overflow=0,
        pool_recycle=int(settings.pool_max_conn_lifetime.total_seconds()) or -1,
        connect_args={
            "ssl": settings.sslmode,
            # cache prepared statement descriptions for the repeated queries
            "prepared_statement_cache_size": settings.statement_cache_size,
        },
    )
    install_idle_timeout(engine, settings.pool_max_conn_idle_time.total_seconds())
    return engine


def install_idle_timeout(
    engine: AsyncEngine, max_idle_seconds: float, clock: Callable[[], float] = time.monotonic
) -> None:
    """Invalidate pooled connections that sat idle longer than ``max_idle_seconds``."""
    if max_idle_seconds <= 0:
        return

    @event.listens_for(engine.sync_engine, "checkin")
    def _mark_checked_in(dbapi_connection, connection_record):
        connection_record.info[_CHECKED_IN_AT] = clock()

    @event.listens_for(engine.sync_engine, "checkout")
    def _expire_idle(dbapi_connection, connection_record, connection_proxy):
        checked_in_at = connection_record.info.pop(_CHECKED_IN_AT, None)
        if checked_in_at is None:
            return
        idle = clock() - checked_in_at
        if idle > max_idle_seconds:
            logger.debug("Discarding pooled connection idle for %.1fs", idle)
            # the pool replaces the connection and retries the checkout
            raise exc.DisconnectionError("connection idle too long")


async def ping(engine: AsyncEngine) -> None:
    """Round-trip ``SELECT 1``; raises whatever the driver raises."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_db(engine: AsyncEngine) -> None:
    """Create the ``users`` table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
