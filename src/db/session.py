"""Engine / session factory lifecycle of the relational store."""

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine,
    close_all_sessions,
)

from src.exceptions import StorageError
from src.settings.db import DBSettings, get_db_settings

__all__ = (
    "sm_type",
    "StoreConnection",
    "make_session_factory",
    "engine_options",
    "get_session_factory",
    "initialize_database",
    "close_database",
    "ping_database",
)
logger = logging.getLogger(__name__)
type sm_type = async_sessionmaker[AsyncSession]


def make_session_factory(engine: AsyncEngine) -> sm_type:
    """Session factory used for every (independent) store operation"""
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


def engine_options(settings: DBSettings) -> dict[str, Any]:
    """
    Keyword args for create_async_engine. Pool sizes are applied to server
    backends only: SQLite engines use a single-connection pool.
    """
    options: dict[str, Any] = {"echo": settings.echo}
    if make_url(settings.database_dsn).get_backend_name() == "sqlite":
        return options

    if settings.pool_min_size:
        options["pool_size"] = settings.pool_min_size

    if settings.pool_max_size:
        options["max_overflow"] = max(
            settings.pool_max_size - (settings.pool_min_size or 5), 0
        )

    return options


class StoreConnection:
    """Holds the app-wide engine and session factory (created in app's lifespan)"""

    def __init__(self, settings: DBSettings | None = None) -> None:
        self._settings = settings
        self.engine: AsyncEngine | None = None
        self.session_factory: sm_type | None = None

    @property
    def settings(self) -> DBSettings:
        if self._settings is None:
            self._settings = get_db_settings()

        return self._settings

    async def open(self) -> None:
        dsn = make_url(self.settings.database_dsn)
        logger.info("[DB] Connecting to %s (host: %s)", dsn.get_backend_name(), dsn.host)
        try:
            self.engine = create_async_engine(dsn, **engine_options(self.settings))
            self.session_factory = make_session_factory(self.engine)
            await self.ping()
        except Exception as exc:
            logger.error("[DB] Unable to open store connection: %r", exc)
            await self.close()
            raise

        logger.info("[DB] Store connection is ready")

    async def ping(self) -> None:
        """Runs a trivial query, raises StorageError when the store is unreachable"""
        if self.engine is None:
            raise StorageError("Store connection is not opened")

        try:
            async with self.engine.connect() as connection:
                await connection.execute(sa.text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.error("[DB] Store ping failed: %r", exc)
            raise StorageError(f"Store is unreachable: {exc}") from exc

    async def close(self) -> None:
        if self.session_factory is not None:
            await close_all_sessions()

        if self.engine is not None:
            await self.engine.dispose()
            logger.info("[DB] Store connection closed")

        self.engine = None
        self.session_factory = None


_store_connection = StoreConnection()


def get_session_factory() -> sm_type:
    """App-wide session factory (available after initialize_database)"""
    session_factory = _store_connection.session_factory
    if session_factory is None:
        logger.warning("[DB] Session factory requested before initialization")
        raise StorageError("Store connection is not initialized")

    return session_factory


async def initialize_database() -> None:
    await _store_connection.open()


async def close_database() -> None:
    await _store_connection.close()


async def ping_database() -> None:
    await _store_connection.ping()
