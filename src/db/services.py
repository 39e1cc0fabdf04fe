import logging
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncGenerator, Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import session as db_session
from src.exceptions import StorageError

__all__ = ("SASessionUOW", "store_operation")
logger = logging.getLogger(__name__)


class SASessionUOW:
    """
    Unit Of Work: one session and one transaction, which is committed on exit
    only when it was marked for commit (otherwise everything is rolled back).

    The release tables are never written inside one long transaction: each store
    operation gets its own UOW, committed before the next operation starts
    (see `store_operation`).

    Examples:
        async with SASessionUOW() as uow:
            tag = await TagRepository(session=uow.session).create({"name": "perf"})
            uow.mark_for_commit()
    """

    def __init__(self, session_factory: db_session.sm_type | None = None) -> None:
        session_factory = session_factory or db_session.get_session_factory()
        self._session: AsyncSession = session_factory()
        self._need_to_commit: bool = False

    async def __aenter__(self) -> Self:
        await self._session.begin()
        logger.debug("[DB] Transaction started")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is None and self._need_to_commit:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self._session.close()

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def need_to_commit(self) -> bool:
        return self._need_to_commit

    def mark_for_commit(self) -> None:
        self._need_to_commit = True

    async def commit(self) -> None:
        try:
            await self._session.flush()
            await self._session.commit()
        except Exception as exc:
            logger.error("[DB] Failed to commit transaction: %r", exc)
            await self.rollback()
            raise

        self._need_to_commit = False
        logger.debug("[DB] Transaction committed")

    async def rollback(self) -> None:
        try:
            await self._session.rollback()
        except Exception as exc:
            logger.error("[DB] Failed to rollback transaction: %r", exc)
            raise

        self._need_to_commit = False
        logger.debug("[DB] Transaction rolled back")


@asynccontextmanager
async def store_operation(
    action: str,
    session_factory: db_session.sm_type | None = None,
    readonly: bool = False,
) -> AsyncGenerator[SASessionUOW, None]:
    """
    One independent operation against the store: own session, own transaction,
    committed on success. Any DB-level failure is raised as StorageError.

    Examples:
        async with store_operation("insert tag") as uow:
            tag = await TagRepository(session=uow.session).create(value)
    """
    logger.debug("[DB] Store operation: %s", action)
    try:
        async with SASessionUOW(session_factory=session_factory) as uow:
            yield uow
            if not readonly:
                uow.mark_for_commit()

    except StorageError:
        raise

    except (SQLAlchemyError, OSError) as exc:
        logger.error("[DB] Failed to %s: %r", action, exc)
        raise StorageError(f"Unable to {action}: {exc}") from exc
