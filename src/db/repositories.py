"""DB-specific module that provides row-level operations on the release tables."""

import logging
from typing import (
    Generic,
    TypeVar,
    Any,
    Sequence,
    cast,
)

from sqlalchemy import select, BinaryExpression, delete, insert, Select, update, CursorResult
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.db.models import BaseModel, Release, Tag, Media, release_tags
from src.exceptions import InstanceLookupError

__all__ = (
    "BaseRepository",
    "ReleaseRowRepository",
    "TagRepository",
    "ReleaseTagRepository",
    "MediaRepository",
)
ModelT = TypeVar("ModelT", bound=BaseModel)
logger = logging.getLogger(__name__)
type FilterT = int | str | list[int] | list[str] | None


class BaseRepository(Generic[ModelT]):
    """Base repository interface."""

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self.session: AsyncSession = session

    async def get(self, instance_id: str) -> ModelT:
        """Selects instance by provided ID"""
        instance: ModelT | None = await self.first(instance_id)
        if not instance:
            raise InstanceLookupError(f"{self.model.__name__} with ID {instance_id} not found")

        return instance

    async def first(self, instance_id: str) -> ModelT | None:
        """Selects instance by provided ID"""
        statement = select(self.model).filter_by(id=instance_id)
        result = await self.session.execute(statement)
        row: Sequence[ModelT] | None = result.fetchone()
        if not row:
            return None

        return row[0]

    async def all(self, **filters: FilterT) -> list[ModelT]:
        """Selects instances from DB"""
        statement = self._prepare_statement(filters=filters)
        result = await self.session.execute(statement)
        return [row[0] for row in result.fetchall()]

    async def create(self, value: dict[str, Any]) -> ModelT:
        """Creates new instance (ID is generated on flush)"""
        logger.debug("[DB] Creating [%s]: %s", self.model.__name__, value)
        instance = self.model(**value)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def update_by_ids(self, updating_ids: Sequence[str], value: dict[str, Any]) -> int:
        """Update the instances by their IDs, returns number of affected rows"""
        logger.debug("[DB] Updating %s %r: %s", self.model.__name__, updating_ids, value)
        statement = update(self.model).filter(self.model.id.in_(updating_ids)).values(**value)
        result = cast(CursorResult[Any], await self.session.execute(statement))
        logger.debug("[DB] Updated %i %s rows", result.rowcount, self.model.__name__)
        return result.rowcount

    async def delete_by_ids(self, removing_ids: Sequence[str | int]) -> int:
        """Remove the instances from the DB, returns number of removed rows"""
        statement = delete(self.model).filter(self.model.id.in_(removing_ids))
        result = cast(CursorResult[Any], await self.session.execute(statement))
        return result.rowcount

    def _prepare_statement(self, filters: dict[str, FilterT]) -> Select[tuple[ModelT]]:
        filters_stmts: list[BinaryExpression[bool]] = []
        if (ids := filters.pop("ids", None)) and isinstance(ids, list):
            filters_stmts.append(self.model.id.in_(ids))

        statement = select(self.model).filter_by(**filters)
        if filters_stmts:
            statement = statement.filter(*filters_stmts)

        return statement


class ReleaseRowRepository(BaseRepository[Release]):
    """Release's repository (scalar release rows only)."""

    model = Release

    async def all_with_relations(self, ids: Sequence[str] | None = None) -> list[Release]:
        """Reads releases (all of them by default) with their tags (via join table) and media"""
        logger.debug("[DB] Getting releases with tags and media (ids=%r)", ids)
        statement = select(self.model).options(
            selectinload(self.model.tags),
            selectinload(self.model.media),
        )
        if ids is not None:
            statement = statement.filter(self.model.id.in_(ids))

        releases = await self.session.scalars(statement)
        return list(releases.all())


class TagRepository(BaseRepository[Tag]):
    """Tag's repository."""

    model = Tag


class ReleaseTagRepository:
    """Release <-> Tag links (join table without a model of its own)."""

    table = release_tags

    def __init__(self, session: AsyncSession) -> None:
        self.session: AsyncSession = session

    async def tag_ids(self, release_id: str) -> list[str]:
        """IDs of tags which are linked to the release"""
        statement = select(self.table.c.tag_id).filter(self.table.c.release_id == release_id)
        result = await self.session.scalars(statement)
        return list(result.all())

    async def link(self, release_id: str, tag_id: str) -> None:
        logger.debug("[DB] Linking release %r with tag %r", release_id, tag_id)
        statement = insert(self.table).values(release_id=release_id, tag_id=tag_id)
        await self.session.execute(statement)

    async def unlink(self, release_id: str, tag_ids: Sequence[str] | None = None) -> int:
        """Removes release's links (all of them when tag_ids is not provided)"""
        statement = delete(self.table).filter(self.table.c.release_id == release_id)
        if tag_ids is not None:
            statement = statement.filter(self.table.c.tag_id.in_(tag_ids))

        result = cast(CursorResult[Any], await self.session.execute(statement))
        logger.debug("[DB] Unlinked %i tags from release %r", result.rowcount, release_id)
        return result.rowcount


class MediaRepository(BaseRepository[Media]):
    """Media's repository (rows are always addressed through the owner release)."""

    model = Media

    async def for_release(self, release_id: str) -> list[Media]:
        statement = select(self.model).filter_by(release_id=release_id).order_by(self.model.id)
        result = await self.session.scalars(statement)
        return list(result.all())

    async def bulk_create(self, release_id: str, values: Sequence[dict[str, str]]) -> None:
        """Inserts all given media rows with a single statement"""
        if not values:
            return

        logger.debug("[DB] Inserting %i media rows for release %r", len(values), release_id)
        rows = [
            {"release_id": release_id, "type": item["type"], "url": item["url"]} for item in values
        ]
        await self.session.execute(insert(self.model), rows)

    async def delete_for_release(self, release_id: str) -> int:
        statement = delete(self.model).filter_by(release_id=release_id)
        result = cast(CursorResult[Any], await self.session.execute(statement))
        logger.debug("[DB] Removed %i media rows of release %r", result.rowcount, release_id)
        return result.rowcount
