"""
Release repository: the only entry point to release storage for the outer layers.

The store gives no transaction across tables, so `save` and `delete` are
sequences of independent, self-committed operations. Each step is idempotent or
delete-then-insert, which makes "repeat the whole call" the recovery action for
any failure in the middle.
"""

import logging
from typing import Sequence

from src.constants import SyncStrategy
from src.db.models import Release
from src.db.repositories import MediaRepository, ReleaseRowRepository, ReleaseTagRepository
from src.db.services import store_operation
from src.db.session import sm_type
from src.exceptions import InstanceLookupError, ReleaseValidationError
from src.models import ReleasePayload, ReleaseResponse, TagResponse, MediaResponse
from src.services.identity import Pending, Persisted, resolve_identity
from src.services.relations import RelationSynchronizer
from src.services.tags import TagUpsertService
from src.utils import ensure_utc, utcnow

__all__ = ("ReleaseRepository",)
logger = logging.getLogger(__name__)


class ReleaseRepository:
    """Fetches the whole release graph and saves / deletes single releases"""

    def __init__(
        self,
        session_factory: sm_type | None = None,
        sync_strategy: SyncStrategy = SyncStrategy.REPLACE,
    ) -> None:
        self.session_factory = session_factory
        self.tags_service = TagUpsertService(session_factory=session_factory)
        self.relations = RelationSynchronizer(
            tags_service=self.tags_service,
            session_factory=session_factory,
            strategy=sync_strategy,
        )

    async def fetch_all(self) -> list[ReleaseResponse]:
        """
        Fresh snapshot of all releases with their tags and media.
        Order is not defined: callers sort / filter on their own.
        """
        releases = await self._read_releases()
        logger.debug("[SYNC] Fetched %i releases", len(releases))
        return releases

    async def get(self, release_id: str) -> ReleaseResponse:
        """Fresh state of a single release"""
        if isinstance(resolve_identity(release_id), Pending):
            raise InstanceLookupError(f"Release {release_id!r} is not stored yet")

        releases = await self._read_releases(ids=[release_id])
        if not releases:
            raise InstanceLookupError(f"Release with ID {release_id} not found")

        return releases[0]

    async def save(self, payload: ReleasePayload) -> ReleaseResponse:
        """
        Creates or updates the release, then re-reads the stored state.

        Steps (each one is a separate store operation, the first failure stops the call):
            1. resolve identity (create or update)
            2. insert / update the scalar release fields
            3. sync tags, if they are present in the payload
            4. sync media, if they are present in the payload
            5. re-fetch everything and return the stored release

        :raise ReleaseValidationError: invalid payload (nothing is written)
        :raise StorageError: any failed store operation (release may be partially written)
        """
        identity = self._validate(payload)
        values = payload.scalar_fields()
        if dt_value := values.get("datetime"):
            values["datetime"] = ensure_utc(dt_value)

        if isinstance(identity, Pending):
            values.setdefault("description", "")
            values.setdefault("datetime", utcnow(skip_tz=False))
            release_id = await self._insert_release(values)
            logger.info("[SYNC] Release created: %r (draft %r)", release_id, identity.draft_id)
        else:
            release_id = identity.store_id
            await self._update_release(release_id, values)
            logger.info("[SYNC] Release updated: %r", release_id)

        if payload.tags is not None:
            await self.relations.sync_tags(release_id, payload.tags)

        if payload.media is not None:
            await self.relations.sync_media(release_id, payload.media)

        for release in await self.fetch_all():
            if release.id == release_id:
                return release

        raise InstanceLookupError(f"Release with ID {release_id} disappeared after saving")

    async def delete(self, release_id: str) -> None:
        """
        Removes release with its tag links and media (tags themselves are shared and stay).
        Dependent rows go first, so a concurrent reader never sees orphaned links.
        """
        identity = resolve_identity(release_id)
        if isinstance(identity, Pending):
            logger.info("[SYNC] Release %r was never stored: nothing to delete", release_id)
            return

        async with store_operation("unlink release tags", self.session_factory) as uow:
            await ReleaseTagRepository(session=uow.session).unlink(identity.store_id)

        async with store_operation("delete release media", self.session_factory) as uow:
            await MediaRepository(session=uow.session).delete_for_release(identity.store_id)

        async with store_operation("delete release", self.session_factory) as uow:
            removed = await ReleaseRowRepository(session=uow.session).delete_by_ids(
                [identity.store_id]
            )

        if removed:
            logger.info("[SYNC] Release deleted: %r", identity.store_id)
        else:
            logger.warning("[SYNC] Release %r was already absent", identity.store_id)

    @staticmethod
    def _validate(payload: ReleasePayload) -> Pending | Persisted:
        """Checks the payload before any store call (invalid input never causes partial writes)"""
        identity = resolve_identity(payload.id, persisted=payload.persisted)
        errors: list[str] = []
        if isinstance(identity, Pending):
            if payload.title is None:
                errors.append("title is required")
            if payload.category is None:
                errors.append("category is required")

        if payload.title is not None and not payload.title.strip():
            errors.append("title must not be blank")

        if payload.category is not None and not payload.category.strip():
            errors.append("category must not be blank")

        for index, tag in enumerate(payload.tags or []):
            resolve_identity(tag.id, persisted=tag.persisted)
            if not tag.name.strip():
                errors.append(f"tags[{index}]: name must not be blank")

        for index, media in enumerate(payload.media or []):
            if not media.url.strip():
                errors.append(f"media[{index}]: url must not be blank")

        if errors:
            raise ReleaseValidationError("; ".join(errors))

        return identity

    async def _insert_release(self, values: dict) -> str:
        async with store_operation("insert release", self.session_factory) as uow:
            instance = await ReleaseRowRepository(session=uow.session).create(values)

        return instance.id

    async def _update_release(self, release_id: str, values: dict) -> None:
        async with store_operation("update release", self.session_factory) as uow:
            repository = ReleaseRowRepository(session=uow.session)
            if values:
                found = bool(await repository.update_by_ids([release_id], values))
            else:
                # nothing to write, but relations must not be attached to a missing release
                found = await repository.first(release_id) is not None

            if not found:
                raise InstanceLookupError(f"Release with ID {release_id} not found")

    async def _read_releases(self, ids: Sequence[str] | None = None) -> list[ReleaseResponse]:
        async with store_operation("read releases", self.session_factory, readonly=True) as uow:
            rows = await ReleaseRowRepository(session=uow.session).all_with_relations(ids=ids)
            return [self._to_response(row) for row in rows]

    @staticmethod
    def _to_response(release: Release) -> ReleaseResponse:
        return ReleaseResponse(
            id=release.id,
            title=release.title,
            description=release.description,
            category=release.category,
            datetime=ensure_utc(release.datetime),
            tags=[TagResponse.model_validate(tag) for tag in release.tags],
            media=[MediaResponse.model_validate(media) for media in release.media],
        )
