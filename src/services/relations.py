import logging
from collections import Counter
from typing import Sequence

from src.constants import SyncStrategy
from src.db.repositories import MediaRepository, ReleaseTagRepository
from src.db.services import store_operation
from src.db.session import sm_type
from src.models import MediaPayload, TagPayload
from src.services.tags import PersistedTag, TagUpsertService

__all__ = ("RelationSynchronizer",)
logger = logging.getLogger(__name__)


class RelationSynchronizer:
    """
    Makes release's tag links and media rows match the desired sets.

    REPLACE: clear everything, then insert the desired set (the release has no
    tags / media between these two steps).
    DIFF: read the current state and write only the differences.

    Every store call is awaited before the next one starts. A failure stops the
    sync and is raised as StorageError, rows written before it stay in place;
    calling the same sync again converges to the desired set.
    """

    def __init__(
        self,
        tags_service: TagUpsertService,
        session_factory: sm_type | None = None,
        strategy: SyncStrategy = SyncStrategy.REPLACE,
    ) -> None:
        self.tags_service = tags_service
        self.session_factory = session_factory
        self.strategy = strategy

    async def sync_tags(
        self, release_id: str, desired_tags: Sequence[TagPayload]
    ) -> list[PersistedTag]:
        logger.debug(
            "[SYNC] Syncing %i tags of release %r (%s)",
            len(desired_tags),
            release_id,
            self.strategy,
        )
        if self.strategy == SyncStrategy.DIFF:
            return await self._sync_tags_diff(release_id, desired_tags)

        async with store_operation("clear release tags", self.session_factory) as uow:
            await ReleaseTagRepository(session=uow.session).unlink(release_id)

        linked: list[PersistedTag] = []
        for tag in desired_tags:
            persisted_tag = await self.tags_service.upsert(tag)
            if any(item.id == persisted_tag.id for item in linked):
                continue

            async with store_operation("link tag", self.session_factory) as uow:
                await ReleaseTagRepository(session=uow.session).link(release_id, persisted_tag.id)

            linked.append(persisted_tag)

        return linked

    async def sync_media(self, release_id: str, desired_media: Sequence[MediaPayload]) -> None:
        logger.debug(
            "[SYNC] Syncing %i media of release %r (%s)",
            len(desired_media),
            release_id,
            self.strategy,
        )
        if self.strategy == SyncStrategy.DIFF:
            await self._sync_media_diff(release_id, desired_media)
            return

        async with store_operation("clear release media", self.session_factory) as uow:
            await MediaRepository(session=uow.session).delete_for_release(release_id)

        if not desired_media:
            return

        async with store_operation("insert release media", self.session_factory) as uow:
            await MediaRepository(session=uow.session).bulk_create(
                release_id, [item.model_dump(mode="json") for item in desired_media]
            )

    async def _sync_tags_diff(
        self, release_id: str, desired_tags: Sequence[TagPayload]
    ) -> list[PersistedTag]:
        async with store_operation("read release tags", self.session_factory, readonly=True) as uow:
            current_ids = set(await ReleaseTagRepository(session=uow.session).tag_ids(release_id))

        linked: list[PersistedTag] = []
        for tag in desired_tags:
            persisted_tag = await self.tags_service.upsert(tag)
            if any(item.id == persisted_tag.id for item in linked):
                continue

            if persisted_tag.id not in current_ids:
                async with store_operation("link tag", self.session_factory) as uow:
                    await ReleaseTagRepository(session=uow.session).link(
                        release_id, persisted_tag.id
                    )

            linked.append(persisted_tag)

        stale_ids = sorted(current_ids - {item.id for item in linked})
        if stale_ids:
            async with store_operation("unlink stale tags", self.session_factory) as uow:
                await ReleaseTagRepository(session=uow.session).unlink(release_id, stale_ids)

        return linked

    async def _sync_media_diff(
        self, release_id: str, desired_media: Sequence[MediaPayload]
    ) -> None:
        async with store_operation(
            "read release media", self.session_factory, readonly=True
        ) as uow:
            current_rows = await MediaRepository(session=uow.session).for_release(release_id)

        missing = Counter((str(item.type), item.url) for item in desired_media)
        stale_ids: list[int] = []
        for row in current_rows:
            key = (row.type, row.url)
            if missing[key] > 0:
                missing[key] -= 1
            else:
                stale_ids.append(row.id)

        if stale_ids:
            async with store_operation("delete stale media", self.session_factory) as uow:
                await MediaRepository(session=uow.session).delete_by_ids(stale_ids)

        # keep the order of the desired list for the appended rows
        new_rows: list[dict[str, str]] = []
        for item in desired_media:
            key = (str(item.type), item.url)
            if missing[key] > 0:
                missing[key] -= 1
                new_rows.append({"type": key[0], "url": key[1]})

        if new_rows:
            async with store_operation("insert release media", self.session_factory) as uow:
                await MediaRepository(session=uow.session).bulk_create(release_id, new_rows)
