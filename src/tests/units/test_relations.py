from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest

from src.constants import MediaType, SyncStrategy
from src.db.models import Media
from src.exceptions import InstanceLookupError, StorageError
from src.models import MediaPayload, TagPayload
from src.services.relations import RelationSynchronizer
from src.services.tags import PersistedTag, TagUpsertService

RELEASE_ID = "rel-1"


def _fake_store_operation(actions: list[str]) -> Any:

    @asynccontextmanager
    async def store_operation(
        action: str, session_factory: Any = None, readonly: bool = False
    ) -> AsyncGenerator[MagicMock, None]:
        actions.append(action)
        yield MagicMock()

    return store_operation


@pytest.fixture
def store_actions() -> Generator[list[str], None]:
    actions: list[str] = []
    with (
        patch("src.services.relations.store_operation", _fake_store_operation(actions)),
        patch("src.services.tags.store_operation", _fake_store_operation(actions)),
    ):
        yield actions


@pytest.fixture
def links_repo() -> Generator[AsyncMock, None]:
    with patch("src.services.relations.ReleaseTagRepository") as mock_class:
        mock_class.return_value = AsyncMock()
        yield mock_class.return_value


@pytest.fixture
def media_repo() -> Generator[AsyncMock, None]:
    with patch("src.services.relations.MediaRepository") as mock_class:
        mock_class.return_value = AsyncMock()
        yield mock_class.return_value


@pytest.fixture
def tags_service() -> AsyncMock:
    return AsyncMock(spec=TagUpsertService)


def _synchronizer(tags_service: AsyncMock, strategy: SyncStrategy) -> RelationSynchronizer:
    return RelationSynchronizer(tags_service=tags_service, strategy=strategy)


def _tag(tag_id: str, name: str = "") -> PersistedTag:
    return PersistedTag(id=tag_id, name=name or tag_id, color="")


class TestTagUpsertService:

    @pytest.fixture
    def tag_repo(self) -> Generator[AsyncMock, None]:
        with patch("src.services.tags.TagRepository") as mock_class:
            mock_class.return_value = AsyncMock()
            yield mock_class.return_value

    @pytest.mark.asyncio
    async def test_pending_tag__inserted(
        self, store_actions: list[str], tag_repo: AsyncMock
    ) -> None:
        tag_repo.create.return_value = MagicMock(id="tag-1")

        result = await TagUpsertService().upsert(TagPayload(id="new-1", name="perf", color="#f00"))

        assert result == PersistedTag(id="tag-1", name="perf", color="#f00")
        tag_repo.create.assert_awaited_once_with({"name": "perf", "color": "#f00"})
        assert store_actions == ["insert tag"]

    @pytest.mark.asyncio
    async def test_persisted_tag__updated_in_place(
        self, store_actions: list[str], tag_repo: AsyncMock
    ) -> None:
        tag_repo.update_by_ids.return_value = 1

        result = await TagUpsertService().upsert(TagPayload(id="tag-1", name="speed"))

        assert result == PersistedTag(id="tag-1", name="speed", color="")
        tag_repo.update_by_ids.assert_awaited_once_with(["tag-1"], {"name": "speed", "color": ""})
        tag_repo.create.assert_not_awaited()
        assert store_actions == ["update tag"]

    @pytest.mark.asyncio
    async def test_persisted_tag__missing(
        self, store_actions: list[str], tag_repo: AsyncMock
    ) -> None:
        tag_repo.update_by_ids.return_value = 0

        with pytest.raises(InstanceLookupError, match="Tag with ID tag-1 not found"):
            await TagUpsertService().upsert(TagPayload(id="tag-1", name="speed"))


class TestReplaceTags:

    @pytest.mark.asyncio
    async def test_unlink_then_link_in_order(
        self,
        store_actions: list[str],
        links_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        tags_service.upsert.side_effect = [_tag("t1"), _tag("t2")]
        desired = [TagPayload(id="new-1", name="t1"), TagPayload(id="t2", name="t2")]

        linked = await _synchronizer(tags_service, SyncStrategy.REPLACE).sync_tags(
            RELEASE_ID, desired
        )

        assert linked == [_tag("t1"), _tag("t2")]
        assert store_actions == ["clear release tags", "link tag", "link tag"]
        links_repo.unlink.assert_awaited_once_with(RELEASE_ID)
        assert links_repo.link.await_args_list == [call(RELEASE_ID, "t1"), call(RELEASE_ID, "t2")]
        assert tags_service.upsert.await_args_list == [call(desired[0]), call(desired[1])]

    @pytest.mark.asyncio
    async def test_same_tag_linked_once(
        self,
        store_actions: list[str],
        links_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        tags_service.upsert.side_effect = [_tag("t1"), _tag("t1")]
        desired = [TagPayload(id="t1", name="t1"), TagPayload(id="t1", name="t1")]

        linked = await _synchronizer(tags_service, SyncStrategy.REPLACE).sync_tags(
            RELEASE_ID, desired
        )

        assert linked == [_tag("t1")]
        links_repo.link.assert_awaited_once_with(RELEASE_ID, "t1")

    @pytest.mark.asyncio
    async def test_empty_list__only_clears(
        self,
        store_actions: list[str],
        links_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        linked = await _synchronizer(tags_service, SyncStrategy.REPLACE).sync_tags(RELEASE_ID, [])

        assert linked == []
        assert store_actions == ["clear release tags"]
        tags_service.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_stops_sync(
        self,
        store_actions: list[str],
        links_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        tags_service.upsert.side_effect = [
            _tag("t1"),
            StorageError("Unable to insert tag"),
            _tag("t3"),
        ]
        desired = [TagPayload(name="t1"), TagPayload(name="t2"), TagPayload(name="t3")]

        with pytest.raises(StorageError, match="Unable to insert tag"):
            await _synchronizer(tags_service, SyncStrategy.REPLACE).sync_tags(RELEASE_ID, desired)

        links_repo.link.assert_awaited_once_with(RELEASE_ID, "t1")
        assert tags_service.upsert.await_count == 2


class TestReplaceMedia:

    @pytest.mark.asyncio
    async def test_delete_then_insert(
        self,
        store_actions: list[str],
        media_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        desired = [
            MediaPayload(type=MediaType.IMAGE, url="https://cdn/1.png"),
            MediaPayload(type=MediaType.VIDEO, url="https://cdn/2.mp4"),
        ]

        await _synchronizer(tags_service, SyncStrategy.REPLACE).sync_media(RELEASE_ID, desired)

        assert store_actions == ["clear release media", "insert release media"]
        media_repo.delete_for_release.assert_awaited_once_with(RELEASE_ID)
        media_repo.bulk_create.assert_awaited_once_with(
            RELEASE_ID,
            [
                {"type": "image", "url": "https://cdn/1.png"},
                {"type": "video", "url": "https://cdn/2.mp4"},
            ],
        )

    @pytest.mark.asyncio
    async def test_empty_list__only_clears(
        self,
        store_actions: list[str],
        media_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        await _synchronizer(tags_service, SyncStrategy.REPLACE).sync_media(RELEASE_ID, [])

        assert store_actions == ["clear release media"]
        media_repo.bulk_create.assert_not_awaited()


class TestDiffTags:

    @pytest.mark.asyncio
    async def test_links_missing_and_unlinks_stale(
        self,
        store_actions: list[str],
        links_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        links_repo.tag_ids.return_value = ["t1", "t3"]
        tags_service.upsert.side_effect = [_tag("t1"), _tag("t2")]
        desired = [TagPayload(id="t1", name="t1"), TagPayload(id="new-2", name="t2")]

        linked = await _synchronizer(tags_service, SyncStrategy.DIFF).sync_tags(
            RELEASE_ID, desired
        )

        assert linked == [_tag("t1"), _tag("t2")]
        assert store_actions == ["read release tags", "link tag", "unlink stale tags"]
        links_repo.link.assert_awaited_once_with(RELEASE_ID, "t2")
        links_repo.unlink.assert_awaited_once_with(RELEASE_ID, ["t3"])

    @pytest.mark.asyncio
    async def test_nothing_changed__no_link_writes(
        self,
        store_actions: list[str],
        links_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        links_repo.tag_ids.return_value = ["t1"]
        tags_service.upsert.side_effect = [_tag("t1")]

        await _synchronizer(tags_service, SyncStrategy.DIFF).sync_tags(
            RELEASE_ID, [TagPayload(id="t1", name="t1")]
        )

        links_repo.link.assert_not_awaited()
        links_repo.unlink.assert_not_awaited()


class TestDiffMedia:

    @staticmethod
    def _row(row_id: int, url: str, media_type: str = "image") -> Media:
        return Media(id=row_id, release_id=RELEASE_ID, type=media_type, url=url)

    @pytest.mark.asyncio
    async def test_deletes_stale_and_appends_missing(
        self,
        store_actions: list[str],
        media_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        media_repo.for_release.return_value = [self._row(1, "a"), self._row(2, "b")]
        desired = [
            MediaPayload(type=MediaType.IMAGE, url="b"),
            MediaPayload(type=MediaType.VIDEO, url="c"),
        ]

        await _synchronizer(tags_service, SyncStrategy.DIFF).sync_media(RELEASE_ID, desired)

        assert store_actions == [
            "read release media",
            "delete stale media",
            "insert release media",
        ]
        media_repo.delete_by_ids.assert_awaited_once_with([1])
        media_repo.bulk_create.assert_awaited_once_with(
            RELEASE_ID, [{"type": "video", "url": "c"}]
        )

    @pytest.mark.asyncio
    async def test_duplicates_are_counted(
        self,
        store_actions: list[str],
        media_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        media_repo.for_release.return_value = [self._row(1, "a")]
        desired = [
            MediaPayload(type=MediaType.IMAGE, url="a"),
            MediaPayload(type=MediaType.IMAGE, url="a"),
        ]

        await _synchronizer(tags_service, SyncStrategy.DIFF).sync_media(RELEASE_ID, desired)

        media_repo.delete_by_ids.assert_not_awaited()
        media_repo.bulk_create.assert_awaited_once_with(
            RELEASE_ID, [{"type": "image", "url": "a"}]
        )

    @pytest.mark.asyncio
    async def test_same_media__no_writes(
        self,
        store_actions: list[str],
        media_repo: AsyncMock,
        tags_service: AsyncMock,
    ) -> None:
        media_repo.for_release.return_value = [self._row(1, "a")]

        await _synchronizer(tags_service, SyncStrategy.DIFF).sync_media(
            RELEASE_ID, [MediaPayload(type=MediaType.IMAGE, url="a")]
        )

        assert store_actions == ["read release media"]
