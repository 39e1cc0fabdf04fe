import dataclasses
import logging

from src.db.repositories import TagRepository
from src.db.services import store_operation
from src.db.session import sm_type
from src.exceptions import InstanceLookupError
from src.models import TagPayload
from src.services.identity import Persisted, resolve_identity

__all__ = ("PersistedTag", "TagUpsertService")
logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class PersistedTag:
    id: str
    name: str
    color: str


class TagUpsertService:
    """
    Persists exactly one tag row per call (insert or in-place update).

    There is no lookup by name before inserting: two releases which create
    "Performance" at the same time get two different tag rows. Nothing covers
    the check-then-insert sequence with a transaction, so duplicates are accepted
    instead of being masked by a racy pre-check.
    """

    def __init__(self, session_factory: sm_type | None = None) -> None:
        self.session_factory = session_factory

    async def upsert(self, tag: TagPayload) -> PersistedTag:
        identity = resolve_identity(tag.id, persisted=tag.persisted)
        value = {"name": tag.name, "color": tag.color}

        if isinstance(identity, Persisted):
            async with store_operation("update tag", self.session_factory) as uow:
                updated = await TagRepository(session=uow.session).update_by_ids(
                    [identity.store_id], value
                )
                if not updated:
                    raise InstanceLookupError(f"Tag with ID {identity.store_id} not found")

            logger.debug("[SYNC] Tag %r updated: %s", identity.store_id, value)
            return PersistedTag(id=identity.store_id, **value)

        async with store_operation("insert tag", self.session_factory) as uow:
            instance = await TagRepository(session=uow.session).create(value)

        logger.info("[SYNC] Tag %r created: %r", tag.name, instance.id)
        return PersistedTag(id=instance.id, **value)
