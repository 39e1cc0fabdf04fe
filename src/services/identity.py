"""
Create-vs-update decision for incoming releases and tags.

An entity is either `Pending` (minted on the client, never stored) or `Persisted`
(has a row in the store). Payloads may carry this state explicitly (`persisted`
flag); when they don't, the wire convention is used: client-side drafts get IDs
with the reserved `new-` prefix.
"""

import dataclasses
import logging
import uuid

from src.constants import PLACEHOLDER_ID_PREFIX
from src.exceptions import ReleaseValidationError

__all__ = (
    "Pending",
    "Persisted",
    "Identity",
    "resolve_identity",
    "is_placeholder",
    "make_placeholder_id",
)
logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Pending:
    """Entity is not stored yet and must be created"""

    draft_id: str | None = None


@dataclasses.dataclass(frozen=True)
class Persisted:
    """Entity has a row in the store and must be updated in place"""

    store_id: str


type Identity = Pending | Persisted


def is_placeholder(value: str | None) -> bool:
    return bool(value) and str(value).startswith(PLACEHOLDER_ID_PREFIX)


def make_placeholder_id() -> str:
    return f"{PLACEHOLDER_ID_PREFIX}{uuid.uuid4()}"


def resolve_identity(value: str | None, persisted: bool | None = None) -> Identity:
    """
    Classifies an incoming identifier.

    :param value: ID from the payload (stored one, placeholder or nothing)
    :param persisted: explicit state from the payload (takes precedence over ID's shape)
    :return: Pending (create) or Persisted (update)

    >>> resolve_identity(None)
    Pending(draft_id=None)
    >>> resolve_identity("new-1")
    Pending(draft_id='new-1')
    >>> resolve_identity("8c6c1a3e")
    Persisted(store_id='8c6c1a3e')
    >>> resolve_identity("8c6c1a3e", persisted=False)
    Pending(draft_id='8c6c1a3e')
    """
    if persisted is False:
        return Pending(draft_id=value or None)

    if persisted is True:
        if not value or is_placeholder(value):
            raise ReleaseValidationError(
                f"Entity is marked as persisted, but has no stored ID (got {value!r})"
            )
        return Persisted(store_id=value)

    if not value:
        return Pending()

    if is_placeholder(value):
        logger.debug("[SYNC] ID %r is a client placeholder: will be created", value)
        return Pending(draft_id=value)

    return Persisted(store_id=value)
