"""Database module for the application."""

from src.db.models import BaseModel, Release, Tag, Media, release_tags
from src.db.repositories import (
    ReleaseRowRepository,
    TagRepository,
    ReleaseTagRepository,
    MediaRepository,
)
from src.db.services import SASessionUOW, store_operation
from src.db.session import (
    get_session_factory,
    initialize_database,
    close_database,
    make_session_factory,
    ping_database,
)

__all__ = (
    # Models
    "BaseModel",
    "Release",
    "Tag",
    "Media",
    "release_tags",
    # Repositories
    "ReleaseRowRepository",
    "TagRepository",
    "ReleaseTagRepository",
    "MediaRepository",
    # Services
    "SASessionUOW",
    "store_operation",
    # Session management
    "get_session_factory",
    "initialize_database",
    "close_database",
    "make_session_factory",
    "ping_database",
)
