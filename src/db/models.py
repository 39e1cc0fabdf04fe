import uuid
import datetime as dt

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column

from src.utils import utcnow


def generate_id() -> str:
    """Store-side identifier for new release and tag rows"""
    return str(uuid.uuid4())


def aware_utcnow() -> dt.datetime:
    return utcnow(skip_tz=False)


class BaseModel(AsyncAttrs, DeclarativeBase):
    pass


release_tags = sa.Table(
    "release_tags",
    BaseModel.metadata,
    sa.Column(
        "release_id",
        sa.String(36),
        sa.ForeignKey("releases.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column(
        "tag_id",
        sa.String(36),
        sa.ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Tag(BaseModel):
    """Shared label which could be attached to any number of releases"""

    __tablename__ = "tags"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(sa.String(128), nullable=False)
    color: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default="")

    def __str__(self) -> str:
        return f"Tag '{self.name}'"

    def __repr__(self) -> str:
        return f"Tag(id={self.id!r}, name={self.name!r}, color={self.color!r})"


class Media(BaseModel):
    """Image or video attachment, owned by exactly one release"""

    __tablename__ = "media"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    release_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("releases.id", ondelete="CASCADE"), index=True
    )
    type: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    url: Mapped[str] = mapped_column(sa.String(2048), nullable=False)

    def __repr__(self) -> str:
        return f"Media(id={self.id!r}, release_id={self.release_id!r}, type={self.type!r})"


class Release(BaseModel):
    """Release model representing a release note in the system."""

    __tablename__ = "releases"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=generate_id)
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    category: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    datetime: Mapped[dt.datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=aware_utcnow
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=True, onupdate=aware_utcnow
    )

    # relations (read-only: rows are written explicitly by the table repositories)
    tags: Mapped[list[Tag]] = relationship(Tag, secondary=release_tags, viewonly=True)
    media: Mapped[list[Media]] = relationship(Media, viewonly=True, order_by=Media.id)

    def __str__(self) -> str:
        return f"Release '{self.title}'"

    def __repr__(self) -> str:
        return f"Release(id={self.id!r}, title={self.title!r}, category={self.category!r})"
