from typing import Optional
import datetime as dt
from pydantic import BaseModel, Field, ConfigDict

from src.constants import MediaType

__all__ = (
    "HealthCheck",
    "ErrorResponse",
    "TagPayload",
    "MediaPayload",
    "ReleasePayload",
    "TagResponse",
    "MediaResponse",
    "ReleaseResponse",
)


class HealthCheck(BaseModel):
    """Health check response model."""

    status: str
    storage: str
    timestamp: dt.datetime


class ErrorResponse(BaseModel):
    """Base error response model"""

    error: str
    detail: Optional[str] = None


class TagPayload(BaseModel):
    """Desired tag (as it comes from the editor)"""

    id: Optional[str] = Field(None, description="Stored tag ID or a client placeholder")
    persisted: Optional[bool] = Field(
        None, description="Explicit identity state (overrides the placeholder-prefix convention)"
    )
    name: str = Field(..., max_length=128, description="Display label")
    color: str = Field(default_factory=str, max_length=32, description="Presentation color")


class MediaPayload(BaseModel):
    """Desired media attachment (URL is returned by the blob storage)"""

    type: MediaType
    url: str = Field(..., max_length=2048)


class ReleasePayload(BaseModel):
    """
    Partial release: scalar fields which are not set are not written on update,
    `tags` / `media` equal to None mean "do not touch this relation"
    """

    id: Optional[str] = Field(None, description="Stored release ID or a client placeholder")
    persisted: Optional[bool] = Field(
        None, description="Explicit identity state (overrides the placeholder-prefix convention)"
    )
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=64)
    datetime: Optional[dt.datetime] = Field(None, description="Release instant (ISO-8601)")
    tags: Optional[list[TagPayload]] = None
    media: Optional[list[MediaPayload]] = None

    def scalar_fields(self) -> dict[str, str | dt.datetime]:
        """Scalar release fields which were provided (and not null) in the payload"""
        return self.model_dump(
            include={"title", "description", "category", "datetime"}, exclude_none=True
        )


class TagResponse(BaseModel):
    """Tag response model for API"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str


class MediaResponse(BaseModel):
    """Media response model for API"""

    model_config = ConfigDict(from_attributes=True)

    type: MediaType
    url: str


class ReleaseResponse(BaseModel):
    """Release with its tags and media (the reconstructed graph)"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    category: str
    datetime: dt.datetime
    tags: list[TagResponse] = Field(default_factory=list)
    media: list[MediaResponse] = Field(default_factory=list)
