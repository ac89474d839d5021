"""Request schemas for moment endpoints."""
from typing import Optional

from pydantic import BaseModel, Field

# Properties a client may set on a Moment node. PATCH only ever writes these.
MOMENT_UPDATABLE_FIELDS = ("title", "content", "summary", "preview", "timestamp")


class MomentCreate(BaseModel):
    """Body of ``POST /moments``. Title or content must be non-blank."""

    title: Optional[str] = Field(None, description="Moment title")
    content: Optional[str] = Field(None, description="Rich-text body")
    summary: Optional[str] = Field(None, description="Short summary")
    preview: Optional[str] = Field(
        None, description="List preview (defaults to the start of content)"
    )
    timestamp: Optional[str] = Field(None, description="In-story time of the moment")

    @property
    def is_blank(self) -> bool:
        return not (self.title or "").strip() and not (self.content or "").strip()


class MomentUpdate(BaseModel):
    """
    Body of ``PATCH /moments/{id}``.

    Only fields present in the request are written; an explicit ``null``
    clears the property.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    summary: Optional[str] = None
    preview: Optional[str] = None
    timestamp: Optional[str] = None


class CharacterCreate(BaseModel):
    """Body of ``POST /neo4j/test``."""

    name: str = Field(..., min_length=1, description="Character name")
    description: Optional[str] = Field(None, description="Optional description")
