"""Generic DMS document model, independent of the remote backend."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, field_validator


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    APPROVED = "approved"


class AttachedFile(BaseModel):
    """
    Descriptor of the blob attached to a document. Only the stored filename is kept, never the bytes.
    """
    name: str
    media_type: str | None = None


def normalize_tags(value) -> list[str]:
    """
    Strips tags, drops empty ones and removes duplicates while keeping first-seen order.

    Raises:
        ValueError: If the value is not a list of strings.
    """
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError("tags must be a list of strings")
    tags: list[str] = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValueError(f"tag {tag!r} is not a string")
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class Document(BaseModel):
    """
    Represents a single document with all its metadata, as returned by a DMS client.

    A document without department_id is visible to every authenticated principal.
    """
    engine: str
    id: int
    title: str
    description: str | None = None
    content: str | None = None
    status: DocumentStatus = DocumentStatus.DRAFT
    tags: list[str] = []
    department_id: int | None = None
    category_id: int | None = None
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime
    file: AttachedFile | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value):
        # the documents service omits the status of freshly imported documents
        if value is None or value == "":
            return DocumentStatus.DRAFT
        return value.lower() if isinstance(value, str) else value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        return normalize_tags(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
