"""Media data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any


class MediaKind(StrEnum):
    """Resource kinds understood by the remote store."""

    IMAGE = "image"
    VIDEO = "video"


class UploadTarget(StrEnum):
    """Where the uploaded media is attached."""

    GALLERY = "gallery"
    PRESS_ATTACHMENT = "press_attachment"


class FileState(StrEnum):
    """Lifecycle of a staged file inside one request."""

    STAGED = "staged"
    TRANSFERRED = "transferred"
    FAILED = "failed"
    RELEASED = "released"


@dataclass(slots=True, frozen=True)
class StagedFile:
    """A file resident in the staging area, owned by one request."""

    path: Path
    original_name: str
    content_type: str
    size_bytes: int
    request_id: str

    @property
    def extension(self) -> str:
        return Path(self.original_name).suffix.lower().lstrip(".")


@dataclass(slots=True, frozen=True)
class DerivedAsset:
    """Secondary artifact computed from an uploaded asset.

    ``public_id`` is only set when the artifact is stored remotely on its own
    and therefore needs an explicit delete.
    """

    name: str
    url: str
    public_id: str | None = None


@dataclass(slots=True)
class RemoteAsset:
    """File resident in the remote store."""

    public_id: str
    secure_url: str
    kind: MediaKind
    size_bytes: int
    format: str | None = None
    width: int | None = None
    height: int | None = None
    duration: float | None = None
    derived: list[DerivedAsset] = field(default_factory=list)

    def derived_by_name(self, name: str) -> DerivedAsset | None:
        for item in self.derived:
            if item.name == name:
                return item
        return None


@dataclass(slots=True)
class MediaRecordDraft:
    """Media record assembled from a completed upload, not yet persisted."""

    kind: MediaKind
    target: UploadTarget
    title: str
    url: str
    public_id: str
    filename: str
    content_type: str
    size_bytes: int
    entity_id: str | None = None
    description: str = ""
    width: int | None = None
    height: int | None = None
    duration: float | None = None
    format: str | None = None
    thumbnail_url: str | None = None
    thumbnail_public_id: str | None = None
    sizes: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    alt_text: str = ""
    caption: str = ""
    featured: bool = False
    published: bool = False
    uploaded_by: str | None = None


@dataclass(slots=True)
class MediaRecord:
    id: str
    kind: MediaKind
    target: UploadTarget
    title: str
    url: str
    public_id: str
    filename: str
    content_type: str
    size_bytes: int
    created_at: datetime
    entity_id: str | None = None
    description: str = ""
    width: int | None = None
    height: int | None = None
    duration: float | None = None
    format: str | None = None
    thumbnail_url: str | None = None
    thumbnail_public_id: str | None = None
    sizes: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    alt_text: str = ""
    caption: str = ""
    featured: bool = False
    published: bool = False
    uploaded_by: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Public JSON representation (no storage internals beyond URLs)."""
        return {
            "id": self.id,
            "type": self.kind.value,
            "target": self.target.value,
            "entityId": self.entity_id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "publicId": self.public_id,
            "filename": self.filename,
            "mimeType": self.content_type,
            "size": self.size_bytes,
            "dimensions": {"width": self.width, "height": self.height},
            "duration": self.duration,
            "format": self.format,
            "thumbnail": self.thumbnail_url,
            "sizes": dict(self.sizes),
            "tags": list(self.tags),
            "altText": self.alt_text,
            "caption": self.caption,
            "featured": self.featured,
            "published": self.published,
            "createdAt": self.created_at.isoformat(),
        }
