"""Data structures for the upload pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Iterable

from ..media.media_models import DerivedAsset, MediaRecord, UploadTarget


class FailureReason(StrEnum):
    """Failure codes exposed in upload responses."""

    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    TOO_MANY_FILES = "too_many_files"
    EMPTY_BATCH = "empty_batch"
    STAGING_ERROR = "staging_error"
    UPLOAD_ERROR = "upload_error"
    UPLOAD_TIMEOUT = "upload_timeout"
    DUPLICATE_ASSET = "duplicate_asset"
    PERSISTENCE_ERROR = "persistence_error"
    INTERNAL_ERROR = "internal_error"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]

    @property
    def is_validation(self) -> bool:
        return self in _VALIDATION_REASONS


_FAILURE_MESSAGES: dict[FailureReason, str] = {
    FailureReason.UNSUPPORTED_MEDIA_TYPE: "File type not allowed. Use images or videos only.",
    FailureReason.PAYLOAD_TOO_LARGE: "File is too large.",
    FailureReason.TOO_MANY_FILES: "Too many files in one request.",
    FailureReason.EMPTY_BATCH: "No files uploaded.",
    FailureReason.STAGING_ERROR: "File could not be received.",
    FailureReason.UPLOAD_ERROR: "Upload to media storage failed.",
    FailureReason.UPLOAD_TIMEOUT: "Upload to media storage timed out.",
    FailureReason.DUPLICATE_ASSET: "A file with the same identifier already exists.",
    FailureReason.PERSISTENCE_ERROR: "Media record could not be saved.",
    FailureReason.INTERNAL_ERROR: "Unexpected error while processing the file.",
}

_VALIDATION_REASONS = frozenset(
    {
        FailureReason.UNSUPPORTED_MEDIA_TYPE,
        FailureReason.PAYLOAD_TOO_LARGE,
        FailureReason.TOO_MANY_FILES,
        FailureReason.EMPTY_BATCH,
    }
)


def parse_tags(raw: str | Iterable[str] | None) -> list[str]:
    """Normalise tags given as comma separated text or a list."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    tags: list[str] = []
    for item in items:
        tag = str(item).strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


@dataclass(slots=True)
class UploadMetadata:
    """Metadata shared by every file of one upload request."""

    target: UploadTarget = UploadTarget.GALLERY
    title: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    alt_text: str = ""
    caption: str = ""
    featured: bool = False
    published: bool = False
    entity_id: str | None = None
    uploaded_by: str | None = None


@dataclass(slots=True)
class Uploaded:
    filename: str
    url: str
    public_id: str
    derived_assets: list[DerivedAsset] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    record: MediaRecord | None = None


@dataclass(slots=True)
class Failed:
    filename: str
    code: FailureReason
    reason: str = ""

    def __post_init__(self) -> None:
        if not self.reason:
            self.reason = self.code.message


UploadOutcome = Uploaded | Failed


@dataclass(slots=True)
class BatchResult:
    """Ordered outcomes of one upload request."""

    outcomes: list[UploadOutcome] = field(default_factory=list)
    records: list[MediaRecord] = field(default_factory=list)
    request_rejected: FailureReason | None = None
    persistence_failed: bool = False

    @property
    def uploaded(self) -> list[Uploaded]:
        return [item for item in self.outcomes if isinstance(item, Uploaded)]

    @property
    def failed(self) -> list[Failed]:
        return [item for item in self.outcomes if isinstance(item, Failed)]

    @property
    def status_code(self) -> int:
        if self.records and not self.persistence_failed:
            return 201
        if self.request_rejected is not None:
            return 400
        failed = self.failed
        if failed and all(item.code.is_validation for item in failed):
            return 400
        return 500

    @property
    def success(self) -> bool:
        return self.status_code == 201

    def to_response(self) -> dict[str, Any]:
        errors = [{"filename": item.filename, "reason": item.reason} for item in self.failed]
        if self.request_rejected is not None and not errors:
            errors.append({"filename": None, "reason": self.request_rejected.message})
        return {
            "success": self.success,
            "data": [record.to_payload() for record in self.records],
            "errors": errors,
        }
