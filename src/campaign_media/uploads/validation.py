"""Upload validation utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import UploadLimits
from ..gateway.classification import classify_kind
from ..media.media_models import MediaKind, StagedFile
from .upload_errors import (
    EmptyBatchError,
    PayloadTooLargeError,
    TooManyFilesError,
    UnsupportedMediaError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadValidator:
    """Validate upload batches and staged files against configured limits."""

    limits: UploadLimits

    def check_batch(self, count: int) -> None:
        if count <= 0:
            logger.warning("upload.batch.empty")
            raise EmptyBatchError("no files uploaded")
        if count > self.limits.max_files:
            logger.warning(
                "upload.batch.too_many_files",
                extra={"files": count, "max_files": self.limits.max_files},
            )
            raise TooManyFilesError(f"{count} files exceed the limit of {self.limits.max_files}")

    def check_file(self, staged: StagedFile) -> MediaKind:
        kind = classify_kind(staged.original_name, staged.content_type)
        if kind is None:
            logger.warning(
                "upload.file.unsupported_media",
                extra={
                    "request_id": staged.request_id,
                    "file_name": staged.original_name,
                    "content_type": staged.content_type,
                },
            )
            raise UnsupportedMediaError(staged.content_type)

        if staged.size_bytes > self.limits.max_file_bytes:
            logger.warning(
                "upload.file.payload_too_large",
                extra={
                    "request_id": staged.request_id,
                    "size_bytes": staged.size_bytes,
                    "limit_bytes": self.limits.max_file_bytes,
                },
            )
            raise PayloadTooLargeError(str(staged.size_bytes))

        logger.info(
            "upload.file.validated",
            extra={
                "request_id": staged.request_id,
                "file_name": staged.original_name,
                "size_bytes": staged.size_bytes,
                "kind": kind.value,
            },
        )
        return kind
