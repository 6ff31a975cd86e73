"""Domain-specific exceptions for the media upload pipeline."""

from __future__ import annotations


class MediaPipelineError(Exception):
    """Base class for upload pipeline errors."""


class ConfigurationError(MediaPipelineError):
    """Raised at startup when mandatory settings are missing."""


class StagingError(MediaPipelineError):
    """Raised when the local staging area cannot accept a file."""


class ValidationRejected(MediaPipelineError):
    """Raised when a file or request is rejected before any remote call."""


class UnsupportedMediaError(ValidationRejected):
    """Raised when extension or Content-Type is not allowed."""


class PayloadTooLargeError(ValidationRejected):
    """Raised when a file exceeds the configured size limit."""


class TooManyFilesError(ValidationRejected):
    """Raised when a batch holds more files than allowed."""


class EmptyBatchError(ValidationRejected):
    """Raised when a request carries no files."""


class UploadError(MediaPipelineError):
    """Raised when the remote store rejects or fails a transfer.

    ``cause`` is one of ``network``, ``timeout``, ``auth``, ``quota``,
    ``format``, ``duplicate`` or ``unknown``.
    """

    def __init__(self, message: str, *, cause: str = "unknown") -> None:
        super().__init__(message)
        self.cause = cause


class DuplicateAssetError(UploadError):
    """Raised when the remote store already holds an asset with the same id."""

    def __init__(self, public_id: str) -> None:
        super().__init__(f"asset '{public_id}' already exists", cause="duplicate")
        self.public_id = public_id


class RemoteDeleteError(MediaPipelineError):
    """Raised when the remote store refuses to delete an asset."""

    def __init__(self, message: str, *, cause: str = "unknown") -> None:
        super().__init__(message)
        self.cause = cause


class ThumbnailError(MediaPipelineError):
    """Raised when thumbnail derivation fails (never fatal for the upload)."""


class PersistenceError(MediaPipelineError):
    """Raised when media records cannot be stored."""


__all__ = [
    "ConfigurationError",
    "DuplicateAssetError",
    "EmptyBatchError",
    "MediaPipelineError",
    "PayloadTooLargeError",
    "PersistenceError",
    "RemoteDeleteError",
    "StagingError",
    "ThumbnailError",
    "TooManyFilesError",
    "UnsupportedMediaError",
    "UploadError",
    "ValidationRejected",
]
