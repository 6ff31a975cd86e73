"""Media kind classification by extension and MIME type."""

from __future__ import annotations

from pathlib import Path

from ..media.media_models import MediaKind

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "avi", "webm", "mkv"})


def extension_of(filename: str | None) -> str:
    if not filename:
        return ""
    return Path(filename).suffix.lower().lstrip(".")


def classify_kind(filename: str | None, content_type: str | None = None) -> MediaKind | None:
    """Return the media kind, or ``None`` when the file is not supported.

    The extension is authoritative; a known extension whose MIME major type
    contradicts it is rejected. Files without an extension fall back to MIME.
    """
    ext = extension_of(filename)
    major = (content_type or "").lower().split("/", 1)[0]

    if ext in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE if major in ("", "image", "application") else None
    if ext in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO if major in ("", "video", "application") else None
    if ext:
        return None
    if major == "image":
        return MediaKind.IMAGE
    if major == "video":
        return MediaKind.VIDEO
    return None
