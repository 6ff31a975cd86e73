"""Temporary staging storage for uploaded media."""

from __future__ import annotations

import logging
import re
import secrets
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

from fastapi import UploadFile

from ..uploads.upload_errors import PayloadTooLargeError, StagingError
from .media_models import StagedFile

CHUNK_SIZE = 1 * 1024 * 1024  # 1 MiB

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(slots=True)
class TempStagingStore:
    """Owns uploaded bytes between HTTP ingestion and remote transfer."""

    root: Path
    chunk_size: int = CHUNK_SIZE
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def request_dir(self, request_id: str) -> Path:
        return self.root / request_id

    def ensure_structure(self, request_id: str) -> Path:
        directory = self.request_dir(request_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StagingError(f"cannot create staging directory for request {request_id}") from exc
        return directory

    def stage(
        self,
        stream: BinaryIO,
        declared_name: str | None,
        *,
        content_type: str | None,
        request_id: str,
    ) -> StagedFile:
        """Copy ``stream`` into a collision-proof path under the staging root."""
        directory = self.ensure_structure(request_id)
        target = directory / self._derive_filename(declared_name)
        size = 0
        try:
            with target.open("xb") as sink:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    sink.write(chunk)
                    size += len(chunk)
        except OSError as exc:
            self._remove_path(target)
            raise StagingError(f"cannot write staging file for '{declared_name}'") from exc
        except BaseException:
            self._remove_path(target)
            raise

        return self._staged(target, declared_name, content_type, size, request_id)

    async def stage_upload(
        self,
        upload: UploadFile,
        request_id: str,
        *,
        max_bytes: int | None = None,
    ) -> StagedFile:
        """Stream a FastAPI upload into staging.

        Writing stops as soon as the upload grows past ``max_bytes``; the
        partial file is removed and ``PayloadTooLargeError`` raised.
        """
        directory = self.ensure_structure(request_id)
        target = directory / self._derive_filename(upload.filename)
        size = 0
        try:
            with target.open("xb") as sink:
                while True:
                    chunk = await upload.read(self.chunk_size)
                    if not chunk:
                        break
                    size += len(chunk)
                    if max_bytes is not None and size > max_bytes:
                        raise PayloadTooLargeError(f"upload exceeds {max_bytes} bytes")
                    sink.write(chunk)
        except OSError as exc:
            self._remove_path(target)
            raise StagingError(f"cannot write staging file for '{upload.filename}'") from exc
        except BaseException:
            self._remove_path(target)
            raise
        finally:
            await upload.close()

        return self._staged(target, upload.filename, upload.content_type, size, request_id)

    def release(self, staged: StagedFile) -> bool:
        """Delete a staged file; an already missing file counts as released.

        Returns ``True`` when a file was actually removed.
        """
        try:
            staged.path.unlink()
            removed = True
        except FileNotFoundError:
            removed = False
        except OSError:
            self.log.exception(
                "media.staging.release_failed",
                extra={"request_id": staged.request_id, "file_name": staged.original_name},
            )
            raise
        self._prune_request_dir(staged.request_id)
        if removed:
            self.log.info(
                "media.staging.released",
                extra={"request_id": staged.request_id, "file_name": staged.original_name},
            )
        return removed

    def list_expired(self, max_age_seconds: int, reference_time: datetime | None = None) -> list[Path]:
        """Staged files whose mtime is older than ``max_age_seconds``."""
        if not self.root.exists():
            return []
        now = reference_time.timestamp() if reference_time is not None else time.time()
        return [
            path
            for path in sorted(self.root.rglob("*"))
            if path.is_file() and now - path.stat().st_mtime >= max_age_seconds
        ]

    def sweep_expired(self, max_age_seconds: int, reference_time: datetime | None = None) -> int:
        """Purge staged files older than ``max_age_seconds`` (fallback for cron)."""
        if not self.root.exists():
            return 0
        removed = 0
        for path in self.list_expired(max_age_seconds, reference_time):
            self._remove_path(path)
            removed += 1
            self.log.info("media.staging.sweep.removed", extra={"file_name": path.name})
        for directory in sorted(self.root.iterdir()):
            if directory.is_dir() and not any(directory.iterdir()):
                shutil.rmtree(directory, ignore_errors=True)
        return removed

    def _staged(
        self,
        target: Path,
        declared_name: str | None,
        content_type: str | None,
        size: int,
        request_id: str,
    ) -> StagedFile:
        staged = StagedFile(
            path=target.resolve(),
            original_name=declared_name or target.name,
            content_type=(content_type or "application/octet-stream").lower(),
            size_bytes=size,
            request_id=request_id,
        )
        self.log.info(
            "media.staging.staged",
            extra={
                "request_id": request_id,
                "file_name": staged.original_name,
                "size_bytes": size,
                "content_type": staged.content_type,
            },
        )
        return staged

    def _prune_request_dir(self, request_id: str) -> None:
        directory = self.request_dir(request_id)
        try:
            directory.rmdir()
        except OSError:
            # not empty or already gone
            pass

    @staticmethod
    def _remove_path(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            pass

    @staticmethod
    def _derive_filename(filename: str | None) -> str:
        stamp = int(time.time() * 1000)
        suffix = secrets.token_hex(6)
        name = Path(filename).name if filename else "upload.bin"
        safe = _UNSAFE_CHARS.sub("_", name).strip("._") or "upload.bin"
        return f"{stamp}-{suffix}-{safe}"
