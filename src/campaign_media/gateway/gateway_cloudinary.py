"""Cloudinary gateway implementation over the signed REST API."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, TypeVar

import httpx

from ..config import RemoteStoreSettings
from ..media.media_models import DerivedAsset, MediaKind, RemoteAsset, StagedFile
from ..uploads.upload_errors import (
    DuplicateAssetError,
    RemoteDeleteError,
    ThumbnailError,
    UploadError,
)
from .gateway_base import AssetGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")

IMAGE_BOUNDING_BOX = "c_limit,h_800,w_1200"
THUMBNAIL_TRANSFORMATION = "c_fill,h_200,w_300"
THUMBNAIL_FOLDER = "media/thumbnails"

IMAGE_VARIANTS: dict[str, str] = {
    "thumbnail": "c_fill,h_200,w_300",
    "medium": "c_limit,h_600,w_800",
    "large": "c_limit,h_900,w_1200",
    "hero": "c_fill,h_1080,w_1920",
}

_UNSIGNED_PARAMS = frozenset({"file", "api_key", "resource_type", "cloud_name"})


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Compute the Cloudinary request signature for ``params``."""
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in _UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def cause_from_status(status_code: int) -> str:
    if status_code in (401, 403):
        return "auth"
    if status_code in (420, 429):
        return "quota"
    if status_code in (400, 415, 422):
        return "format"
    return "network"


@dataclass(slots=True)
class CloudinaryGateway(AssetGateway):
    """Upload, derive and delete assets in Cloudinary."""

    settings: RemoteStoreSettings
    clock: Callable[[], float] = time.time
    log: logging.Logger = field(default_factory=lambda: logger)

    @property
    def timeout_seconds(self) -> float:
        return self.settings.timeout_ms / 1000

    async def upload(self, staged: StagedFile, folder: str, kind: MediaKind) -> RemoteAsset:
        params: dict[str, Any] = {
            "folder": self._folder(folder),
            "public_id": self._new_public_id(kind),
            "overwrite": "false",
            "timestamp": int(self.clock()),
        }
        if kind is MediaKind.IMAGE:
            params["transformation"] = IMAGE_BOUNDING_BOX

        self.log.info(
            "gateway.upload.start",
            extra={
                "request_id": staged.request_id,
                "file_name": staged.original_name,
                "kind": kind.value,
                "folder": params["folder"],
                "size_bytes": staged.size_bytes,
            },
        )
        try:
            with staged.path.open("rb") as handle:
                body = await self._bounded(
                    self._post(
                        f"{kind.value}/upload",
                        self._signed(params),
                        files={"file": (staged.original_name, handle, staged.content_type)},
                    )
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise UploadError("remote upload timed out", cause="timeout") from exc
        except httpx.RequestError as exc:
            raise UploadError("remote store unreachable", cause="network") from exc
        except _RemoteRejected as exc:
            raise UploadError(f"remote store rejected upload: {exc}", cause=exc.cause) from exc
        except OSError as exc:
            raise UploadError("staged file is not readable", cause="unknown") from exc

        if body.get("existing"):
            raise DuplicateAssetError(str(body.get("public_id") or params["public_id"]))

        asset = self._asset_from_response(body, kind, staged.size_bytes)
        self.log.info(
            "gateway.upload.done",
            extra={
                "request_id": staged.request_id,
                "file_name": staged.original_name,
                "public_id": asset.public_id,
                "size_bytes": asset.size_bytes,
            },
        )
        return asset

    async def derive_thumbnail(self, asset: RemoteAsset) -> DerivedAsset:
        if asset.kind is not MediaKind.VIDEO:
            raise ThumbnailError("thumbnails are derived for videos only")

        basename = PurePosixPath(asset.public_id).name
        params: dict[str, Any] = {
            "file": self._frame_url(asset),
            "folder": self._folder(THUMBNAIL_FOLDER),
            "public_id": f"thumb_{basename}",
            "transformation": THUMBNAIL_TRANSFORMATION,
            "timestamp": int(self.clock()),
        }
        try:
            body = await self._bounded(self._post("image/upload", self._signed(params)))
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ThumbnailError("thumbnail derivation timed out") from exc
        except httpx.RequestError as exc:
            raise ThumbnailError("remote store unreachable") from exc
        except _RemoteRejected as exc:
            raise ThumbnailError(f"thumbnail rejected: {exc}") from exc

        url = body.get("secure_url")
        public_id = body.get("public_id")
        if not url or not public_id:
            raise ThumbnailError("thumbnail response missing secure_url/public_id")
        return DerivedAsset(name="thumbnail", url=str(url), public_id=str(public_id))

    async def delete(self, public_id: str, kind: MediaKind) -> None:
        params: dict[str, Any] = {
            "public_id": public_id,
            "invalidate": "true",
            "timestamp": int(self.clock()),
        }
        try:
            body = await self._bounded(self._post(f"{kind.value}/destroy", self._signed(params)))
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RemoteDeleteError(f"delete of '{public_id}' timed out", cause="timeout") from exc
        except httpx.RequestError as exc:
            raise RemoteDeleteError(f"delete of '{public_id}' failed", cause="network") from exc
        except _RemoteRejected as exc:
            raise RemoteDeleteError(f"delete of '{public_id}' rejected: {exc}", cause=exc.cause) from exc

        result = body.get("result")
        if result == "not found":
            self.log.info("gateway.delete.already_absent", extra={"public_id": public_id})
            return
        if result != "ok":
            raise RemoteDeleteError(f"unexpected destroy result '{result}' for '{public_id}'")
        self.log.info("gateway.delete.done", extra={"public_id": public_id, "kind": kind.value})

    def variant_urls(self, asset: RemoteAsset) -> dict[str, str]:
        if asset.kind is not MediaKind.IMAGE:
            return {}
        base = f"{self.settings.delivery_base_url}/{self.settings.cloud_name}/image/upload"
        return {
            name: f"{base}/{transformation},q_auto,f_auto/{asset.public_id}"
            for name, transformation in IMAGE_VARIANTS.items()
        }

    async def _bounded(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self.timeout_seconds)

    async def _post(
        self,
        path: str,
        data: dict[str, Any],
        *,
        files: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.settings.api_base_url}/{self.settings.cloud_name}/{path}"
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            if files is None:
                response = await client.post(url, data=data)
            else:
                response = await client.post(url, data=data, files=files)
        if response.status_code != 200:
            raise _RemoteRejected(self._error_message(response), cause_from_status(response.status_code))
        try:
            body = response.json()
        except ValueError as exc:
            raise _RemoteRejected("invalid JSON response", "unknown") from exc
        if not isinstance(body, dict):
            raise _RemoteRejected("unexpected response payload", "unknown")
        return body

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        payload = {key: value for key, value in params.items() if value is not None}
        payload["signature"] = sign_params(payload, self.settings.api_secret)
        payload["api_key"] = self.settings.api_key
        return payload

    def _folder(self, folder: str) -> str:
        return f"{self.settings.root_folder}/{folder.strip('/')}"

    def _frame_url(self, asset: RemoteAsset) -> str:
        return (
            f"{self.settings.delivery_base_url}/{self.settings.cloud_name}"
            f"/video/upload/so_0/{asset.public_id}.jpg"
        )

    def _new_public_id(self, kind: MediaKind) -> str:
        return f"{kind.value}_{int(self.clock() * 1000)}_{secrets.token_hex(5)}"

    @staticmethod
    def _asset_from_response(body: dict[str, Any], kind: MediaKind, fallback_size: int) -> RemoteAsset:
        public_id = body.get("public_id")
        secure_url = body.get("secure_url")
        if not public_id or not secure_url:
            raise UploadError("upload response missing public_id/secure_url", cause="unknown")
        duration = body.get("duration")
        return RemoteAsset(
            public_id=str(public_id),
            secure_url=str(secure_url),
            kind=kind,
            size_bytes=int(body.get("bytes") or fallback_size),
            format=body.get("format"),
            width=body.get("width"),
            height=body.get("height"),
            duration=float(duration) if duration is not None else None,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"status {response.status_code}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return f"status {response.status_code}: {error['message']}"
        return f"status {response.status_code}"


class _RemoteRejected(Exception):
    def __init__(self, message: str, cause: str) -> None:
        super().__init__(message)
        self.cause = cause
