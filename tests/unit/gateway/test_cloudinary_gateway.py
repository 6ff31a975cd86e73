from __future__ import annotations

import asyncio
import hashlib
import io
from pathlib import Path
from typing import Any

import httpx
import pytest

from src.campaign_media.config import RemoteStoreSettings
from src.campaign_media.gateway.gateway_cloudinary import CloudinaryGateway, cause_from_status, sign_params
from src.campaign_media.gateway.gateway_factory import create_gateway
from src.campaign_media.media.media_models import MediaKind, RemoteAsset, StagedFile
from src.campaign_media.media.staging_store import TempStagingStore
from src.campaign_media.uploads.upload_errors import (
    DuplicateAssetError,
    RemoteDeleteError,
    ThumbnailError,
    UploadError,
)

FIXED_NOW = 1_790_000_000.0


class DummyHTTPResponse:
    def __init__(self, status_code: int, json_data: Any = None) -> None:
        self.status_code = status_code
        self._json_data = json_data

    def json(self) -> Any:
        if self._json_data is None:
            raise ValueError("No JSON data")
        return self._json_data


class DummyAsyncClient:
    def __init__(self, responses: list[DummyHTTPResponse | Exception], calls: list[dict[str, Any]]) -> None:
        self._responses = responses
        self._calls = calls

    async def __aenter__(self) -> "DummyAsyncClient":  # pragma: no cover - helper
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:  # pragma: no cover - helper
        return None

    async def post(self, url: str, data: dict[str, Any], files: dict[str, Any] | None = None) -> DummyHTTPResponse:
        call: dict[str, Any] = {"url": url, "data": dict(data)}
        if files is not None:
            name, handle, content_type = files["file"]
            call["file"] = (name, handle.read(), content_type)
        self._calls.append(call)
        if not self._responses:
            raise RuntimeError("No post responses queued")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def settings() -> RemoteStoreSettings:
    return RemoteStoreSettings(cloud_name="campaign-test", api_key="key-1", api_secret="secret-1", timeout_ms=2000)


@pytest.fixture
def gateway(settings: RemoteStoreSettings) -> CloudinaryGateway:
    return CloudinaryGateway(settings=settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def http_calls(monkeypatch) -> tuple[list[DummyHTTPResponse | Exception], list[dict[str, Any]]]:
    responses: list[DummyHTTPResponse | Exception] = []
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr("httpx.AsyncClient", lambda *args, **kwargs: DummyAsyncClient(responses, calls))
    return responses, calls


@pytest.fixture
def staged_jpeg(tmp_path: Path) -> StagedFile:
    store = TempStagingStore(root=tmp_path / "staging")
    return store.stage(io.BytesIO(b"jpeg-bytes"), "a.jpg", content_type="image/jpeg", request_id="r1")


def _upload_body(public_id: str, **extra: Any) -> dict[str, Any]:
    body = {
        "public_id": public_id,
        "secure_url": f"https://res.cloudinary.com/campaign-test/image/upload/{public_id}.jpg",
        "bytes": 10,
        "format": "jpg",
        "width": 1200,
        "height": 800,
    }
    body.update(extra)
    return body


def test_sign_params_matches_cloudinary_algorithm() -> None:
    params = {"timestamp": 1315060510, "public_id": "sample", "file": "ignored", "api_key": "ignored", "eager": ""}

    expected = hashlib.sha1(b"public_id=sample&timestamp=1315060510abcd").hexdigest()

    assert sign_params(params, "abcd") == expected


@pytest.mark.parametrize(
    ("status_code", "cause"),
    [(401, "auth"), (403, "auth"), (420, "quota"), (429, "quota"), (400, "format"), (502, "network")],
)
def test_cause_from_status(status_code: int, cause: str) -> None:
    assert cause_from_status(status_code) == cause


@pytest.mark.asyncio
async def test_upload_image_sends_signed_bounded_request(gateway, http_calls, staged_jpeg) -> None:
    responses, calls = http_calls
    responses.append(DummyHTTPResponse(200, _upload_body("campaign2027/media/images/image_1")))

    asset = await gateway.upload(staged_jpeg, "media/images", MediaKind.IMAGE)

    assert asset.public_id == "campaign2027/media/images/image_1"
    assert asset.kind is MediaKind.IMAGE
    assert (asset.width, asset.height, asset.size_bytes) == (1200, 800, 10)
    call = calls[0]
    assert call["url"] == "https://api.cloudinary.com/v1_1/campaign-test/image/upload"
    assert call["file"] == ("a.jpg", b"jpeg-bytes", "image/jpeg")
    data = call["data"]
    assert data["folder"] == "campaign2027/media/images"
    assert data["transformation"] == "c_limit,h_800,w_1200"
    assert data["overwrite"] == "false"
    assert data["timestamp"] == int(FIXED_NOW)
    assert data["public_id"].startswith(f"image_{int(FIXED_NOW * 1000)}_")
    assert data["api_key"] == "key-1"
    unsigned = {key: value for key, value in data.items() if key not in ("signature", "api_key")}
    assert data["signature"] == sign_params(unsigned, "secret-1")
    assert staged_jpeg.path.exists()


@pytest.mark.asyncio
async def test_upload_video_is_not_transformed(gateway, http_calls, tmp_path) -> None:
    responses, calls = http_calls
    store = TempStagingStore(root=tmp_path / "staging")
    staged = store.stage(io.BytesIO(b"mp4"), "b.mp4", content_type="video/mp4", request_id="r1")
    responses.append(DummyHTTPResponse(200, _upload_body("campaign2027/media/videos/v1", duration=31.2)))

    asset = await gateway.upload(staged, "media/videos", MediaKind.VIDEO)

    assert calls[0]["url"].endswith("/video/upload")
    assert "transformation" not in calls[0]["data"]
    assert asset.duration == pytest.approx(31.2)


@pytest.mark.asyncio
async def test_upload_existing_asset_raises_duplicate(gateway, http_calls, staged_jpeg) -> None:
    responses, _ = http_calls
    responses.append(DummyHTTPResponse(200, _upload_body("campaign2027/media/images/taken", existing=True)))

    with pytest.raises(DuplicateAssetError) as exc_info:
        await gateway.upload(staged_jpeg, "media/images", MediaKind.IMAGE)

    assert exc_info.value.cause == "duplicate"
    assert exc_info.value.public_id == "campaign2027/media/images/taken"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "cause"),
    [
        (DummyHTTPResponse(401, {"error": {"message": "Invalid Signature"}}), "auth"),
        (DummyHTTPResponse(420, {"error": {"message": "Rate Limit Exceeded"}}), "quota"),
        (DummyHTTPResponse(400, {"error": {"message": "Invalid image file"}}), "format"),
        (httpx.ConnectError("refused"), "network"),
        (httpx.ReadTimeout("slow"), "timeout"),
        (DummyHTTPResponse(200, None), "unknown"),
    ],
)
async def test_upload_failures_map_to_cause(gateway, http_calls, staged_jpeg, response, cause) -> None:
    responses, _ = http_calls
    responses.append(response)

    with pytest.raises(UploadError) as exc_info:
        await gateway.upload(staged_jpeg, "media/images", MediaKind.IMAGE)

    assert exc_info.value.cause == cause
    assert staged_jpeg.path.exists()


@pytest.mark.asyncio
async def test_upload_timeout_is_bounded(settings, monkeypatch, staged_jpeg) -> None:
    class HangingClient(DummyAsyncClient):
        async def post(self, url, data, files=None):
            await asyncio.sleep(5)

    monkeypatch.setattr("httpx.AsyncClient", lambda *args, **kwargs: HangingClient([], []))
    settings.timeout_ms = 20
    gateway = CloudinaryGateway(settings=settings)

    with pytest.raises(UploadError) as exc_info:
        await gateway.upload(staged_jpeg, "media/images", MediaKind.IMAGE)

    assert exc_info.value.cause == "timeout"


@pytest.mark.asyncio
async def test_derive_thumbnail_uploads_first_frame(gateway, http_calls) -> None:
    responses, calls = http_calls
    responses.append(
        DummyHTTPResponse(
            200,
            {
                "public_id": "campaign2027/media/thumbnails/thumb_video_1",
                "secure_url": "https://res.cloudinary.com/campaign-test/image/upload/thumb_video_1.jpg",
            },
        )
    )
    asset = RemoteAsset(
        public_id="campaign2027/media/videos/video_1",
        secure_url="https://res.cloudinary.com/campaign-test/video/upload/video_1.mp4",
        kind=MediaKind.VIDEO,
        size_bytes=100,
    )

    derived = await gateway.derive_thumbnail(asset)

    assert derived.name == "thumbnail"
    assert derived.public_id == "campaign2027/media/thumbnails/thumb_video_1"
    data = calls[0]["data"]
    assert calls[0]["url"].endswith("/image/upload")
    assert data["file"] == (
        "https://res.cloudinary.com/campaign-test/video/upload/so_0/campaign2027/media/videos/video_1.jpg"
    )
    assert data["transformation"] == "c_fill,h_200,w_300"
    assert data["public_id"] == "thumb_video_1"
    assert data["folder"] == "campaign2027/media/thumbnails"


@pytest.mark.asyncio
async def test_derive_thumbnail_failure_raises_thumbnail_error(gateway, http_calls) -> None:
    responses, _ = http_calls
    responses.append(DummyHTTPResponse(500, {"error": {"message": "boom"}}))
    asset = RemoteAsset(public_id="v", secure_url="https://x/v.mp4", kind=MediaKind.VIDEO, size_bytes=1)

    with pytest.raises(ThumbnailError):
        await gateway.derive_thumbnail(asset)


@pytest.mark.asyncio
async def test_derive_thumbnail_rejects_images(gateway, http_calls) -> None:
    asset = RemoteAsset(public_id="i", secure_url="https://x/i.jpg", kind=MediaKind.IMAGE, size_bytes=1)

    with pytest.raises(ThumbnailError):
        await gateway.derive_thumbnail(asset)

    assert http_calls[1] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("result", ["ok", "not found"])
async def test_delete_is_idempotent(gateway, http_calls, result) -> None:
    responses, calls = http_calls
    responses.append(DummyHTTPResponse(200, {"result": result}))

    await gateway.delete("campaign2027/media/videos/video_1", MediaKind.VIDEO)

    assert calls[0]["url"] == "https://api.cloudinary.com/v1_1/campaign-test/video/destroy"
    assert calls[0]["data"]["public_id"] == "campaign2027/media/videos/video_1"
    assert calls[0]["data"]["invalidate"] == "true"


@pytest.mark.asyncio
async def test_delete_failure_raises(gateway, http_calls) -> None:
    responses, _ = http_calls
    responses.append(httpx.ConnectError("refused"))

    with pytest.raises(RemoteDeleteError) as exc_info:
        await gateway.delete("x", MediaKind.IMAGE)

    assert exc_info.value.cause == "network"


def test_variant_urls_only_for_images(gateway) -> None:
    image = RemoteAsset(public_id="campaign2027/media/images/i1", secure_url="u", kind=MediaKind.IMAGE, size_bytes=1)
    video = RemoteAsset(public_id="v1", secure_url="u", kind=MediaKind.VIDEO, size_bytes=1)

    variants = gateway.variant_urls(image)

    assert set(variants) == {"thumbnail", "medium", "large", "hero"}
    assert variants["hero"] == (
        "https://res.cloudinary.com/campaign-test/image/upload/c_fill,h_1080,w_1920,q_auto,f_auto/campaign2027/media/images/i1"
    )
    assert gateway.variant_urls(video) == {}


def test_create_gateway_rejects_unknown_backend(settings) -> None:
    assert isinstance(create_gateway("Cloudinary", settings=settings), CloudinaryGateway)
    with pytest.raises(ValueError):
        create_gateway("s3", settings=settings)
