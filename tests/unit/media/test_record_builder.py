from __future__ import annotations

import pytest

from src.campaign_media.media.media_models import DerivedAsset, MediaKind, RemoteAsset, UploadTarget
from src.campaign_media.media.record_builder import MediaRecordBuilder
from src.campaign_media.uploads.upload_models import UploadMetadata
from tests.mocks.gateway import FakeGateway


@pytest.fixture
def builder() -> MediaRecordBuilder:
    return MediaRecordBuilder(FakeGateway())


def test_image_draft_carries_dimensions_and_variants(builder, stage_file) -> None:
    staged = stage_file("rally.jpg", "image/jpeg")
    asset = RemoteAsset(
        public_id="campaign2027/media/images/image_1",
        secure_url="https://cdn/image_1.jpg",
        kind=MediaKind.IMAGE,
        size_bytes=0,
        format="jpg",
        width=1200,
        height=800,
    )
    metadata = UploadMetadata(title="Town hall", tags=["rally", "ohio"], featured=True)

    draft = builder.build(staged, asset, metadata)

    assert draft.kind is MediaKind.IMAGE
    assert draft.target is UploadTarget.GALLERY
    assert draft.title == "Town hall"
    assert draft.alt_text == "Town hall"
    assert draft.url == "https://cdn/image_1.jpg"
    assert (draft.width, draft.height) == (1200, 800)
    assert draft.size_bytes == staged.size_bytes
    assert draft.filename == "rally.jpg"
    assert draft.tags == ["rally", "ohio"]
    assert draft.featured is True
    assert set(draft.sizes) == {"thumbnail", "large"}
    assert draft.thumbnail_url is None


def test_video_draft_uses_thumbnail_and_filename_title(builder, stage_file) -> None:
    staged = stage_file("speech.mp4", "video/mp4")
    asset = RemoteAsset(
        public_id="v1",
        secure_url="https://cdn/v1.mp4",
        kind=MediaKind.VIDEO,
        size_bytes=2048,
        duration=64.0,
        derived=[DerivedAsset(name="thumbnail", url="https://cdn/thumb.jpg", public_id="thumb_v1")],
    )
    metadata = UploadMetadata(target=UploadTarget.PRESS_ATTACHMENT, entity_id="press-7")

    draft = builder.build(staged, asset, metadata)

    assert draft.title == "speech.mp4"
    assert draft.thumbnail_url == "https://cdn/thumb.jpg"
    assert draft.thumbnail_public_id == "thumb_v1"
    assert draft.entity_id == "press-7"
    assert draft.duration == 64.0
    assert draft.size_bytes == 2048
    assert draft.sizes == {}


def test_alt_text_is_truncated(builder, stage_file) -> None:
    staged = stage_file("a.jpg", "image/jpeg")
    asset = RemoteAsset(public_id="p", secure_url="https://cdn/p", kind=MediaKind.IMAGE, size_bytes=1)

    draft = builder.build(staged, asset, UploadMetadata(alt_text="x" * 300))

    assert len(draft.alt_text) == 125


def test_incomplete_asset_is_rejected(builder, stage_file) -> None:
    staged = stage_file("a.jpg", "image/jpeg")
    asset = RemoteAsset(public_id="", secure_url="https://cdn/p", kind=MediaKind.IMAGE, size_bytes=1)

    with pytest.raises(ValueError):
        builder.build(staged, asset, UploadMetadata())
