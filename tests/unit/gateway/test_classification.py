import pytest

from src.campaign_media.gateway.classification import classify_kind, extension_of
from src.campaign_media.media.media_models import MediaKind


@pytest.mark.parametrize(
    ("filename", "content_type", "expected"),
    [
        ("a.jpg", "image/jpeg", MediaKind.IMAGE),
        ("poster.SVG", "image/svg+xml", MediaKind.IMAGE),
        ("b.mp4", "video/mp4", MediaKind.VIDEO),
        ("clip.MOV", "application/octet-stream", MediaKind.VIDEO),
        ("c.exe", "application/x-msdownload", None),
        ("c.exe", "image/jpeg", None),
        ("a.jpg", "video/mp4", None),
        ("blob", "video/webm", MediaKind.VIDEO),
        ("blob", "text/plain", None),
        (None, None, None),
    ],
)
def test_classify_kind(filename, content_type, expected) -> None:
    assert classify_kind(filename, content_type) is expected


def test_extension_of_is_lowercase_without_dot() -> None:
    assert extension_of("Rally.Photo.JPEG") == "jpeg"
    assert extension_of("") == ""
