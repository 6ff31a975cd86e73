from __future__ import annotations

import io
import os
from collections.abc import Callable
from pathlib import Path

import pytest

from src.campaign_media.config import UploadLimits
from src.campaign_media.media.media_models import StagedFile
from src.campaign_media.media.staging_store import TempStagingStore
from tests.helpers.staging import JPEG_BYTES

os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "campaign-test")
os.environ.setdefault("CLOUDINARY_API_KEY", "test-key")
os.environ.setdefault("CLOUDINARY_API_SECRET", "test-secret")


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    return tmp_path / "staging"


@pytest.fixture
def staging_store(staging_root: Path) -> TempStagingStore:
    return TempStagingStore(root=staging_root, chunk_size=64)


@pytest.fixture
def upload_limits() -> UploadLimits:
    return UploadLimits(max_files=10, max_file_bytes=4096, chunk_size_bytes=64, max_concurrent_uploads=2)


@pytest.fixture
def stage_file(staging_store: TempStagingStore) -> Callable[..., StagedFile]:
    def _stage(
        name: str,
        content_type: str,
        payload: bytes = JPEG_BYTES,
        *,
        request_id: str = "req-1",
    ) -> StagedFile:
        return staging_store.stage(
            io.BytesIO(payload),
            name,
            content_type=content_type,
            request_id=request_id,
        )

    return _stage
