"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db
from .uploads.upload_errors import ConfigurationError


@dataclass(slots=True)
class UploadLimits:
    max_files: int = 10
    max_file_bytes: int = 100 * 1024 * 1024
    chunk_size_bytes: int = 1 * 1024 * 1024
    max_concurrent_uploads: int = 4


@dataclass(slots=True)
class MediaPaths:
    root: Path
    staging: Path


@dataclass(slots=True)
class RemoteStoreSettings:
    cloud_name: str
    api_key: str
    api_secret: str = field(repr=False)
    backend: str = "cloudinary"
    timeout_ms: int = 120_000
    root_folder: str = "campaign2027"
    api_base_url: str = "https://api.cloudinary.com/v1_1"
    delivery_base_url: str = "https://res.cloudinary.com"


@dataclass(slots=True)
class RateLimitConfig:
    """Fixed-window limit for upload endpoints (``key_strategy``: ip|user)."""

    window_ms: int = 15 * 60 * 1000
    max: int = 30
    key_strategy: str = "ip"


@dataclass(slots=True)
class AppConfig:
    media_paths: MediaPaths
    upload_limits: UploadLimits
    remote_store: RemoteStoreSettings
    rate_limit: RateLimitConfig
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]
    staging_ttl_seconds: int


def load_remote_store_settings() -> RemoteStoreSettings:
    """Read remote store credentials; missing values abort startup."""
    cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME", "").strip()
    api_key = os.getenv("CLOUDINARY_API_KEY", "").strip()
    api_secret = os.getenv("CLOUDINARY_API_SECRET", "").strip()
    missing = [
        name
        for name, value in (
            ("CLOUDINARY_CLOUD_NAME", cloud_name),
            ("CLOUDINARY_API_KEY", api_key),
            ("CLOUDINARY_API_SECRET", api_secret),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"remote store credentials missing: {', '.join(missing)}")

    return RemoteStoreSettings(
        cloud_name=cloud_name,
        api_key=api_key,
        api_secret=api_secret,
        backend=os.getenv("REMOTE_STORE_BACKEND", "cloudinary"),
        timeout_ms=int(os.getenv("REMOTE_TIMEOUT_MS", 120_000)),
        root_folder=os.getenv("REMOTE_ROOT_FOLDER", "campaign2027"),
    )


def load_media_paths() -> MediaPaths:
    root = Path(os.getenv("MEDIA_ROOT", "media"))
    return MediaPaths(
        root=root,
        staging=Path(os.getenv("STAGING_DIR", str(root / "staging"))),
    )


def load_staging_ttl_seconds() -> int:
    return int(os.getenv("STAGING_TTL_SECONDS", 6 * 3600))


def load_config() -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    remote_store = load_remote_store_settings()
    media_paths = load_media_paths()

    upload_limits = UploadLimits(
        max_files=int(os.getenv("UPLOAD_MAX_FILES", 10)),
        max_file_bytes=int(os.getenv("UPLOAD_MAX_FILE_BYTES", 100 * 1024 * 1024)),
        chunk_size_bytes=int(os.getenv("UPLOAD_CHUNK_SIZE_BYTES", 1 * 1024 * 1024)),
        max_concurrent_uploads=int(os.getenv("UPLOAD_MAX_CONCURRENCY", 4)),
    )

    rate_limit = RateLimitConfig(
        window_ms=int(os.getenv("UPLOAD_RATE_WINDOW_MS", 15 * 60 * 1000)),
        max=int(os.getenv("UPLOAD_RATE_MAX", 30)),
        key_strategy=os.getenv("UPLOAD_RATE_KEY", "ip"),
    )

    database_url = os.getenv("DATABASE_URL", "sqlite:///campaign_media.db")
    engine = create_engine(database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    staging_ttl_seconds = load_staging_ttl_seconds()

    init_db(engine)

    return AppConfig(
        media_paths=media_paths,
        upload_limits=upload_limits,
        remote_store=remote_store,
        rate_limit=rate_limit,
        database_url=database_url,
        engine=engine,
        session_factory=session_factory,
        staging_ttl_seconds=staging_ttl_seconds,
    )
