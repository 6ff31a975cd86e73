"""Dependency wiring helpers."""

from fastapi import FastAPI

from .api.errors import ApiError, api_error_handler
from .config import AppConfig
from .gateway.gateway_factory import create_gateway
from .media.media_api import router as media_router
from .media.media_deletion import MediaDeletionService
from .media.record_builder import MediaRecordBuilder
from .media.staging_store import TempStagingStore
from .rate_limit import UploadRateLimiter
from .repositories.media_record_repository import MediaRecordRepository
from .uploads.upload_api import build_upload_router
from .uploads.upload_service import UploadOrchestrator
from .uploads.validation import UploadValidator


def include_routers(app: FastAPI, config: AppConfig) -> None:
    """Mount module routers and attach services."""
    staging = TempStagingStore(
        root=config.media_paths.staging,
        chunk_size=config.upload_limits.chunk_size_bytes,
    )
    gateway = create_gateway(config.remote_store.backend, settings=config.remote_store)
    records = MediaRecordRepository(config.session_factory)

    app.state.config = config
    app.state.staging_store = staging
    app.state.media_records = records
    app.state.upload_orchestrator = UploadOrchestrator(
        staging=staging,
        gateway=gateway,
        validator=UploadValidator(config.upload_limits),
        records=records,
        builder=MediaRecordBuilder(gateway),
        limits=config.upload_limits,
    )
    app.state.media_deletion = MediaDeletionService(gateway=gateway, records=records)
    app.state.upload_rate_limiter = UploadRateLimiter(config.rate_limit)

    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.include_router(build_upload_router(rate_limiter=app.state.upload_rate_limiter))
    app.include_router(media_router)
