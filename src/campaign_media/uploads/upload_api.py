"""HTTP routes for media uploads."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from ..logging import bind_request_context
from ..media.media_models import UploadTarget
from ..rate_limit import USER_HEADER, UploadRateLimiter
from .upload_models import BatchResult, UploadMetadata, parse_tags
from .upload_schemas import RequestErrorSchema, UploadResponseSchema
from .upload_service import UploadOrchestrator

logger = logging.getLogger(__name__)


def get_upload_orchestrator(request: Request) -> UploadOrchestrator:
    """Fetch upload orchestrator from application state."""
    try:
        return request.app.state.upload_orchestrator  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("UploadOrchestrator is not configured") from exc


UPLOAD_RESPONSES: dict[int | str, dict[str, Any]] = {
    201: {"model": UploadResponseSchema, "description": "At least one file stored"},
    400: {"model": UploadResponseSchema, "description": "Request or every file rejected"},
    429: {"model": RequestErrorSchema, "description": "Upload rate limit exceeded"},
    500: {"model": UploadResponseSchema, "description": "No file could be stored"},
}


def build_upload_router(*, rate_limiter: UploadRateLimiter) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["uploads"], dependencies=[Depends(rate_limiter)])

    @router.post("/media", status_code=201, responses=UPLOAD_RESPONSES)
    async def upload_gallery_media(
        request: Request,
        files: list[UploadFile] | None = File(None),
        title: str = Form(""),
        description: str = Form(""),
        tags: str = Form(""),
        alt_text: str = Form("", alias="altText"),
        caption: str = Form(""),
        featured: bool = Form(False),
        published: bool = Form(False),
        orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
    ) -> JSONResponse:
        """Upload up to ``max_files`` images or videos to the media library."""
        metadata = UploadMetadata(
            target=UploadTarget.GALLERY,
            title=title.strip(),
            description=description.strip(),
            tags=parse_tags(tags),
            alt_text=alt_text.strip(),
            caption=caption.strip(),
            featured=featured,
            published=published,
            uploaded_by=_uploaded_by(request),
        )
        return await _run_upload(orchestrator, files or [], metadata)

    @router.post("/press/{press_id}/attachments", status_code=201, responses=UPLOAD_RESPONSES)
    async def upload_press_attachments(
        press_id: str,
        request: Request,
        files: list[UploadFile] | None = File(None),
        orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
    ) -> JSONResponse:
        """Attach media files to a press release."""
        metadata = UploadMetadata(
            target=UploadTarget.PRESS_ATTACHMENT,
            entity_id=press_id,
            uploaded_by=_uploaded_by(request),
        )
        return await _run_upload(orchestrator, files or [], metadata)

    return router


async def _run_upload(
    orchestrator: UploadOrchestrator,
    files: list[UploadFile],
    metadata: UploadMetadata,
) -> JSONResponse:
    request_id = orchestrator.new_request_id()
    bind_request_context(request_id, target=metadata.target.value)
    result: BatchResult = await orchestrator.accept(files, metadata, request_id=request_id)
    logger.info(
        "upload.request.completed",
        extra={
            "request_id": request_id,
            "status_code": result.status_code,
            "files": len(files),
            "target": metadata.target.value,
        },
    )
    return JSONResponse(
        status_code=result.status_code,
        content=result.to_response(),
        headers={"X-Request-Id": request_id},
    )


def _uploaded_by(request: Request) -> str | None:
    value = request.headers.get(USER_HEADER, "").strip()
    return value or None
