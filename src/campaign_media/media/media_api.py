"""HTTP routes for stored media records."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..api.errors import persistence_error, remote_store_error
from ..repositories.interfaces import MediaRecordStore
from ..uploads.upload_errors import PersistenceError, RemoteDeleteError
from .media_deletion import MediaDeletionService

router = APIRouter(prefix="/api/media", tags=["media"])
logger = logging.getLogger(__name__)


def get_media_records(request: Request) -> MediaRecordStore:
    try:
        return request.app.state.media_records  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("MediaRecordStore is not configured") from exc


def get_deletion_service(request: Request) -> MediaDeletionService:
    try:
        return request.app.state.media_deletion  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("MediaDeletionService is not configured") from exc


def _not_found(record_id: str) -> HTTPException:
    logger.warning("media.record.not_found", extra={"record_id": record_id})
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"status": "error", "failure_reason": "media_not_found"},
    )


@router.get("/{record_id}")
def get_media(
    record_id: str,
    records: MediaRecordStore = Depends(get_media_records),
) -> dict[str, Any]:
    try:
        record = records.get(record_id)
    except KeyError:
        raise _not_found(record_id) from None
    except PersistenceError as exc:
        raise persistence_error("Media record could not be loaded.") from exc
    return {"success": True, "data": record.to_payload()}


@router.delete("/{record_id}")
async def delete_media(
    record_id: str,
    service: MediaDeletionService = Depends(get_deletion_service),
) -> dict[str, Any]:
    """Delete the record and every remote asset it references."""
    try:
        record = await service.delete(record_id)
    except KeyError:
        raise _not_found(record_id) from None
    except RemoteDeleteError as exc:
        logger.error(
            "media.record.remote_delete_failed",
            extra={"record_id": record_id, "cause": exc.cause},
        )
        raise remote_store_error("Media storage refused the delete; try again later.") from exc
    except PersistenceError as exc:
        raise persistence_error("Media record could not be deleted.") from exc
    return {"success": True, "data": {"id": record.id, "publicId": record.public_id}}
