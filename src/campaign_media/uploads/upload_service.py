"""Domain service orchestrating multi-file media uploads."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import UploadFile

from ..config import UploadLimits
from ..gateway.gateway_base import AssetGateway
from ..media.media_cleanup import CleanupCoordinator
from ..media.media_models import (
    MediaKind,
    MediaRecordDraft,
    RemoteAsset,
    StagedFile,
    UploadTarget,
)
from ..media.record_builder import MediaRecordBuilder
from ..media.staging_store import TempStagingStore
from ..repositories.interfaces import MediaRecordStore
from .upload_errors import (
    DuplicateAssetError,
    EmptyBatchError,
    PayloadTooLargeError,
    PersistenceError,
    RemoteDeleteError,
    StagingError,
    ThumbnailError,
    TooManyFilesError,
    UnsupportedMediaError,
    UploadError,
    ValidationRejected,
)
from .upload_models import BatchResult, Failed, FailureReason, UploadMetadata, Uploaded
from .validation import UploadValidator

logger = structlog.get_logger(__name__)

PRESS_ATTACHMENT_FOLDER = "press-releases/attachments"


@dataclass(slots=True)
class _Transferred:
    staged: StagedFile
    asset: RemoteAsset
    draft: MediaRecordDraft


def failure_reason_for(exc: Exception) -> FailureReason:
    """Map pipeline exceptions to client-facing failure codes."""
    if isinstance(exc, UnsupportedMediaError):
        return FailureReason.UNSUPPORTED_MEDIA_TYPE
    if isinstance(exc, PayloadTooLargeError):
        return FailureReason.PAYLOAD_TOO_LARGE
    if isinstance(exc, TooManyFilesError):
        return FailureReason.TOO_MANY_FILES
    if isinstance(exc, EmptyBatchError):
        return FailureReason.EMPTY_BATCH
    if isinstance(exc, StagingError):
        return FailureReason.STAGING_ERROR
    if isinstance(exc, DuplicateAssetError):
        return FailureReason.DUPLICATE_ASSET
    if isinstance(exc, UploadError):
        return FailureReason.UPLOAD_TIMEOUT if exc.cause == "timeout" else FailureReason.UPLOAD_ERROR
    if isinstance(exc, PersistenceError):
        return FailureReason.PERSISTENCE_ERROR
    return FailureReason.INTERNAL_ERROR


def folder_for(target: UploadTarget, kind: MediaKind) -> str:
    if target is UploadTarget.PRESS_ATTACHMENT:
        return PRESS_ATTACHMENT_FOLDER
    return f"media/{kind.value}s"


@dataclass(slots=True)
class UploadOrchestrator:
    """Coordinates staging, validation, remote transfer and persistence."""

    staging: TempStagingStore
    gateway: AssetGateway
    validator: UploadValidator
    records: MediaRecordStore
    builder: MediaRecordBuilder
    limits: UploadLimits
    coordinator_factory: Callable[[str], CleanupCoordinator] | None = None
    log: Any = field(default_factory=lambda: logger)

    @staticmethod
    def new_request_id() -> str:
        return uuid.uuid4().hex

    async def accept(
        self,
        uploads: Sequence[UploadFile],
        metadata: UploadMetadata,
        *,
        request_id: str | None = None,
    ) -> BatchResult:
        """Stage FastAPI uploads and run the batch; staging failures stay per file.

        Each upload is registered with the request's coordinator as soon as it
        lands in staging, so an aborted request still releases it.
        """
        request_id = request_id or self.new_request_id()
        try:
            self.validator.check_batch(len(uploads))
        except ValidationRejected as exc:
            for upload in uploads:
                await upload.close()
            return self._rejected(request_id, exc)

        coordinator = self._new_coordinator(request_id)
        try:
            entries: list[StagedFile | Failed] = []
            for upload in uploads:
                entries.append(await self._stage(upload, request_id, coordinator))
            return await self._run(entries, metadata, coordinator)
        finally:
            await coordinator.finalize()

    async def process(self, files: Sequence[StagedFile], metadata: UploadMetadata) -> BatchResult:
        """Run already staged files through the pipeline.

        Ownership of every staged file passes to the pipeline: whatever the
        outcome, no file survives in staging once this returns.
        """
        request_id = files[0].request_id if files else self.new_request_id()
        coordinator = self._new_coordinator(request_id)
        try:
            for staged in files:
                coordinator.register(staged)
            return await self._run(list(files), metadata, coordinator)
        finally:
            await coordinator.finalize()

    async def _stage(
        self,
        upload: UploadFile,
        request_id: str,
        coordinator: CleanupCoordinator,
    ) -> StagedFile | Failed:
        filename = upload.filename or "upload"
        try:
            staged = await self.staging.stage_upload(
                upload, request_id, max_bytes=self.limits.max_file_bytes
            )
        except PayloadTooLargeError:
            self.log.warning(
                "upload.file.payload_too_large",
                request_id=request_id,
                file_name=filename,
                limit_bytes=self.limits.max_file_bytes,
            )
            return Failed(filename, FailureReason.PAYLOAD_TOO_LARGE)
        except StagingError as exc:
            self.log.warning(
                "upload.file.staging_failed",
                request_id=request_id,
                file_name=filename,
                error=str(exc),
            )
            return Failed(filename, FailureReason.STAGING_ERROR)
        coordinator.register(staged)
        return staged

    async def _run(
        self,
        entries: list[StagedFile | Failed],
        metadata: UploadMetadata,
        coordinator: CleanupCoordinator,
    ) -> BatchResult:
        """Fan out the transfers; every staged entry is already registered."""
        request_id = coordinator.request_id
        log = self.log.bind(request_id=request_id)
        tasks: list[asyncio.Task[Any]] = []
        try:
            staged_files = [entry for entry in entries if isinstance(entry, StagedFile)]
            try:
                self.validator.check_batch(len(entries))
            except ValidationRejected as exc:
                reason = failure_reason_for(exc)
                for staged in staged_files:
                    coordinator.mark_failed(staged, reason.value)
                return self._rejected(request_id, exc)

            log.info("upload.batch.started", files=len(entries), target=metadata.target.value)
            semaphore = asyncio.Semaphore(max(1, self.limits.max_concurrent_uploads))
            for entry in entries:
                if isinstance(entry, StagedFile):
                    tasks.append(
                        asyncio.ensure_future(self._transfer(entry, metadata, coordinator, semaphore))
                    )
                else:
                    tasks.append(asyncio.ensure_future(_ready(entry)))

            results = await asyncio.shield(asyncio.gather(*tasks))
            result = await self._persist(results, coordinator, log)
            log.info(
                "upload.batch.completed",
                status_code=result.status_code,
                uploaded=len(result.uploaded),
                failed=len(result.failed),
            )
            return result
        finally:
            in_flight = [task for task in tasks if not task.done()]
            if in_flight:
                log.warning("upload.batch.interrupted", in_flight=len(in_flight))

    async def _transfer(
        self,
        staged: StagedFile,
        metadata: UploadMetadata,
        coordinator: CleanupCoordinator,
        semaphore: asyncio.Semaphore,
    ) -> _Transferred | Failed:
        try:
            async with semaphore:
                return await self._transfer_one(staged, metadata, coordinator)
        except Exception as exc:
            # state left untouched; finalize releases and rolls back
            self.log.exception(
                "upload.file.unexpected_error",
                request_id=staged.request_id,
                file_name=staged.original_name,
                error=str(exc),
            )
            return Failed(staged.original_name, FailureReason.INTERNAL_ERROR)

    async def _transfer_one(
        self,
        staged: StagedFile,
        metadata: UploadMetadata,
        coordinator: CleanupCoordinator,
    ) -> _Transferred | Failed:
        if coordinator.closed:
            return Failed(staged.original_name, FailureReason.INTERNAL_ERROR)

        try:
            kind = self.validator.check_file(staged)
        except ValidationRejected as exc:
            reason = failure_reason_for(exc)
            coordinator.mark_failed(staged, reason.value)
            return Failed(staged.original_name, reason)

        try:
            asset = await self.gateway.upload(staged, folder_for(metadata.target, kind), kind)
        except UploadError as exc:
            self.log.warning(
                "upload.file.transfer_failed",
                request_id=staged.request_id,
                file_name=staged.original_name,
                cause=exc.cause,
                error=str(exc),
            )
            if not coordinator.closed:
                coordinator.mark_failed(staged, exc.cause)
            return Failed(staged.original_name, failure_reason_for(exc))

        if coordinator.closed:
            await coordinator.discard_late_transfer(staged, asset)
            return Failed(staged.original_name, FailureReason.INTERNAL_ERROR)
        coordinator.mark_transferred(staged, asset)

        if kind is MediaKind.VIDEO:
            await self._attach_thumbnail(staged, asset, coordinator)

        try:
            draft = self.builder.build(staged, asset, metadata)
        except ValueError as exc:
            self.log.error(
                "upload.file.record_invalid",
                request_id=staged.request_id,
                public_id=asset.public_id,
                error=str(exc),
            )
            if not coordinator.closed:
                await coordinator.rollback(staged, "record_invalid")
            return Failed(staged.original_name, FailureReason.INTERNAL_ERROR)
        return _Transferred(staged=staged, asset=asset, draft=draft)

    async def _attach_thumbnail(
        self,
        staged: StagedFile,
        asset: RemoteAsset,
        coordinator: CleanupCoordinator,
    ) -> None:
        try:
            thumbnail = await self.gateway.derive_thumbnail(asset)
        except ThumbnailError as exc:
            self.log.warning(
                "upload.file.thumbnail_failed",
                request_id=staged.request_id,
                public_id=asset.public_id,
                error=str(exc),
            )
            return

        if coordinator.closed:
            if thumbnail.public_id:
                try:
                    await self.gateway.delete(thumbnail.public_id, MediaKind.IMAGE)
                except RemoteDeleteError:
                    self.log.error(
                        "upload.file.thumbnail_orphaned",
                        request_id=staged.request_id,
                        public_id=thumbnail.public_id,
                    )
            return
        asset.derived.append(thumbnail)
        coordinator.track_derived(staged, thumbnail)

    async def _persist(
        self,
        results: list[_Transferred | Failed],
        coordinator: CleanupCoordinator,
        log: Any,
    ) -> BatchResult:
        transferred = [item for item in results if isinstance(item, _Transferred)]
        if not transferred:
            return BatchResult(outcomes=list(results))

        try:
            records = self.records.save_many([item.draft for item in transferred])
        except PersistenceError as exc:
            log.error("upload.batch.persistence_failed", files=len(transferred), error=str(exc))
            await coordinator.rollback_all(FailureReason.PERSISTENCE_ERROR.value)
            outcomes = [
                Failed(item.staged.original_name, FailureReason.PERSISTENCE_ERROR)
                if isinstance(item, _Transferred)
                else item
                for item in results
            ]
            return BatchResult(outcomes=outcomes, persistence_failed=True)

        by_public_id = {record.public_id: record for record in records}
        outcomes: list[Uploaded | Failed] = []
        for item in results:
            if isinstance(item, Failed):
                outcomes.append(item)
                continue
            coordinator.commit(item.staged)
            record = by_public_id.get(item.asset.public_id)
            outcomes.append(
                Uploaded(
                    filename=item.staged.original_name,
                    url=item.asset.secure_url,
                    public_id=item.asset.public_id,
                    derived_assets=list(item.asset.derived),
                    metadata={
                        "kind": item.asset.kind.value,
                        "size_bytes": item.asset.size_bytes,
                        "format": item.asset.format,
                    },
                    record=record,
                )
            )
        return BatchResult(outcomes=outcomes, records=list(records))

    def _rejected(self, request_id: str, exc: ValidationRejected) -> BatchResult:
        reason = failure_reason_for(exc)
        self.log.warning("upload.batch.rejected", request_id=request_id, reason=reason.value)
        return BatchResult(request_rejected=reason)

    def _new_coordinator(self, request_id: str) -> CleanupCoordinator:
        if self.coordinator_factory is not None:
            return self.coordinator_factory(request_id)
        return CleanupCoordinator(request_id=request_id, staging=self.staging, gateway=self.gateway)


async def _ready(outcome: Failed) -> Failed:
    return outcome
