"""Per-request cleanup bookkeeping for staged files and remote assets.

Every staged file is registered before the gateway sees it and walks one of
two paths::

    staged -> transferred -> released     (record persisted or asset rolled back)
    staged -> failed      -> released     (no remote asset exists)

``finalize`` runs once per request in a ``finally`` block. Anything still
``staged`` or ``transferred`` at that point is a leak: it is logged as an
error and repaired (staging copy released, remote asset deleted).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from ..gateway.gateway_base import AssetGateway
from ..uploads.upload_errors import RemoteDeleteError
from .media_models import DerivedAsset, FileState, MediaKind, RemoteAsset, StagedFile
from .staging_store import TempStagingStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackedFile:
    staged: StagedFile
    state: FileState = FileState.STAGED
    asset: RemoteAsset | None = None
    derived: list[DerivedAsset] = field(default_factory=list)
    staging_released: bool = False
    rolled_back: bool = False
    rollback_failed: bool = False
    reason: str | None = None


@dataclass(slots=True)
class FinalizeReport:
    """What ``finalize`` found and repaired."""

    leaked_staged: int = 0
    leaked_transferred: int = 0
    orphaned_public_ids: list[str] = field(default_factory=list)
    release_errors: int = 0

    @property
    def clean(self) -> bool:
        return not (
            self.leaked_staged
            or self.leaked_transferred
            or self.orphaned_public_ids
            or self.release_errors
        )


@dataclass(slots=True)
class CleanupCoordinator:
    """Guarantees no staged file or orphaned remote asset survives a request."""

    request_id: str
    staging: TempStagingStore
    gateway: AssetGateway
    rollback_attempts: int = 3
    log: logging.Logger = field(default_factory=lambda: logger)
    _files: dict[str, TrackedFile] = field(default_factory=dict)
    _report: FinalizeReport | None = None
    _release_errors: int = 0

    @property
    def closed(self) -> bool:
        return self._report is not None

    def register(self, staged: StagedFile) -> TrackedFile:
        """Track ``staged``; required before any gateway call."""
        key = self._key(staged)
        if key in self._files:
            raise ValueError(f"staged file '{staged.original_name}' registered twice")
        if self.closed:
            raise RuntimeError("cleanup coordinator already finalized")
        tracked = TrackedFile(staged=staged)
        self._files[key] = tracked
        return tracked

    def state_of(self, staged: StagedFile) -> FileState:
        return self._tracked(staged).state

    def pending(self) -> list[TrackedFile]:
        return [
            tracked
            for tracked in self._files.values()
            if tracked.state in (FileState.STAGED, FileState.TRANSFERRED)
        ]

    def mark_transferred(self, staged: StagedFile, asset: RemoteAsset) -> None:
        """Record a completed transfer and release the staging copy."""
        tracked = self._expect(staged, FileState.STAGED)
        tracked.asset = asset
        tracked.state = FileState.TRANSFERRED
        self._release(tracked)

    def mark_failed(self, staged: StagedFile, reason: str) -> None:
        """Record a failure before any remote asset exists; releases staging."""
        tracked = self._expect(staged, FileState.STAGED)
        tracked.state = FileState.FAILED
        tracked.reason = reason
        self._release(tracked)
        tracked.state = FileState.RELEASED

    def track_derived(self, staged: StagedFile, derived: DerivedAsset) -> None:
        """Remember a derived asset that must disappear with its parent."""
        tracked = self._expect(staged, FileState.TRANSFERRED)
        tracked.derived.append(derived)

    def commit(self, staged: StagedFile) -> None:
        """The media record now references the asset; hand over ownership."""
        tracked = self._expect(staged, FileState.TRANSFERRED)
        tracked.state = FileState.RELEASED

    async def rollback(self, staged: StagedFile, reason: str) -> None:
        """Delete the remote asset of a transferred file (mandatory)."""
        tracked = self._expect(staged, FileState.TRANSFERRED)
        tracked.reason = reason
        await self._rollback_remote(tracked)
        tracked.state = FileState.RELEASED

    async def rollback_all(self, reason: str) -> None:
        """Roll back every transferred file of the request."""
        transferred = [
            tracked.staged
            for tracked in self._files.values()
            if tracked.state is FileState.TRANSFERRED
        ]
        await asyncio.gather(*(self.rollback(staged, reason) for staged in transferred))

    async def finalize(self) -> FinalizeReport:
        """Release and roll back whatever is left; safe to call more than once."""
        if self._report is not None:
            self.log.warning("media.cleanup.finalize_repeated", extra={"request_id": self.request_id})
            return self._report

        report = FinalizeReport()
        self._report = report
        for tracked in self._files.values():
            if tracked.state is FileState.STAGED:
                report.leaked_staged += 1
                self.log.error(
                    "media.cleanup.leak.staged",
                    extra={"request_id": self.request_id, "file_name": tracked.staged.original_name},
                )
                tracked.state = FileState.FAILED
                tracked.reason = tracked.reason or "request ended before transfer"
                self._release(tracked)
                tracked.state = FileState.RELEASED
            elif tracked.state is FileState.TRANSFERRED:
                report.leaked_transferred += 1
                self.log.error(
                    "media.cleanup.leak.transferred",
                    extra={
                        "request_id": self.request_id,
                        "file_name": tracked.staged.original_name,
                        "public_id": tracked.asset.public_id if tracked.asset else None,
                    },
                )
                await self._rollback_remote(tracked)
                tracked.state = FileState.RELEASED

        for tracked in self._files.values():
            if not tracked.staging_released:
                self._release(tracked)
            if tracked.rollback_failed:
                report.orphaned_public_ids.extend(self._remote_ids(tracked))

        report.release_errors = self._release_errors
        log_method = self.log.info if report.clean else self.log.error
        log_method(
            "media.cleanup.finalized",
            extra={
                "request_id": self.request_id,
                "files": len(self._files),
                "leaked_staged": report.leaked_staged,
                "leaked_transferred": report.leaked_transferred,
                "orphaned": len(report.orphaned_public_ids),
                "release_errors": report.release_errors,
            },
        )
        return report

    async def discard_late_transfer(self, staged: StagedFile, asset: RemoteAsset) -> None:
        """Roll back an asset whose upload finished after ``finalize``."""
        tracked = self._tracked(staged)
        tracked.asset = asset
        tracked.reason = "transfer completed after request ended"
        self.log.warning(
            "media.cleanup.late_transfer",
            extra={"request_id": self.request_id, "public_id": asset.public_id},
        )
        await self._rollback_remote(tracked)
        if self._report is not None and tracked.rollback_failed:
            self._report.orphaned_public_ids.extend(self._remote_ids(tracked))

    async def _rollback_remote(self, tracked: TrackedFile) -> None:
        asset = tracked.asset
        if asset is None or tracked.rolled_back:
            return
        ok = True
        for derived in tracked.derived:
            if derived.public_id:
                ok = await self._delete_with_retry(derived.public_id, asset, image=True) and ok
        ok = await self._delete_with_retry(asset.public_id, asset, image=False) and ok
        tracked.rolled_back = ok
        tracked.rollback_failed = not ok
        self.log.info(
            "media.cleanup.rolled_back",
            extra={
                "request_id": self.request_id,
                "public_id": asset.public_id,
                "reason": tracked.reason,
                "complete": ok,
            },
        )

    async def _delete_with_retry(self, public_id: str, asset: RemoteAsset, *, image: bool) -> bool:
        kind = MediaKind.IMAGE if image else asset.kind
        for attempt in range(1, self.rollback_attempts + 1):
            try:
                await self.gateway.delete(public_id, kind)
                return True
            except RemoteDeleteError as exc:
                self.log.warning(
                    "media.cleanup.rollback_retry",
                    extra={
                        "request_id": self.request_id,
                        "public_id": public_id,
                        "attempt": attempt,
                        "cause": exc.cause,
                    },
                )
        self.log.error(
            "media.cleanup.rollback_failed",
            extra={"request_id": self.request_id, "public_id": public_id},
        )
        return False

    def _release(self, tracked: TrackedFile) -> None:
        if tracked.staging_released:
            return
        try:
            self.staging.release(tracked.staged)
        except OSError:
            self._release_errors += 1
            return
        tracked.staging_released = True

    def _expect(self, staged: StagedFile, state: FileState) -> TrackedFile:
        tracked = self._tracked(staged)
        if tracked.state is not state:
            raise RuntimeError(
                f"'{staged.original_name}' is {tracked.state.value}, expected {state.value}"
            )
        return tracked

    def _tracked(self, staged: StagedFile) -> TrackedFile:
        try:
            return self._files[self._key(staged)]
        except KeyError:
            raise KeyError(f"staged file '{staged.original_name}' is not registered") from None

    @staticmethod
    def _remote_ids(tracked: TrackedFile) -> list[str]:
        ids = [item.public_id for item in tracked.derived if item.public_id]
        if tracked.asset is not None:
            ids.append(tracked.asset.public_id)
        return ids

    @staticmethod
    def _key(staged: StagedFile) -> str:
        return str(staged.path)
