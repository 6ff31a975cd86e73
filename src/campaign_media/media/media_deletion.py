"""Delete media records together with their remote assets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from ..gateway.gateway_base import AssetGateway
from ..repositories.interfaces import MediaRecordStore
from .media_models import MediaKind, MediaRecord

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class MediaDeletionService:
    """Remove the thumbnail, the primary asset and then the record.

    Remote deletes run first so a failing store leaves the record in place and
    the request can be retried; ``delete`` on the gateway tolerates assets that
    are already gone.
    """

    gateway: AssetGateway
    records: MediaRecordStore
    log: Any = field(default_factory=lambda: logger)

    async def delete(self, record_id: str) -> MediaRecord:
        record = self.records.get(record_id)
        if record.thumbnail_public_id:
            await self.gateway.delete(record.thumbnail_public_id, MediaKind.IMAGE)
        await self.gateway.delete(record.public_id, record.kind)
        removed = self.records.delete_by_id(record_id)
        self.log.info(
            "media.record.deleted",
            record_id=record_id,
            public_id=record.public_id,
            kind=record.kind.value,
        )
        return removed
