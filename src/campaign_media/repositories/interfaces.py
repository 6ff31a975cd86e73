"""Repository interfaces for persistence layer implementations."""

from __future__ import annotations

from typing import Protocol, Sequence

from ..media.media_models import MediaRecord, MediaRecordDraft


class MediaRecordStore(Protocol):
    """Persistence operations for media records."""

    def save_many(self, drafts: Sequence[MediaRecordDraft]) -> list[MediaRecord]:
        """Persist all ``drafts`` in one transaction or none of them.

        Raises ``PersistenceError`` when the transaction fails.
        """

    def get(self, record_id: str) -> MediaRecord:
        """Return a record by identifier; raises ``KeyError`` when missing."""

    def delete_by_id(self, record_id: str) -> MediaRecord:
        """Remove a record and return what was stored."""
