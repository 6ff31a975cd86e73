"""Persistence layer for media_record rows."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Sequence

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from ..db.db_models import MediaRecordModel
from ..media.media_models import MediaKind, MediaRecord, MediaRecordDraft, UploadTarget
from ..uploads.upload_errors import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Translate SQLAlchemy errors into ``PersistenceError``."""
    prefix = f"{entity}: " if entity else ""
    try:
        yield
    except sa_exc.IntegrityError as exc:
        raise PersistenceError(f"{prefix}integrity constraint violated") from exc
    except sa_exc.SQLAlchemyError as exc:
        raise PersistenceError(f"{prefix}database operation failed") from exc


class MediaRecordRepository:
    """Store media records referencing remote assets."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def save_many(self, drafts: Sequence[MediaRecordDraft]) -> list[MediaRecord]:
        if not drafts:
            return []
        created_at = self._clock()
        models = [self._to_model(draft, created_at) for draft in drafts]
        with handle_sqlalchemy_errors(entity="media_record"):
            with self._session_factory() as session:
                try:
                    session.add_all(models)
                    session.commit()
                except sa_exc.SQLAlchemyError:
                    session.rollback()
                    raise
                records = [self._to_domain(model) for model in models]
        logger.info("media.records.saved", extra={"count": len(records)})
        return records

    def get(self, record_id: str) -> MediaRecord:
        with handle_sqlalchemy_errors(entity="media_record"):
            with self._session_factory() as session:
                model = session.get(MediaRecordModel, record_id)
                if model is None:
                    raise KeyError(f"Media record '{record_id}' not found")
                return self._to_domain(model)

    def delete_by_id(self, record_id: str) -> MediaRecord:
        with handle_sqlalchemy_errors(entity="media_record"):
            with self._session_factory() as session:
                model = session.get(MediaRecordModel, record_id)
                if model is None:
                    raise KeyError(f"Media record '{record_id}' not found")
                record = self._to_domain(model)
                session.delete(model)
                session.commit()
        logger.info("media.records.deleted", extra={"record_id": record_id})
        return record

    @staticmethod
    def _to_model(draft: MediaRecordDraft, created_at: datetime) -> MediaRecordModel:
        return MediaRecordModel(
            id=uuid.uuid4().hex,
            kind=draft.kind.value,
            target=draft.target.value,
            entity_id=draft.entity_id,
            title=draft.title,
            description=draft.description,
            url=draft.url,
            public_id=draft.public_id,
            filename=draft.filename,
            content_type=draft.content_type,
            size_bytes=draft.size_bytes,
            width=draft.width,
            height=draft.height,
            duration=draft.duration,
            format=draft.format,
            thumbnail_url=draft.thumbnail_url,
            thumbnail_public_id=draft.thumbnail_public_id,
            sizes=dict(draft.sizes),
            tags=list(draft.tags),
            alt_text=draft.alt_text,
            caption=draft.caption,
            featured=draft.featured,
            published=draft.published,
            uploaded_by=draft.uploaded_by,
            created_at=created_at,
        )

    @staticmethod
    def _to_domain(model: MediaRecordModel) -> MediaRecord:
        return MediaRecord(
            id=model.id,
            kind=MediaKind(model.kind),
            target=UploadTarget(model.target),
            entity_id=model.entity_id,
            title=model.title,
            description=model.description,
            url=model.url,
            public_id=model.public_id,
            filename=model.filename,
            content_type=model.content_type,
            size_bytes=model.size_bytes,
            width=model.width,
            height=model.height,
            duration=model.duration,
            format=model.format,
            thumbnail_url=model.thumbnail_url,
            thumbnail_public_id=model.thumbnail_public_id,
            sizes=dict(model.sizes or {}),
            tags=list(model.tags or []),
            alt_text=model.alt_text,
            caption=model.caption,
            featured=model.featured,
            published=model.published,
            uploaded_by=model.uploaded_by,
            created_at=model.created_at,
        )
