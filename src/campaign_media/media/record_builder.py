"""Assemble media record drafts from gateway responses."""

from __future__ import annotations

from dataclasses import dataclass

from ..gateway.gateway_base import AssetGateway
from .media_models import MediaRecordDraft, RemoteAsset, StagedFile
from ..uploads.upload_models import UploadMetadata

TITLE_MAX_LENGTH = 200
ALT_TEXT_MAX_LENGTH = 125


@dataclass(slots=True)
class MediaRecordBuilder:
    """Build the persisted entity (type, URL, derived sizes, dimensions)."""

    gateway: AssetGateway

    def build(
        self,
        staged: StagedFile,
        asset: RemoteAsset,
        metadata: UploadMetadata,
    ) -> MediaRecordDraft:
        if not asset.public_id or not asset.secure_url:
            raise ValueError("remote asset is incomplete")

        thumbnail = asset.derived_by_name("thumbnail")
        title = (metadata.title or staged.original_name)[:TITLE_MAX_LENGTH]
        alt_text = (metadata.alt_text or metadata.title or staged.original_name)[:ALT_TEXT_MAX_LENGTH]

        return MediaRecordDraft(
            kind=asset.kind,
            target=metadata.target,
            entity_id=metadata.entity_id,
            title=title,
            description=metadata.description,
            url=asset.secure_url,
            public_id=asset.public_id,
            filename=staged.original_name,
            content_type=staged.content_type,
            size_bytes=asset.size_bytes or staged.size_bytes,
            width=asset.width,
            height=asset.height,
            duration=asset.duration,
            format=asset.format,
            thumbnail_url=thumbnail.url if thumbnail else None,
            thumbnail_public_id=thumbnail.public_id if thumbnail else None,
            sizes=self.gateway.variant_urls(asset),
            tags=list(metadata.tags),
            alt_text=alt_text,
            caption=metadata.caption,
            featured=metadata.featured,
            published=metadata.published,
            uploaded_by=metadata.uploaded_by,
        )
