"""Pydantic schemas for upload responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DimensionsSchema(BaseModel):
    width: int | None = None
    height: int | None = None


class MediaRecordSchema(BaseModel):
    id: str
    type: str
    target: str
    entity_id: str | None = Field(None, alias="entityId")
    title: str
    description: str = ""
    url: str
    public_id: str = Field(alias="publicId")
    filename: str
    mime_type: str = Field(alias="mimeType")
    size: int
    dimensions: DimensionsSchema
    duration: float | None = None
    format: str | None = None
    thumbnail: str | None = None
    sizes: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    alt_text: str = Field("", alias="altText")
    caption: str = ""
    featured: bool = False
    published: bool = False
    created_at: str = Field(alias="createdAt")


class UploadErrorItemSchema(BaseModel):
    filename: str | None
    reason: str


class UploadResponseSchema(BaseModel):
    success: bool
    data: list[MediaRecordSchema]
    errors: list[UploadErrorItemSchema]


class RequestErrorSchema(BaseModel):
    status: str
    failure_reason: str
    retry_after: int | None = None
