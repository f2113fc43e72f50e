"""Content item schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .common import ORM_METADATA, ContentPlatform


class ContentItemCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    content_type: Optional[str] = None
    platform: Optional[ContentPlatform] = None
    external_id: Optional[str] = None
    status: str = Field("idea", min_length=1)
    visibility: str = Field("private", min_length=1)
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    estimated_duration_seconds: Optional[int] = Field(None, gt=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ContentItemUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    content_type: Optional[str] = None
    platform: Optional[ContentPlatform] = None
    external_id: Optional[str] = None
    status: Optional[str] = Field(None, min_length=1)
    visibility: Optional[str] = Field(None, min_length=1)
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    estimated_duration_seconds: Optional[int] = Field(None, gt=0)
    metadata: Optional[dict[str, Any]] = None


class ContentItemRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    title: str
    description: Optional[str] = None
    content_type: Optional[str] = None
    platform: Optional[str] = None
    external_id: Optional[str] = None
    status: str
    visibility: str
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    estimated_duration_seconds: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias=ORM_METADATA)
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
