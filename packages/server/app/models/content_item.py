"""Content item model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class ContentItem(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "content_items"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    content_type: Optional[str] = None
    platform: Optional[str] = None  # youtube | tiktok | instagram | twitch | facebook | other
    external_id: Optional[str] = None
    status: str = Field(default="idea", nullable=False, index=True)
    visibility: str = Field(default="private", nullable=False)
    scheduled_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    published_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    estimated_duration_seconds: Optional[int] = None
    metadata_: dict = Field(
        default_factory=dict,
        sa_column=sa.Column("metadata", JSONType, nullable=False),
    )
    created_by: Optional[str] = Field(default=None, foreign_key="users.id")
