"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    content_item_id: Optional[uuid.UUID] = Field(default=None, foreign_key="content_items.id", index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(nullable=False, default="todo")  # todo | in_progress | blocked | done | archived
    priority: int = Field(nullable=False, default=0, sa_type=sa.SmallInteger)
    assigned_to: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organization_members.id", index=True
    )
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True), index=True)
    started_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    metadata_: dict = Field(
        default_factory=dict,
        sa_column=sa.Column("metadata", JSONType, nullable=False),
    )
    created_by: Optional[str] = Field(default=None, foreign_key="users.id")
