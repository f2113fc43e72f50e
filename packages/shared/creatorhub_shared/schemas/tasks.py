"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import UUID4

from .common import ORM_METADATA, TaskStatus, normalize_task_status


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    content_item_id: Optional[UUID4] = None
    priority: int = 0
    assigned_to: Optional[UUID4] = None  # membership id, not user id
    due_date: Optional[datetime] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskCreate(TaskBase):
    status: TaskStatus = TaskStatus.TODO

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return normalize_task_status(value)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    content_item_id: Optional[UUID4] = None
    status: Optional[TaskStatus] = None
    priority: Optional[int] = None
    assigned_to: Optional[UUID4] = None
    due_date: Optional[datetime] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return normalize_task_status(value)


class TaskRead(BaseModel):
    id: UUID4
    organization_id: UUID4
    content_item_id: Optional[UUID4] = None
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: int
    assigned_to: Optional[UUID4] = None
    due_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias=ORM_METADATA)
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
