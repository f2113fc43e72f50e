"""Organization membership schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class MemberCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    role_id: Optional[uuid.UUID] = None
    is_owner: bool = False
    preferences: dict[str, Any] = Field(default_factory=dict)
    active: bool = True


class MemberUpdate(BaseModel):
    role_id: Optional[uuid.UUID] = None
    is_owner: Optional[bool] = None
    preferences: Optional[dict[str, Any]] = None
    active: Optional[bool] = None

    # Immutable pair; rejected when it differs from the target membership
    organization_id: Optional[uuid.UUID] = None
    user_id: Optional[str] = None


class MemberRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: str
    role_id: Optional[uuid.UUID] = None
    is_owner: bool
    active: bool
    preferences: dict[str, Any] = Field(default_factory=dict)
    joined_at: datetime

    model_config = {"from_attributes": True}


class OwnershipTransfer(BaseModel):
    from_user_id: str = Field(..., min_length=1)
    to_user_id: str = Field(..., min_length=1)
