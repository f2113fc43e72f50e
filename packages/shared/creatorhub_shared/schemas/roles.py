"""Role and role-permission schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_builtin: bool = False


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_builtin: Optional[bool] = None


class RoleRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    description: Optional[str] = None
    is_builtin: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Role permissions
# ---------------------------------------------------------------------------

class RolePermissionCreate(BaseModel):
    permission_id: uuid.UUID


class RolePermissionRead(BaseModel):
    role_id: uuid.UUID
    permission_id: uuid.UUID

    model_config = {"from_attributes": True}
