"""
Organization-related Pydantic schemas shared between the server and its clients.

Covers: organization create/update requests, the organization response
shape and the per-user organization listing.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_TIMEZONE = "UTC"
DEFAULT_LOCALE = "pt_BR"
DEFAULT_CURRENCY = "BRL"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Organization display name")
    slug: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Preferred slug; derived from the name when omitted",
    )
    timezone: Optional[str] = None
    locale: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    white_label: Optional[bool] = None
    branding: Optional[dict[str, Any]] = None
    billing_info: Optional[dict[str, Any]] = None
    settings: Optional[dict[str, Any]] = None


class OrgUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    timezone: Optional[str] = None
    locale: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    white_label: Optional[bool] = None
    branding: Optional[dict[str, Any]] = None
    billing_info: Optional[dict[str, Any]] = None
    settings: Optional[dict[str, Any]] = Field(
        None,
        description="Partial settings update (deep-merged via JSON Merge Patch)",
    )

    # Immutable; present only so attempts to change them can be rejected
    id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    timezone: str
    locale: str
    currency: str
    white_label: bool
    branding: dict[str, Any] = Field(default_factory=dict)
    billing_info: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    is_owner: bool  # whether the requesting user owns this org
    role_id: Optional[uuid.UUID] = None

    model_config = {"from_attributes": True}


class OrgListResponse(BaseModel):
    data: list[OrgListItem]
