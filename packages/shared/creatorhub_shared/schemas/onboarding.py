"""Onboarding request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel

from .members import MemberRead
from .organizations import OrgCreateRequest, OrgResponse
from .roles import RolePermissionRead, RoleRead


class OnboardingRequest(OrgCreateRequest):
    """Same shape as an organization create request."""


class OnboardingResponse(BaseModel):
    organization: OrgResponse
    member: MemberRead
    roles: list[RoleRead]
    role_permissions: list[RolePermissionRead]
