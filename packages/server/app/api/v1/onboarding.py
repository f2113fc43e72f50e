"""Onboarding endpoint: POST /api/v1/users/{user_id}/organizations."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_request_context
from app.core.authorization import RequestContext
from app.core.database import get_session
from app.services import onboarding as onboarding_service

from creatorhub_shared.schemas.members import MemberRead
from creatorhub_shared.schemas.onboarding import OnboardingRequest, OnboardingResponse
from creatorhub_shared.schemas.organizations import OrgResponse
from creatorhub_shared.schemas.roles import RolePermissionRead, RoleRead

router = APIRouter()


@router.post("/{user_id}/organizations", response_model=OnboardingResponse, status_code=201)
async def onboard_organization(
    user_id: str,
    body: OnboardingRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Bootstrap an organization for ``user_id``: roles, permissions and owner."""
    result = await onboarding_service.create_organization_for_user(session, ctx, user_id, body)
    return OnboardingResponse(
        organization=OrgResponse.model_validate(result.organization),
        member=MemberRead.model_validate(result.member),
        roles=[RoleRead.model_validate(r) for r in result.roles],
        role_permissions=[RolePermissionRead.model_validate(rp) for rp in result.role_permissions],
    )
