"""
Organization API endpoints.

GET    /api/v1/organizations/                  Organizations the caller belongs to
POST   /api/v1/organizations/                  Create an organization (runs onboarding)
GET    /api/v1/organizations/by-slug/{slug}    Lookup by slug
GET    /api/v1/organizations/{organization_id}
PATCH  /api/v1/organizations/{organization_id}
DELETE /api/v1/organizations/{organization_id}
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Session, get_request_context, require_auth_session
from app.core.authorization import RequestContext
from app.core.database import get_session
from app.services import onboarding as onboarding_service
from app.services import organizations as org_service

from creatorhub_shared.schemas.onboarding import OnboardingRequest
from creatorhub_shared.schemas.organizations import (
    OrgListItem,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
)

log = structlog.get_logger()
router = APIRouter()


@router.get("/", response_model=OrgListResponse)
async def list_organizations(
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """List organizations the authenticated user is an active member of."""
    rows = await org_service.list_user_organizations(session, ctx)
    return OrgListResponse(
        data=[
            OrgListItem(
                id=org.id,
                name=org.name,
                slug=org.slug,
                is_owner=membership.is_owner,
                role_id=membership.role_id,
            )
            for org, membership in rows
        ]
    )


@router.post("/", response_model=OrgResponse, status_code=201)
async def create_organization(
    body: OnboardingRequest,
    auth: Session = Depends(require_auth_session),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Create an organization owned by the caller, with the built-in roles."""
    result = await onboarding_service.create_organization_for_user(
        session, ctx, auth.user.id, body
    )
    return OrgResponse.model_validate(result.organization)


@router.get("/by-slug/{slug}", response_model=OrgResponse)
async def get_organization_by_slug(
    slug: str,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.get_organization_by_slug(session, ctx, slug)
    return OrgResponse.model_validate(org)


@router.get("/{organization_id}", response_model=OrgResponse)
async def get_organization(
    organization_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.get_organization(session, ctx, organization_id)
    return OrgResponse.model_validate(org)


@router.patch("/{organization_id}", response_model=OrgResponse)
async def update_organization(
    organization_id: uuid.UUID,
    body: OrgUpdateRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Update profile fields. ``settings`` is deep-merged; ``null`` removes a key."""
    org = await org_service.update_organization(session, ctx, organization_id, body)
    return OrgResponse.model_validate(org)


@router.delete("/{organization_id}", status_code=204)
async def delete_organization(
    organization_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Delete the organization and everything scoped to it. Owner only."""
    await org_service.delete_organization(session, ctx, organization_id)
