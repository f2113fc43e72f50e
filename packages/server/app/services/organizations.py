"""
Organization service: business logic for org CRUD.

Slugs are resolved through ``app.core.slugs`` so that concurrent creates
with the same name end up with ``name``, ``name-2``, ``name-3``...
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.authorization import Capability, RequestContext, authorize
from app.core.config import get_settings
from app.core.errors import BadRequestError, ForbiddenError, NotFoundError
from app.core.slugs import resolve_unique_slug, slugify
from app.models.content_item import ContentItem
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.permission import RolePermission
from app.models.role import Role
from app.models.task import Task

from creatorhub_shared.schemas.organizations import (
    DEFAULT_CURRENCY,
    DEFAULT_LOCALE,
    DEFAULT_TIMEZONE,
    OrgCreateRequest,
    OrgUpdateRequest,
)

log = structlog.get_logger()
settings = get_settings()


def _deep_merge(base: dict, patch: dict) -> dict:
    """JSON Merge Patch style deep merge."""
    result = base.copy()
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        elif value is None:
            result.pop(key, None)
        else:
            result[key] = value
    return result


def base_slug_for(req: OrgCreateRequest) -> str:
    """Slug candidate from the requested slug, falling back to the name."""
    base = slugify(req.slug or req.name)
    if not base:
        raise BadRequestError(
            "Could not derive a slug from the organization name",
            details={"name": req.name},
        )
    return base


async def slug_exists(
    session: AsyncSession, slug: str, *, exclude_id: Optional[uuid.UUID] = None
) -> bool:
    stmt = select(Organization.id).where(func.lower(Organization.slug) == slug.lower())
    if exclude_id is not None:
        stmt = stmt.where(Organization.id != exclude_id)
    result = await session.execute(stmt)
    return result.first() is not None


async def insert_organization(
    session: AsyncSession, req: OrgCreateRequest, *, max_attempts: int
) -> Organization:
    """Insert an organization under the first free slug; no membership is created."""
    base = base_slug_for(req)

    async def _insert(candidate: str) -> Organization:
        org = Organization(
            name=req.name,
            slug=candidate,
            timezone=req.timezone or DEFAULT_TIMEZONE,
            locale=req.locale or DEFAULT_LOCALE,
            currency=(req.currency or DEFAULT_CURRENCY).upper(),
            white_label=bool(req.white_label),
            branding=req.branding or {},
            billing_info=req.billing_info or {},
            settings=req.settings or {},
        )
        session.add(org)
        await session.flush()
        return org

    async def _exists(candidate: str) -> bool:
        return await slug_exists(session, candidate)

    org = await resolve_unique_slug(session, base, _exists, _insert, max_attempts)
    log.info("org.created", org_id=str(org.id), slug=org.slug)
    return org


async def get_org_or_404(session: AsyncSession, organization_id: uuid.UUID) -> Organization:
    org = await session.get(Organization, organization_id)
    if not org:
        raise NotFoundError("Organization not found")
    return org


# ---------------------------------------------------------------------------
# Service operations
# ---------------------------------------------------------------------------

async def create_organization(
    session: AsyncSession, ctx: RequestContext, req: OrgCreateRequest
) -> Organization:
    """Create a bare organization. Reserved for trusted internal callers.

    Users create organizations through onboarding, which also seeds roles
    and makes them the owner.
    """
    if not ctx.system:
        ctx.require_actor()
        raise ForbiddenError("Organizations are created through onboarding")
    return await insert_organization(session, req, max_attempts=settings.org_slug_max_attempts)


async def get_organization(
    session: AsyncSession, ctx: RequestContext, organization_id: uuid.UUID
) -> Organization:
    org = await get_org_or_404(session, organization_id)
    await authorize(session, ctx, org.id, Capability.VIEW)
    return org


async def get_organization_by_slug(
    session: AsyncSession, ctx: RequestContext, slug: str
) -> Organization:
    result = await session.execute(
        select(Organization).where(func.lower(Organization.slug) == slug.lower())
    )
    org = result.scalar_one_or_none()
    if not org:
        raise NotFoundError("Organization not found")
    await authorize(session, ctx, org.id, Capability.VIEW)
    return org


async def list_user_organizations(
    session: AsyncSession, ctx: RequestContext
) -> list[tuple[Organization, Membership]]:
    """Organizations the caller is an active member of, newest first."""
    actor_id = ctx.require_actor()
    result = await session.execute(
        select(Organization, Membership)
        .join(Membership, Membership.organization_id == Organization.id)
        .where(Membership.user_id == actor_id, Membership.active == True)  # noqa: E712
        .order_by(Organization.created_at.desc())
    )
    return [(org, membership) for org, membership in result.all()]


async def update_organization(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    req: OrgUpdateRequest,
) -> Organization:
    """Update profile fields, merge settings and optionally change the slug."""
    org = await get_org_or_404(session, organization_id)
    await authorize(session, ctx, org.id, Capability.UPDATE_ORGANIZATION)

    if req.id is not None and req.id != org.id:
        raise BadRequestError("Cannot change immutable field 'id'")
    if req.created_at is not None:
        raise BadRequestError("Cannot change immutable field 'created_at'")

    changes = req.model_dump(exclude_unset=True, exclude={"id", "created_at", "slug", "settings"})
    for field in ("name", "timezone", "locale", "currency", "white_label"):
        if field in changes and changes[field] is None:
            raise BadRequestError(f"Field '{field}' cannot be null")
    if changes.get("currency"):
        changes["currency"] = changes["currency"].upper()
    for field in ("branding", "billing_info"):
        if field in changes and changes[field] is None:
            changes[field] = {}

    for field, value in changes.items():
        setattr(org, field, value)

    if req.settings is not None:
        org.settings = _deep_merge(org.settings or {}, req.settings)

    org.updated_at = datetime.now(timezone.utc)
    session.add(org)
    await session.flush()

    if req.slug is not None:
        await _change_slug(session, org, req.slug)
        await session.refresh(org)

    log.info("org.updated", org_id=str(org.id), slug=org.slug, fields=sorted(req.model_fields_set))
    return org


async def _change_slug(session: AsyncSession, org: Organization, requested: str) -> None:
    base = slugify(requested)
    if not base:
        raise BadRequestError("Invalid slug", details={"slug": requested})
    if base == org.slug.lower():
        return

    org_id = org.id

    async def _exists(candidate: str) -> bool:
        return await slug_exists(session, candidate, exclude_id=org_id)

    async def _apply(candidate: str) -> str:
        org.slug = candidate
        await session.flush()
        return candidate

    new_slug = await resolve_unique_slug(
        session, base, _exists, _apply, settings.org_slug_max_attempts
    )
    log.info("org.slug_changed", org_id=str(org_id), slug=new_slug)


async def delete_organization(
    session: AsyncSession, ctx: RequestContext, organization_id: uuid.UUID
) -> None:
    """Delete an organization and everything scoped to it. Owner only."""
    org = await get_org_or_404(session, organization_id)
    await authorize(session, ctx, org.id, Capability.MANAGE)
    slug = org.slug

    role_ids = select(Role.id).where(Role.organization_id == org.id)
    await session.execute(delete(Task).where(Task.organization_id == org.id))
    await session.execute(delete(ContentItem).where(ContentItem.organization_id == org.id))
    await session.execute(delete(Membership).where(Membership.organization_id == org.id))
    await session.execute(delete(RolePermission).where(RolePermission.role_id.in_(role_ids)))
    await session.execute(delete(Role).where(Role.organization_id == org.id))
    await session.delete(org)
    await session.flush()

    log.info("org.deleted", org_id=str(organization_id), slug=slug)
