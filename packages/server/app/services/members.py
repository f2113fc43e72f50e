"""
Membership service: organization members and the single-owner invariant.

The store functions (``find_*``, ``count_owners``, ``create_membership``)
perform no authorization and are shared with onboarding. The service
functions take a ``RequestContext`` and authorize before mutating.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.authorization import Capability, RequestContext, authorize
from app.core.database import unique_guard
from app.core.errors import BadRequestError, ConflictError, NotFoundError
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.role import Role
from app.models.task import Task
from app.services.paging import page_bounds

from creatorhub_shared.schemas.members import MemberCreate, MemberUpdate

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Store reads
# ---------------------------------------------------------------------------

async def find_by_org_and_user(
    session: AsyncSession, organization_id: uuid.UUID, user_id: str
) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(
            Membership.organization_id == organization_id,
            Membership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def find_by_id(session: AsyncSession, member_id: uuid.UUID) -> Optional[Membership]:
    result = await session.execute(select(Membership).where(Membership.id == member_id))
    return result.scalar_one_or_none()


async def list_by_organization(
    session: AsyncSession,
    organization_id: uuid.UUID,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Membership]:
    limit, offset = page_bounds(limit, offset)
    result = await session.execute(
        select(Membership)
        .where(Membership.organization_id == organization_id)
        .order_by(Membership.joined_at.desc(), Membership.id)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def find_owners(session: AsyncSession, organization_id: uuid.UUID) -> list[Membership]:
    result = await session.execute(
        select(Membership).where(
            Membership.organization_id == organization_id,
            Membership.is_owner == True,  # noqa: E712
        )
    )
    return list(result.scalars().all())


async def count_owners(session: AsyncSession, organization_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Membership)
        .where(
            Membership.organization_id == organization_id,
            Membership.is_owner == True,  # noqa: E712
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Store writes
# ---------------------------------------------------------------------------

async def create_membership(
    session: AsyncSession,
    organization_id: uuid.UUID,
    user_id: str,
    *,
    role_id: Optional[uuid.UUID] = None,
    is_owner: bool = False,
    preferences: Optional[dict] = None,
    active: bool = True,
) -> Membership:
    """Insert a membership row, enforcing the pair and single-owner invariants."""
    if is_owner and not active:
        raise BadRequestError("The owner membership must be active")
    if is_owner and await count_owners(session, organization_id) > 0:
        raise ConflictError("Organization already has an owner")

    if await find_by_org_and_user(session, organization_id, user_id):
        raise ConflictError("User is already a member of this organization")

    membership = Membership(
        organization_id=organization_id,
        user_id=user_id,
        role_id=role_id,
        is_owner=is_owner,
        preferences=preferences or {},
        active=active,
    )
    # Either the (org, user) pair or the single-owner index can fire here.
    async with unique_guard(
        session,
        "Membership conflicts with an existing member or owner",
        details={"organization_id": str(organization_id), "user_id": user_id},
    ):
        session.add(membership)

    log.info(
        "member.created",
        org_id=str(organization_id),
        user_id=user_id,
        is_owner=is_owner,
    )
    return membership


async def _ensure_org(session: AsyncSession, organization_id: uuid.UUID) -> None:
    result = await session.execute(
        select(Organization.id).where(Organization.id == organization_id)
    )
    if result.first() is None:
        raise NotFoundError("Organization not found")


async def _ensure_role_in_org(
    session: AsyncSession, organization_id: uuid.UUID, role_id: Optional[uuid.UUID]
) -> None:
    if role_id is None:
        return
    result = await session.execute(
        select(Role.id).where(Role.id == role_id, Role.organization_id == organization_id)
    )
    if result.first() is None:
        raise BadRequestError(
            "Role does not belong to this organization",
            details={"role_id": str(role_id)},
        )


async def _get_member_or_404(
    session: AsyncSession, organization_id: uuid.UUID, user_id: str
) -> Membership:
    membership = await find_by_org_and_user(session, organization_id, user_id)
    if membership is None:
        raise NotFoundError("Organization member not found")
    return membership


# ---------------------------------------------------------------------------
# Service operations
# ---------------------------------------------------------------------------

async def add_member(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    req: MemberCreate,
) -> Membership:
    """Enroll a user. Only the owner may enroll (system callers bypass the check)."""
    await _ensure_org(session, organization_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)
    await _ensure_role_in_org(session, organization_id, req.role_id)

    return await create_membership(
        session,
        organization_id,
        req.user_id,
        role_id=req.role_id,
        is_owner=req.is_owner,
        preferences=req.preferences,
        active=req.active,
    )


async def get_member(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    user_id: str,
) -> Membership:
    await authorize(session, ctx, organization_id, Capability.VIEW)
    return await _get_member_or_404(session, organization_id, user_id)


async def list_members(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Membership]:
    await authorize(session, ctx, organization_id, Capability.VIEW)
    return await list_by_organization(session, organization_id, limit=limit, offset=offset)


async def update_member(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    user_id: str,
    req: MemberUpdate,
) -> Membership:
    """Patch a membership. Promotion and demotion respect the single-owner rules."""
    membership = await _get_member_or_404(session, organization_id, user_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    if req.organization_id is not None and req.organization_id != membership.organization_id:
        raise BadRequestError("Cannot change immutable field 'organization_id'")
    if req.user_id is not None and req.user_id != membership.user_id:
        raise BadRequestError("Cannot change immutable field 'user_id'")

    changes = req.model_dump(exclude_unset=True, exclude={"organization_id", "user_id"})
    # Only role_id may be cleared; null for the other fields means "unchanged".
    changes = {
        field: value
        for field, value in changes.items()
        if value is not None or field == "role_id"
    }

    if changes.get("is_owner") is True and not membership.is_owner:
        if await count_owners(session, organization_id) > 0:
            raise ConflictError("Organization already has an owner")
    if changes.get("is_owner") is False and membership.is_owner:
        if await count_owners(session, organization_id) <= 1:
            raise ConflictError("Cannot demote the last owner of the organization")
    if changes.get("active") is False and membership.is_owner:
        raise ConflictError("Cannot deactivate the owner of the organization")

    if "role_id" in changes:
        await _ensure_role_in_org(session, organization_id, changes["role_id"])

    async with unique_guard(session, "Organization already has an owner"):
        for field, value in changes.items():
            setattr(membership, field, value)

    log.info(
        "member.updated",
        org_id=str(organization_id),
        user_id=user_id,
        fields=sorted(changes),
    )
    return membership


async def remove_member(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    user_id: str,
) -> None:
    membership = await _get_member_or_404(session, organization_id, user_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    if membership.is_owner and await count_owners(session, organization_id) <= 1:
        raise ConflictError("Cannot remove the last owner of the organization")

    # Assignments point at the membership; unassign rather than orphan them.
    await session.execute(
        update(Task).where(Task.assigned_to == membership.id).values(assigned_to=None)
    )
    await session.delete(membership)
    await session.flush()

    log.info("member.removed", org_id=str(organization_id), user_id=user_id)


async def transfer_ownership(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    from_user_id: str,
    to_user_id: str,
) -> tuple[Membership, Membership]:
    """Move ownership between two members in one savepoint.

    The old owner is demoted before the new one is promoted so the
    single-owner index never sees two owners.
    """
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    if from_user_id == to_user_id:
        raise BadRequestError("Ownership must be transferred to a different member")

    current = await _get_member_or_404(session, organization_id, from_user_id)
    if not current.is_owner:
        raise ConflictError("Only the current owner can hand over ownership")

    target = await _get_member_or_404(session, organization_id, to_user_id)
    if not target.active:
        raise BadRequestError("Ownership cannot be transferred to an inactive member")

    async with unique_guard(session, "Organization already has an owner"):
        current.is_owner = False
        await session.flush()
        target.is_owner = True

    log.info(
        "member.ownership_transferred",
        org_id=str(organization_id),
        from_user=from_user_id,
        to_user=to_user_id,
    )
    return current, target
