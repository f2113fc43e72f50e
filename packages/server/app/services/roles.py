"""
Role service: organization-scoped roles with case-insensitive unique names.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.authorization import Capability, RequestContext, authorize
from app.core.database import unique_guard
from app.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from app.models.membership import Membership
from app.models.permission import RolePermission
from app.models.role import Role
from app.services.paging import page_bounds

from creatorhub_shared.schemas.roles import RoleCreate, RoleUpdate

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------

async def find_by_org_and_name(
    session: AsyncSession, organization_id: uuid.UUID, name: str
) -> Optional[Role]:
    result = await session.execute(
        select(Role).where(
            Role.organization_id == organization_id,
            func.lower(Role.name) == name.lower(),
        )
    )
    return result.scalar_one_or_none()


async def find_by_org_and_names(
    session: AsyncSession, organization_id: uuid.UUID, names: list[str]
) -> list[Role]:
    lowered = [n.lower() for n in names]
    result = await session.execute(
        select(Role).where(
            Role.organization_id == organization_id,
            func.lower(Role.name).in_(lowered),
        )
    )
    return list(result.scalars().all())


async def get_role_or_404(
    session: AsyncSession, organization_id: uuid.UUID, role_id: uuid.UUID
) -> Role:
    """Fetch a role, treating a role from another organization as missing."""
    result = await session.execute(
        select(Role).where(Role.id == role_id, Role.organization_id == organization_id)
    )
    role = result.scalar_one_or_none()
    if not role:
        raise NotFoundError("Role not found")
    return role


async def insert_roles(
    session: AsyncSession, organization_id: uuid.UUID, items: list[RoleCreate]
) -> list[Role]:
    """Insert roles without authorization; name collisions raise ``ConflictError``."""
    roles = [
        Role(
            organization_id=organization_id,
            name=item.name,
            description=item.description,
            is_builtin=item.is_builtin,
        )
        for item in items
    ]
    async with unique_guard(
        session,
        "Role name already exists in this organization",
        details={"names": [item.name for item in items]},
    ):
        session.add_all(roles)
    return roles


# ---------------------------------------------------------------------------
# Service operations
# ---------------------------------------------------------------------------

async def list_roles(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Role]:
    await authorize(session, ctx, organization_id, Capability.VIEW)
    limit, offset = page_bounds(limit, offset)
    result = await session.execute(
        select(Role)
        .where(Role.organization_id == organization_id)
        .order_by(Role.created_at.desc(), Role.name)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_role(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
) -> Role:
    await authorize(session, ctx, organization_id, Capability.VIEW)
    return await get_role_or_404(session, organization_id, role_id)


async def create_role(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    req: RoleCreate,
) -> Role:
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    if await find_by_org_and_name(session, organization_id, req.name):
        raise ConflictError(
            "Role name already exists in this organization",
            details={"name": req.name},
        )

    [role] = await insert_roles(session, organization_id, [req])
    log.info("role.created", org_id=str(organization_id), role_id=str(role.id), name=role.name)
    return role


async def create_roles_batch(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    items: list[RoleCreate],
) -> list[Role]:
    """Create several roles at once; all or none are inserted."""
    if not items:
        raise BadRequestError("Empty payload")

    await authorize(session, ctx, organization_id, Capability.MANAGE)

    seen: set[str] = set()
    for item in items:
        lowered = item.name.lower()
        if lowered in seen:
            raise BadRequestError(
                f"Duplicate role name in payload: {item.name}",
                details={"name": item.name},
            )
        seen.add(lowered)

    existing = await find_by_org_and_names(session, organization_id, [i.name for i in items])
    if existing:
        names = sorted(r.name for r in existing)
        raise ConflictError(
            f"Roles already exist: {', '.join(names)}",
            details={"names": names},
        )

    roles = await insert_roles(session, organization_id, items)
    log.info("role.batch_created", org_id=str(organization_id), count=len(roles))
    return roles


async def update_role(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    req: RoleUpdate,
) -> Role:
    role = await get_role_or_404(session, organization_id, role_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None or k == "description"}

    if role.is_builtin and changes.get("is_builtin") is False:
        raise ForbiddenError("Built-in roles cannot be downgraded")

    new_name = changes.get("name")
    if new_name and new_name.lower() != role.name.lower():
        other = await find_by_org_and_name(session, organization_id, new_name)
        if other and other.id != role.id:
            raise ConflictError(
                "Role name already exists in this organization",
                details={"name": new_name},
            )

    async with unique_guard(session, "Role name already exists in this organization"):
        for field, value in changes.items():
            setattr(role, field, value)

    log.info("role.updated", org_id=str(organization_id), role_id=str(role.id), fields=sorted(changes))
    return role


async def delete_role(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
) -> None:
    role = await get_role_or_404(session, organization_id, role_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    if role.is_builtin:
        raise ForbiddenError("Built-in roles cannot be deleted")

    await session.execute(
        update(Membership).where(Membership.role_id == role.id).values(role_id=None)
    )
    await session.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
    await session.delete(role)
    await session.flush()

    log.info("role.deleted", org_id=str(organization_id), role_id=str(role_id))
