"""
Role-permission service: assigning catalog permissions to organization roles.

Batch assignment only inserts the permissions a role does not already hold.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.authorization import Capability, RequestContext, authorize
from app.core.database import unique_guard
from app.core.errors import BadRequestError, ConflictError, NotFoundError
from app.models.permission import Permission, RolePermission
from app.services.paging import page_bounds
from app.services.roles import get_role_or_404

from creatorhub_shared.schemas.common import PERMISSION_DESCRIPTIONS, PermissionCode

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Permission catalog
# ---------------------------------------------------------------------------

async def list_permissions(session: AsyncSession) -> list[Permission]:
    result = await session.execute(select(Permission).order_by(Permission.code))
    return list(result.scalars().all())


async def find_permissions_by_codes(session: AsyncSession, codes: list[str]) -> dict[str, Permission]:
    result = await session.execute(select(Permission).where(Permission.code.in_(codes)))
    return {p.code: p for p in result.scalars().all()}


async def seed_permission_catalog(session: AsyncSession) -> list[Permission]:
    """Insert any catalog permissions that are missing. Safe to run repeatedly."""
    existing = await find_permissions_by_codes(session, [c.value for c in PermissionCode])
    added = [
        Permission(code=code.value, description=PERMISSION_DESCRIPTIONS[code])
        for code in PermissionCode
        if code.value not in existing
    ]
    if added:
        session.add_all(added)
        await session.flush()
        log.info("permissions.seeded", codes=[p.code for p in added])
    return added


async def _find_pair(
    session: AsyncSession, role_id: uuid.UUID, permission_id: uuid.UUID
) -> Optional[RolePermission]:
    result = await session.execute(
        select(RolePermission).where(
            RolePermission.role_id == role_id,
            RolePermission.permission_id == permission_id,
        )
    )
    return result.scalar_one_or_none()


async def _assigned_permission_ids(session: AsyncSession, role_id: uuid.UUID) -> set[uuid.UUID]:
    result = await session.execute(
        select(RolePermission.permission_id).where(RolePermission.role_id == role_id)
    )
    return set(result.scalars().all())


async def insert_role_permissions(
    session: AsyncSession, pairs: list[tuple[uuid.UUID, uuid.UUID]]
) -> list[RolePermission]:
    """Insert (role_id, permission_id) pairs without authorization."""
    rows = [RolePermission(role_id=role_id, permission_id=pid) for role_id, pid in pairs]
    async with unique_guard(session, "Permission already assigned to role"):
        session.add_all(rows)
    return rows


# ---------------------------------------------------------------------------
# Service operations
# ---------------------------------------------------------------------------

async def list_by_role(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[RolePermission]:
    await get_role_or_404(session, organization_id, role_id)
    await authorize(session, ctx, organization_id, Capability.VIEW)
    limit, offset = page_bounds(limit, offset)
    result = await session.execute(
        select(RolePermission)
        .where(RolePermission.role_id == role_id)
        .order_by(RolePermission.permission_id)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_role_permission(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
) -> RolePermission:
    await get_role_or_404(session, organization_id, role_id)
    await authorize(session, ctx, organization_id, Capability.VIEW)
    pair = await _find_pair(session, role_id, permission_id)
    if not pair:
        raise NotFoundError("Role permission not found")
    return pair


async def assign_permission(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
) -> RolePermission:
    await get_role_or_404(session, organization_id, role_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    permission = await session.get(Permission, permission_id)
    if not permission:
        raise NotFoundError("Permission not found", details={"permission_id": str(permission_id)})

    if await _find_pair(session, role_id, permission_id):
        raise ConflictError("Permission already assigned to role")

    [row] = await insert_role_permissions(session, [(role_id, permission_id)])
    log.info(
        "role.permission_assigned",
        org_id=str(organization_id),
        role_id=str(role_id),
        permission=permission.code,
    )
    return row


async def assign_permissions_batch(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    permission_ids: list[uuid.UUID],
) -> list[RolePermission]:
    """Assign only the permissions the role does not already hold.

    Raises ``ConflictError`` when every requested permission is already assigned.
    """
    if not permission_ids:
        raise BadRequestError("Empty payload")

    await get_role_or_404(session, organization_id, role_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)

    seen: set[uuid.UUID] = set()
    for pid in permission_ids:
        if pid in seen:
            raise BadRequestError(
                f"Duplicate permission in payload: {pid}",
                details={"permission_id": str(pid)},
            )
        seen.add(pid)

    result = await session.execute(select(Permission.id).where(Permission.id.in_(permission_ids)))
    known = set(result.scalars().all())
    missing = [str(pid) for pid in permission_ids if pid not in known]
    if missing:
        raise NotFoundError(
            f"Permissions not found: {', '.join(missing)}",
            details={"permission_ids": missing},
        )

    assigned = await _assigned_permission_ids(session, role_id)
    delta = [pid for pid in permission_ids if pid not in assigned]
    if not delta:
        raise ConflictError("All permissions are already assigned to the role")

    rows = await insert_role_permissions(session, [(role_id, pid) for pid in delta])
    log.info(
        "role.permissions_assigned",
        org_id=str(organization_id),
        role_id=str(role_id),
        requested=len(permission_ids),
        inserted=len(rows),
    )
    return rows


async def remove_permission(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
) -> None:
    await get_role_or_404(session, organization_id, role_id)
    await authorize(session, ctx, organization_id, Capability.MANAGE)
    if not await _find_pair(session, role_id, permission_id):
        raise NotFoundError("Role permission not found")

    await session.execute(
        delete(RolePermission).where(
            RolePermission.role_id == role_id,
            RolePermission.permission_id == permission_id,
        )
    )
    await session.flush()
    log.info(
        "role.permission_removed",
        org_id=str(organization_id),
        role_id=str(role_id),
        permission_id=str(permission_id),
    )
