"""
Onboarding: bootstraps a new organization for a user.

One savepoint covers the whole flow: organization (unique slug), the four
built-in roles, their catalog permissions and the founding owner
membership. Any failure other than a slug collision undoes all of it.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import RequestContext
from app.core.config import get_settings
from app.core.errors import AppError, ForbiddenError, NotFoundError
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.permission import RolePermission
from app.models.role import Role
from app.models.user import User
from app.services.members import create_membership
from app.services.organizations import insert_organization
from app.services.role_permissions import find_permissions_by_codes, insert_role_permissions
from app.services.roles import insert_roles

from creatorhub_shared.schemas.common import PermissionCode
from creatorhub_shared.schemas.onboarding import OnboardingRequest
from creatorhub_shared.schemas.roles import RoleCreate

log = structlog.get_logger()
settings = get_settings()

ADMIN_ROLE = "Admin"

BUILTIN_ROLES: list[tuple[str, str]] = [
    (ADMIN_ROLE, "Full access to the organization"),
    ("Manager", "Manages content and the team"),
    ("Editor", "Creates and edits content"),
    ("Viewer", "Read-only access"),
]

BUILTIN_ROLE_PERMISSIONS: dict[str, list[PermissionCode]] = {
    ADMIN_ROLE: [PermissionCode.ORG_VIEW, PermissionCode.ORG_UPDATE, PermissionCode.ORG_DELETE],
    "Manager": [PermissionCode.ORG_VIEW, PermissionCode.ORG_UPDATE],
    "Editor": [PermissionCode.ORG_VIEW],
    "Viewer": [PermissionCode.ORG_VIEW],
}


@dataclass
class OnboardingResult:
    organization: Organization
    member: Membership
    roles: list[Role]
    role_permissions: list[RolePermission]


async def create_organization_for_user(
    session: AsyncSession,
    ctx: RequestContext,
    user_id: str,
    payload: OnboardingRequest,
) -> OnboardingResult:
    """Create an organization owned by ``user_id``.

    Users may only bootstrap organizations for themselves; system callers
    may act for anyone.
    """
    if not ctx.system and ctx.require_actor() != user_id:
        raise ForbiddenError("Users can only create organizations for themselves")

    if await session.get(User, user_id) is None:
        raise NotFoundError("User not found", details={"user_id": user_id})

    codes = [code.value for code in PermissionCode]

    async with session.begin_nested():
        org = await insert_organization(
            session, payload, max_attempts=settings.onboarding_slug_max_attempts
        )

        roles = await insert_roles(
            session,
            org.id,
            [RoleCreate(name=name, description=desc, is_builtin=True) for name, desc in BUILTIN_ROLES],
        )
        roles_by_name = {role.name: role for role in roles}

        permissions = await find_permissions_by_codes(session, codes)
        missing = sorted(set(codes) - set(permissions))
        if missing:
            raise AppError("Permission catalog is not seeded", details={"missing": missing})

        pairs = [
            (roles_by_name[role_name].id, permissions[code.value].id)
            for role_name, role_codes in BUILTIN_ROLE_PERMISSIONS.items()
            for code in role_codes
        ]
        role_permissions = await insert_role_permissions(session, pairs)

        member = await create_membership(
            session,
            org.id,
            user_id,
            role_id=roles_by_name[ADMIN_ROLE].id,
            is_owner=True,
            preferences={},
            active=True,
        )

    log.info(
        "onboarding.completed",
        org_id=str(org.id),
        slug=org.slug,
        user_id=user_id,
        roles=len(roles),
        role_permissions=len(role_permissions),
    )
    return OnboardingResult(
        organization=org,
        member=member,
        roles=roles,
        role_permissions=role_permissions,
    )
