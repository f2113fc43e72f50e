"""
Organization-scoped authorization.

Every service calls ``authorize`` with the request context, the organization
and the capability it needs. The decision is re-evaluated on every call from
the current membership row; nothing is cached between calls.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ForbiddenError, UnauthorizedError
from app.models.membership import Membership
from app.models.permission import Permission, RolePermission

log = structlog.get_logger()


class Capability(str, Enum):
    VIEW = "view"  # any member
    CONTRIBUTE = "contribute"  # any member
    MANAGE = "manage"  # owner
    PUBLISH = "publish"  # owner
    UPDATE_ORGANIZATION = "update_organization"  # owner or org.update holder
    EDIT_CONTENT = "edit_content"  # owner or creator
    EDIT_TASK = "edit_task"  # owner, creator or assignee


@dataclass(frozen=True)
class RequestContext:
    """Who is calling. Passed explicitly to every service call."""

    actor_id: Optional[str] = None
    system: bool = False

    @classmethod
    def for_user(cls, user_id: str) -> "RequestContext":
        return cls(actor_id=user_id)

    @classmethod
    def anonymous(cls) -> "RequestContext":
        return cls()

    @classmethod
    def system_context(cls) -> "RequestContext":
        """Trusted internal caller; bypasses membership checks."""
        return cls(system=True)

    @property
    def is_anonymous(self) -> bool:
        return self.actor_id is None and not self.system

    def require_actor(self) -> str:
        if self.actor_id is None:
            raise UnauthorizedError("Authentication required")
        return self.actor_id


async def get_active_membership(
    session: AsyncSession, organization_id: uuid.UUID, user_id: str
) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(
            Membership.organization_id == organization_id,
            Membership.user_id == user_id,
            Membership.active == True,  # noqa: E712
        )
    )
    return result.scalar_one_or_none()


async def role_has_permission(
    session: AsyncSession, role_id: Optional[uuid.UUID], code: str
) -> bool:
    if role_id is None:
        return False
    result = await session.execute(
        select(RolePermission.role_id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .where(RolePermission.role_id == role_id, Permission.code == code)
    )
    return result.first() is not None


def _is_creator(resource: Any, membership: Membership) -> bool:
    created_by = getattr(resource, "created_by", None)
    return created_by is not None and created_by == membership.user_id


def _is_assignee(resource: Any, membership: Membership) -> bool:
    assigned_to = getattr(resource, "assigned_to", None)
    return assigned_to is not None and assigned_to == membership.id


async def authorize(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    capability: Capability,
    *,
    resource: Any = None,
) -> Optional[Membership]:
    """Allow or raise. Returns the actor's membership (``None`` for system calls).

    Raises ``UnauthorizedError`` for anonymous callers and ``ForbiddenError``
    when the actor is not an active member or lacks the capability.
    """
    if ctx.system:
        return None

    actor_id = ctx.require_actor()
    membership = await get_active_membership(session, organization_id, actor_id)
    if membership is None:
        log.info(
            "authz.denied",
            reason="not_member",
            org_id=str(organization_id),
            actor=actor_id,
            capability=capability.value,
        )
        raise ForbiddenError("Not a member of this organization")

    if capability in (Capability.VIEW, Capability.CONTRIBUTE):
        return membership

    if membership.is_owner:
        return membership

    if capability == Capability.UPDATE_ORGANIZATION:
        if await role_has_permission(session, membership.role_id, "org.update"):
            return membership
    elif capability == Capability.EDIT_CONTENT:
        if _is_creator(resource, membership):
            return membership
    elif capability == Capability.EDIT_TASK:
        if _is_creator(resource, membership) or _is_assignee(resource, membership):
            return membership

    log.info(
        "authz.denied",
        reason="insufficient_capability",
        org_id=str(organization_id),
        actor=actor_id,
        capability=capability.value,
    )
    if capability in (Capability.EDIT_CONTENT, Capability.EDIT_TASK):
        raise ForbiddenError("Not allowed to modify this resource")
    raise ForbiddenError("Only the organization owner can perform this action")
