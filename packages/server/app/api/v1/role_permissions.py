"""
Role permission endpoints and the permission catalog.

/api/v1/permissions                                             catalog
/api/v1/organizations/{organization_id}/roles/{role_id}/permissions
"""

from __future__ import annotations

import uuid
from typing import Optional, Union

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Session, get_request_context, require_auth_session
from app.core.authorization import RequestContext
from app.core.database import get_session
from app.services import role_permissions as rp_service

from creatorhub_shared.schemas.common import PermissionRead
from creatorhub_shared.schemas.roles import RolePermissionCreate, RolePermissionRead

router = APIRouter()
catalog_router = APIRouter()


@catalog_router.get("/", response_model=list[PermissionRead])
async def list_permissions(
    auth: Session = Depends(require_auth_session),
    session: AsyncSession = Depends(get_session),
):
    """The global permission catalog."""
    permissions = await rp_service.list_permissions(session)
    return [PermissionRead.model_validate(p) for p in permissions]


@router.get("/", response_model=list[RolePermissionRead])
async def list_role_permissions(
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    rows = await rp_service.list_by_role(
        session, ctx, organization_id, role_id, limit=limit, offset=offset
    )
    return [RolePermissionRead.model_validate(rp) for rp in rows]


@router.post(
    "/", response_model=Union[list[RolePermissionRead], RolePermissionRead], status_code=201
)
async def assign_role_permissions(
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    body: Union[list[RolePermissionCreate], RolePermissionCreate] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Grant one permission, or a list of them (only missing ones are inserted)."""
    if isinstance(body, list):
        rows = await rp_service.assign_permissions_batch(
            session, ctx, organization_id, role_id, [item.permission_id for item in body]
        )
        return [RolePermissionRead.model_validate(rp) for rp in rows]
    row = await rp_service.assign_permission(
        session, ctx, organization_id, role_id, body.permission_id
    )
    return RolePermissionRead.model_validate(row)


@router.get("/{permission_id}", response_model=RolePermissionRead)
async def get_role_permission(
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    row = await rp_service.get_role_permission(session, ctx, organization_id, role_id, permission_id)
    return RolePermissionRead.model_validate(row)


@router.delete("/{permission_id}", status_code=204)
async def remove_role_permission(
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    await rp_service.remove_permission(session, ctx, organization_id, role_id, permission_id)
