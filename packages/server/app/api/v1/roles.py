"""
Role endpoints, mounted under /api/v1/organizations/{organization_id}/roles.

POST accepts a single role or a list; a list is created all-or-nothing.
"""

from __future__ import annotations

import uuid
from typing import Optional, Union

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_request_context
from app.core.authorization import RequestContext
from app.core.database import get_session
from app.services import roles as role_service

from creatorhub_shared.schemas.roles import RoleCreate, RoleRead, RoleUpdate

router = APIRouter()


@router.get("/", response_model=list[RoleRead])
async def list_roles(
    organization_id: uuid.UUID,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    roles = await role_service.list_roles(session, ctx, organization_id, limit=limit, offset=offset)
    return [RoleRead.model_validate(r) for r in roles]


@router.post("/", response_model=Union[list[RoleRead], RoleRead], status_code=201)
async def create_roles(
    organization_id: uuid.UUID,
    body: Union[list[RoleCreate], RoleCreate] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    if isinstance(body, list):
        roles = await role_service.create_roles_batch(session, ctx, organization_id, body)
        return [RoleRead.model_validate(r) for r in roles]
    role = await role_service.create_role(session, ctx, organization_id, body)
    return RoleRead.model_validate(role)


@router.get("/{role_id}", response_model=RoleRead)
async def get_role(
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    role = await role_service.get_role(session, ctx, organization_id, role_id)
    return RoleRead.model_validate(role)


@router.patch("/{role_id}", response_model=RoleRead)
async def update_role(
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    body: RoleUpdate,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    role = await role_service.update_role(session, ctx, organization_id, role_id, body)
    return RoleRead.model_validate(role)


@router.delete("/{role_id}", status_code=204)
async def delete_role(
    organization_id: uuid.UUID,
    role_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Delete a custom role. Members holding it are left without a role."""
    await role_service.delete_role(session, ctx, organization_id, role_id)
