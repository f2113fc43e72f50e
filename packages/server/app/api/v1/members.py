"""
Organization membership endpoints.

Mounted under /api/v1/organizations/{organization_id}/members. Members are
addressed by their user id within the organization.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_request_context
from app.core.authorization import RequestContext
from app.core.database import get_session
from app.services import members as member_service

from creatorhub_shared.schemas.members import (
    MemberCreate,
    MemberRead,
    MemberUpdate,
    OwnershipTransfer,
)

router = APIRouter()


@router.get("/", response_model=list[MemberRead])
async def list_members(
    organization_id: uuid.UUID,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    members = await member_service.list_members(
        session, ctx, organization_id, limit=limit, offset=offset
    )
    return [MemberRead.model_validate(m) for m in members]


@router.post("/", response_model=MemberRead, status_code=201)
async def add_member(
    organization_id: uuid.UUID,
    body: MemberCreate,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Enroll a user in the organization. Owner only."""
    membership = await member_service.add_member(session, ctx, organization_id, body)
    return MemberRead.model_validate(membership)


@router.post("/transfer-ownership", response_model=list[MemberRead])
async def transfer_ownership(
    organization_id: uuid.UUID,
    body: OwnershipTransfer,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Hand ownership to another active member. Returns [previous, new] owner."""
    previous, new_owner = await member_service.transfer_ownership(
        session, ctx, organization_id, body.from_user_id, body.to_user_id
    )
    return [MemberRead.model_validate(previous), MemberRead.model_validate(new_owner)]


@router.get("/{user_id}", response_model=MemberRead)
async def get_member(
    organization_id: uuid.UUID,
    user_id: str,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    membership = await member_service.get_member(session, ctx, organization_id, user_id)
    return MemberRead.model_validate(membership)


@router.patch("/{user_id}", response_model=MemberRead)
async def update_member(
    organization_id: uuid.UUID,
    user_id: str,
    body: MemberUpdate,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    membership = await member_service.update_member(session, ctx, organization_id, user_id, body)
    return MemberRead.model_validate(membership)


@router.delete("/{user_id}", status_code=204)
async def remove_member(
    organization_id: uuid.UUID,
    user_id: str,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    await member_service.remove_member(session, ctx, organization_id, user_id)
