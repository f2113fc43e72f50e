"""
Content item endpoints.

GET/POST          /api/v1/organizations/{organization_id}/content-items/
GET/PATCH/DELETE  /api/v1/content-items/{item_id}
GET               /api/v1/content-items/{item_id}/tasks
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_request_context
from app.core.authorization import RequestContext
from app.core.database import get_session
from app.services import content_items as content_service
from app.services import tasks as task_service

from creatorhub_shared.schemas.common import ContentPlatform
from creatorhub_shared.schemas.content_items import (
    ContentItemCreate,
    ContentItemRead,
    ContentItemUpdate,
)
from creatorhub_shared.schemas.tasks import TaskRead

org_router = APIRouter()
router = APIRouter()


# ---------------------------------------------------------------------------
# Org-scoped collection
# ---------------------------------------------------------------------------

@org_router.get("/", response_model=list[ContentItemRead])
async def list_content_items(
    organization_id: uuid.UUID,
    platform: Optional[ContentPlatform] = None,
    status: Optional[str] = None,
    q: Optional[str] = Query(None, description="Search in title and description"),
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    items = await content_service.list_content_items(
        session,
        ctx,
        organization_id,
        platform=platform,
        status=status,
        q=q,
        limit=limit,
        offset=offset,
    )
    return [ContentItemRead.model_validate(item) for item in items]


@org_router.post("/", response_model=ContentItemRead, status_code=201)
async def create_content_item(
    organization_id: uuid.UUID,
    body: ContentItemCreate,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    item = await content_service.create_content_item(session, ctx, organization_id, body)
    return ContentItemRead.model_validate(item)


# ---------------------------------------------------------------------------
# Single item
# ---------------------------------------------------------------------------

@router.get("/{item_id}", response_model=ContentItemRead)
async def get_content_item(
    item_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    item = await content_service.get_content_item(session, ctx, item_id)
    return ContentItemRead.model_validate(item)


@router.patch("/{item_id}", response_model=ContentItemRead)
async def update_content_item(
    item_id: uuid.UUID,
    body: ContentItemUpdate,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    item = await content_service.update_content_item(session, ctx, item_id, body)
    return ContentItemRead.model_validate(item)


@router.delete("/{item_id}", status_code=204)
async def delete_content_item(
    item_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    await content_service.delete_content_item(session, ctx, item_id)


@router.get("/{item_id}/tasks", response_model=list[TaskRead])
async def list_content_item_tasks(
    item_id: uuid.UUID,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    tasks = await task_service.list_tasks_by_content_item(
        session, ctx, item_id, limit=limit, offset=offset
    )
    return [TaskRead.model_validate(t) for t in tasks]
