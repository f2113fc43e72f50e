"""
Task endpoints.

GET/POST          /api/v1/organizations/{organization_id}/tasks/
GET/PATCH/DELETE  /api/v1/tasks/{task_id}
GET               /api/v1/members/{member_id}/tasks

Status transitions stamp ``started_at``/``completed_at`` server-side; the
legacy spellings ``started`` and ``completed`` are accepted on input.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_request_context
from app.core.authorization import RequestContext
from app.core.database import get_session
from app.services import tasks as task_service

from creatorhub_shared.schemas.common import TaskStatus
from creatorhub_shared.schemas.tasks import TaskCreate, TaskRead, TaskUpdate

org_router = APIRouter()
router = APIRouter()
member_router = APIRouter()


@org_router.get("/", response_model=List[TaskRead])
async def list_tasks_endpoint(
    organization_id: uuid.UUID,
    status: Optional[TaskStatus] = None,
    assigned_to: Optional[uuid.UUID] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    tasks = await task_service.list_tasks(
        session,
        ctx,
        organization_id,
        status=status,
        assigned_to=assigned_to,
        limit=limit,
        offset=offset,
    )
    return [TaskRead.model_validate(t) for t in tasks]


@org_router.post("/", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    organization_id: uuid.UUID,
    body: TaskCreate,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.create_task(session, ctx, organization_id, body)
    return TaskRead.model_validate(task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.get_task(session, ctx, task_id)
    return TaskRead.model_validate(task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    task_id: uuid.UUID,
    body: TaskUpdate,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.update_task(session, ctx, task_id, body)
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    await task_service.delete_task(session, ctx, task_id)


@member_router.get("/{member_id}/tasks", response_model=List[TaskRead])
async def list_member_tasks_endpoint(
    member_id: uuid.UUID,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    """Tasks assigned to a membership (by membership id)."""
    tasks = await task_service.list_tasks_by_assignee(
        session, ctx, member_id, limit=limit, offset=offset
    )
    return [TaskRead.model_validate(t) for t in tasks]
