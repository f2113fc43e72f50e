"""
Task service: business logic for task CRUD and status timestamps.

Status rules:
- entering todo / in_progress / blocked stamps ``started_at`` once
- entering done stamps ``completed_at`` once
- leaving done clears ``completed_at``
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.authorization import Capability, RequestContext, authorize
from app.core.errors import BadRequestError, NotFoundError
from app.models.content_item import ContentItem
from app.models.organization import Organization
from app.models.task import Task
from app.services import members as member_service
from app.services.paging import page_bounds

from creatorhub_shared.schemas.common import TASK_ACTIVE_STATUSES, TaskStatus
from creatorhub_shared.schemas.tasks import TaskCreate, TaskUpdate

log = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def apply_status(task: Task, new_status: TaskStatus, *, now: Optional[datetime] = None) -> None:
    """Set ``task.status`` and maintain the started/completed timestamps."""
    now = now or _utcnow()
    previous = task.status
    task.status = new_status.value

    if new_status in TASK_ACTIVE_STATUSES and task.started_at is None:
        task.started_at = now

    if new_status == TaskStatus.DONE:
        if task.completed_at is None:
            task.completed_at = now
    elif previous == TaskStatus.DONE.value:
        task.completed_at = None


async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> Task:
    result = await session.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if not task:
        raise NotFoundError("Task not found")
    return task


async def _validate_assignee(
    session: AsyncSession, organization_id: uuid.UUID, member_id: Optional[uuid.UUID]
) -> None:
    if member_id is None:
        return
    assignee = await member_service.find_by_id(session, member_id)
    if not assignee or assignee.organization_id != organization_id:
        raise BadRequestError(
            "Assigned member not found in organization",
            details={"assigned_to": str(member_id)},
        )


async def _validate_content_item(
    session: AsyncSession, organization_id: uuid.UUID, content_item_id: Optional[uuid.UUID]
) -> None:
    if content_item_id is None:
        return
    result = await session.execute(
        select(ContentItem.organization_id).where(ContentItem.id == content_item_id)
    )
    row = result.first()
    if row is None or row[0] != organization_id:
        raise BadRequestError(
            "Content item not found in organization",
            details={"content_item_id": str(content_item_id)},
        )


# ---------------------------------------------------------------------------
# Service operations
# ---------------------------------------------------------------------------

async def create_task(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    task_in: TaskCreate,
) -> Task:
    """Create a task; the creating member is recorded as ``created_by``."""
    if await session.get(Organization, organization_id) is None:
        raise NotFoundError("Organization not found")
    await authorize(session, ctx, organization_id, Capability.CONTRIBUTE)

    await _validate_assignee(session, organization_id, task_in.assigned_to)
    await _validate_content_item(session, organization_id, task_in.content_item_id)

    task = Task(
        organization_id=organization_id,
        content_item_id=task_in.content_item_id,
        title=task_in.title,
        description=task_in.description,
        priority=task_in.priority,
        assigned_to=task_in.assigned_to,
        due_date=task_in.due_date,
        metadata_=task_in.metadata,
        created_by=ctx.actor_id,
    )
    apply_status(task, task_in.status)
    session.add(task)
    await session.flush()

    log.info(
        "task.created",
        task_id=str(task.id),
        org_id=str(organization_id),
        status=task.status,
        created_by=ctx.actor_id,
    )
    return task


async def get_task(session: AsyncSession, ctx: RequestContext, task_id: uuid.UUID) -> Task:
    task = await get_task_or_404(session, task_id)
    await authorize(session, ctx, task.organization_id, Capability.VIEW)
    return task


def _ordered(stmt):
    return stmt.order_by(Task.due_date.asc().nulls_last(), Task.created_at.desc())


async def list_tasks(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    *,
    status: Optional[TaskStatus] = None,
    assigned_to: Optional[uuid.UUID] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Task]:
    """List tasks in an organization, soonest due first."""
    await authorize(session, ctx, organization_id, Capability.VIEW)
    limit, offset = page_bounds(limit, offset)

    stmt = select(Task).where(Task.organization_id == organization_id)
    if status:
        stmt = stmt.where(Task.status == status.value)
    if assigned_to:
        stmt = stmt.where(Task.assigned_to == assigned_to)

    result = await session.execute(_ordered(stmt).offset(offset).limit(limit))
    return list(result.scalars().all())


async def list_tasks_by_assignee(
    session: AsyncSession,
    ctx: RequestContext,
    member_id: uuid.UUID,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Task]:
    assignee = await member_service.find_by_id(session, member_id)
    if not assignee:
        raise NotFoundError("Assigned member not found")
    await authorize(session, ctx, assignee.organization_id, Capability.VIEW)

    limit, offset = page_bounds(limit, offset)
    result = await session.execute(
        _ordered(select(Task).where(Task.assigned_to == member_id)).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def list_tasks_by_content_item(
    session: AsyncSession,
    ctx: RequestContext,
    content_item_id: uuid.UUID,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Task]:
    item = await session.get(ContentItem, content_item_id)
    if not item:
        raise NotFoundError("Content item not found")
    await authorize(session, ctx, item.organization_id, Capability.VIEW)

    limit, offset = page_bounds(limit, offset)
    result = await session.execute(
        _ordered(select(Task).where(Task.content_item_id == content_item_id))
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def update_task(
    session: AsyncSession,
    ctx: RequestContext,
    task_id: uuid.UUID,
    task_in: TaskUpdate,
) -> Task:
    """Patch a task. Allowed for the owner, the creator and the assignee."""
    task = await get_task_or_404(session, task_id)
    await authorize(session, ctx, task.organization_id, Capability.EDIT_TASK, resource=task)

    update_data = task_in.model_dump(exclude_unset=True)
    new_status = update_data.pop("status", None)

    if "assigned_to" in update_data:
        await _validate_assignee(session, task.organization_id, update_data["assigned_to"])
    if "content_item_id" in update_data:
        await _validate_content_item(session, task.organization_id, update_data["content_item_id"])
    if "title" in update_data and update_data["title"] is None:
        raise BadRequestError("Field 'title' cannot be null")
    if "metadata" in update_data:
        metadata = update_data.pop("metadata")
        task.metadata_ = metadata if metadata is not None else {}
    if update_data.get("priority", 0) is None:
        update_data.pop("priority")

    for key, value in update_data.items():
        setattr(task, key, value)

    if new_status is not None:
        apply_status(task, TaskStatus(new_status))

    task.updated_at = _utcnow()
    session.add(task)
    await session.flush()

    log.info(
        "task.updated",
        task_id=str(task.id),
        org_id=str(task.organization_id),
        fields=sorted(task_in.model_fields_set),
    )
    return task


async def delete_task(session: AsyncSession, ctx: RequestContext, task_id: uuid.UUID) -> None:
    task = await get_task_or_404(session, task_id)
    await authorize(session, ctx, task.organization_id, Capability.EDIT_TASK, resource=task)

    await session.delete(task)
    await session.flush()
    log.info("task.deleted", task_id=str(task_id), org_id=str(task.organization_id))
