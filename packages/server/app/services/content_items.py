"""
Content item service.

Creating an item in, or moving it to, a published status is reserved for
the organization owner; ``published_at`` is stamped when not supplied.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.authorization import Capability, RequestContext, authorize
from app.core.errors import BadRequestError, NotFoundError
from app.models.content_item import ContentItem
from app.models.organization import Organization
from app.models.task import Task
from app.services.paging import page_bounds

from creatorhub_shared.schemas.common import PUBLISHED_STATUSES, ContentPlatform, ContentVisibility
from creatorhub_shared.schemas.content_items import ContentItemCreate, ContentItemUpdate

log = structlog.get_logger()


def is_published_status(status: Optional[str]) -> bool:
    return status is not None and status.lower() in PUBLISHED_STATUSES


async def get_content_item_or_404(session: AsyncSession, item_id: uuid.UUID) -> ContentItem:
    item = await session.get(ContentItem, item_id)
    if not item:
        raise NotFoundError("Content item not found")
    return item


async def create_content_item(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    item_in: ContentItemCreate,
) -> ContentItem:
    if await session.get(Organization, organization_id) is None:
        raise NotFoundError("Organization not found")
    await authorize(session, ctx, organization_id, Capability.CONTRIBUTE)

    published_at = item_in.published_at
    if is_published_status(item_in.status):
        await authorize(session, ctx, organization_id, Capability.PUBLISH)
        published_at = published_at or datetime.now(timezone.utc)

    item = ContentItem(
        organization_id=organization_id,
        title=item_in.title,
        description=item_in.description,
        content_type=item_in.content_type,
        platform=item_in.platform.value if item_in.platform else None,
        external_id=item_in.external_id,
        status=item_in.status,
        visibility=item_in.visibility,
        scheduled_at=item_in.scheduled_at,
        published_at=published_at,
        estimated_duration_seconds=item_in.estimated_duration_seconds,
        metadata_=item_in.metadata,
        created_by=ctx.actor_id,
    )
    session.add(item)
    await session.flush()

    log.info(
        "content.created",
        item_id=str(item.id),
        org_id=str(organization_id),
        status=item.status,
        created_by=ctx.actor_id,
    )
    return item


async def get_content_item(
    session: AsyncSession, ctx: RequestContext, item_id: uuid.UUID
) -> ContentItem:
    """Private items are visible to members only; others to any signed-in user."""
    item = await get_content_item_or_404(session, item_id)
    if item.visibility == ContentVisibility.PRIVATE.value:
        await authorize(session, ctx, item.organization_id, Capability.VIEW)
    elif not ctx.system:
        ctx.require_actor()
    return item


async def list_content_items(
    session: AsyncSession,
    ctx: RequestContext,
    organization_id: uuid.UUID,
    *,
    platform: Optional[ContentPlatform] = None,
    status: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[ContentItem]:
    """List an organization's items, newest first, with optional filters."""
    await authorize(session, ctx, organization_id, Capability.VIEW)
    limit, offset = page_bounds(limit, offset)

    stmt = select(ContentItem).where(ContentItem.organization_id == organization_id)
    if platform:
        stmt = stmt.where(ContentItem.platform == platform.value)
    if status:
        stmt = stmt.where(ContentItem.status == status)
    if q:
        pattern = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(ContentItem.title.ilike(pattern), ContentItem.description.ilike(pattern))
        )

    result = await session.execute(
        stmt.order_by(ContentItem.created_at.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def update_content_item(
    session: AsyncSession,
    ctx: RequestContext,
    item_id: uuid.UUID,
    item_in: ContentItemUpdate,
) -> ContentItem:
    item = await get_content_item_or_404(session, item_id)
    await authorize(session, ctx, item.organization_id, Capability.EDIT_CONTENT, resource=item)

    update_data = item_in.model_dump(exclude_unset=True)
    for field in ("title", "status", "visibility"):
        if field in update_data and update_data[field] is None:
            raise BadRequestError(f"Field '{field}' cannot be null")

    new_status = update_data.get("status")
    if is_published_status(new_status) and new_status != item.status:
        await authorize(session, ctx, item.organization_id, Capability.PUBLISH)
        if not update_data.get("published_at"):
            update_data["published_at"] = datetime.now(timezone.utc)

    if "platform" in update_data and update_data["platform"] is not None:
        update_data["platform"] = ContentPlatform(update_data["platform"]).value
    if "metadata" in update_data:
        metadata = update_data.pop("metadata")
        item.metadata_ = metadata if metadata is not None else {}

    for key, value in update_data.items():
        setattr(item, key, value)

    item.updated_at = datetime.now(timezone.utc)
    session.add(item)
    await session.flush()

    log.info(
        "content.updated",
        item_id=str(item.id),
        org_id=str(item.organization_id),
        fields=sorted(item_in.model_fields_set),
    )
    return item


async def delete_content_item(
    session: AsyncSession, ctx: RequestContext, item_id: uuid.UUID
) -> None:
    item = await get_content_item_or_404(session, item_id)
    await authorize(session, ctx, item.organization_id, Capability.EDIT_CONTENT, resource=item)

    await session.execute(
        update(Task).where(Task.content_item_id == item.id).values(content_item_id=None)
    )
    await session.delete(item)
    await session.flush()
    log.info("content.deleted", item_id=str(item_id), org_id=str(item.organization_id))
