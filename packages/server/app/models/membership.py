"""Organization membership (one row per organization and user)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, UUIDMixin, _utcnow


class Membership(UUIDMixin, SQLModel, table=True):
    __tablename__ = "organization_members"
    __table_args__ = (
        sa.UniqueConstraint(
            "organization_id", "user_id", name="uq_organization_members_org_user"
        ),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: str = Field(foreign_key="users.id", nullable=False, index=True)
    role_id: Optional[uuid.UUID] = Field(default=None, foreign_key="roles.id", index=True)
    is_owner: bool = Field(default=False, nullable=False)
    active: bool = Field(default=True, nullable=False)
    preferences: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    joined_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )


# At most one owner per organization
sa.Index(
    "uq_organization_members_single_owner",
    Membership.__table__.c.organization_id,
    unique=True,
    postgresql_where=Membership.__table__.c.is_owner == sa.true(),
    sqlite_where=Membership.__table__.c.is_owner == sa.true(),
)
