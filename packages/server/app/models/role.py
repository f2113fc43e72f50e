"""Organization-scoped role model."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Role(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "roles"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    description: Optional[str] = None
    is_builtin: bool = Field(default=False, nullable=False)


# Role names are unique per organization regardless of case
sa.Index(
    "uq_roles_org_name_lower",
    Role.__table__.c.organization_id,
    sa.func.lower(Role.__table__.c.name),
    unique=True,
)
