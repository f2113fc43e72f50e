"""Permission catalog and role-permission assignments."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Permission(UUIDMixin, SQLModel, table=True):
    __tablename__ = "permissions"

    code: str = Field(unique=True, nullable=False)
    description: Optional[str] = None


class RolePermission(SQLModel, table=True):
    __tablename__ = "role_permissions"

    role_id: uuid.UUID = Field(foreign_key="roles.id", primary_key=True)
    permission_id: uuid.UUID = Field(foreign_key="permissions.id", primary_key=True)
