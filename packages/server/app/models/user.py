"""User model (rows are owned by the session provider)."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True, nullable=False)
    name: str = Field(nullable=False)
    email: str = Field(unique=True, index=True, nullable=False)
    image: Optional[str] = None
    last_signin_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
