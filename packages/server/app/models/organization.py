"""Organization model."""

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    slug: str = Field(nullable=False, index=True)
    timezone: str = Field(default="UTC", nullable=False)
    locale: str = Field(default="pt_BR", nullable=False)
    currency: str = Field(default="BRL", nullable=False, sa_type=sa.CHAR(3))
    white_label: bool = Field(default=False, nullable=False)
    branding: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    billing_info: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    settings: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)


# Slugs are unique regardless of case
sa.Index(
    "uq_organizations_slug_lower",
    sa.func.lower(Organization.__table__.c.slug),
    unique=True,
)
