"""Initial schema: organizations, memberships, roles, permissions, content, tasks.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union
import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

PERMISSIONS = [
    ("org.view", "View organization details"),
    ("org.update", "Update organization settings"),
    ("org.delete", "Delete the organization"),
]


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _ts(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def _jsonb(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb"))


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # users (rows written by the session provider)
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("image", sa.Text(), nullable=True),
        _ts("last_signin_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )

    op.create_table(
        "organizations",
        _uuid_pk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("timezone", sa.Text(), nullable=False, server_default="UTC"),
        sa.Column("locale", sa.Text(), nullable=False, server_default="pt_BR"),
        sa.Column("currency", sa.CHAR(3), nullable=False, server_default="BRL"),
        sa.Column("white_label", sa.Boolean(), nullable=False, server_default=sa.false()),
        _jsonb("branding"),
        _jsonb("billing_info"),
        _jsonb("settings"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_organizations_name", "organizations", ["name"])
    op.create_index("ix_organizations_slug", "organizations", ["slug"])
    op.execute("CREATE UNIQUE INDEX uq_organizations_slug_lower ON organizations (lower(slug))")

    op.create_table(
        "roles",
        _uuid_pk(),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_builtin", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
    )
    op.create_index("ix_roles_organization_id", "roles", ["organization_id"])
    op.execute("CREATE UNIQUE INDEX uq_roles_org_name_lower ON roles (organization_id, lower(name))")

    permissions = op.create_table(
        "permissions",
        _uuid_pk(),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
    )

    op.create_table(
        "role_permissions",
        sa.Column(
            "role_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("roles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "permission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("permissions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "organization_members",
        _uuid_pk(),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Text(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "role_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("roles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_owner", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _jsonb("preferences"),
        _ts("joined_at"),
        sa.UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
    )
    op.create_index("ix_organization_members_organization_id", "organization_members", ["organization_id"])
    op.create_index("ix_organization_members_user_id", "organization_members", ["user_id"])
    op.create_index("ix_organization_members_role_id", "organization_members", ["role_id"])
    op.create_index(
        "uq_organization_members_single_owner",
        "organization_members",
        ["organization_id"],
        unique=True,
        postgresql_where=sa.text("is_owner"),
    )

    op.create_table(
        "content_items",
        _uuid_pk(),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content_type", sa.Text(), nullable=True),
        sa.Column("platform", sa.Text(), nullable=True),
        sa.Column("external_id", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="idea"),
        sa.Column("visibility", sa.Text(), nullable=False, server_default="private"),
        _ts("scheduled_at", nullable=True),
        _ts("published_at", nullable=True),
        sa.Column("estimated_duration_seconds", sa.Integer(), nullable=True),
        _jsonb("metadata"),
        sa.Column("created_by", sa.Text(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint(
            "estimated_duration_seconds IS NULL OR estimated_duration_seconds > 0",
            name="ck_content_items_duration_positive",
        ),
    )
    op.create_index("ix_content_items_organization_id", "content_items", ["organization_id"])
    op.create_index("ix_content_items_status", "content_items", ["status"])

    op.create_table(
        "tasks",
        _uuid_pk(),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "content_item_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("content_items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="todo"),
        sa.Column("priority", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column(
            "assigned_to",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organization_members.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _ts("due_date", nullable=True),
        _ts("started_at", nullable=True),
        _ts("completed_at", nullable=True),
        _jsonb("metadata"),
        sa.Column("created_by", sa.Text(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint(
            "status IN ('todo', 'in_progress', 'blocked', 'done', 'archived')",
            name="ck_tasks_status",
        ),
    )
    op.create_index("ix_tasks_organization_id", "tasks", ["organization_id"])
    op.create_index("ix_tasks_content_item_id", "tasks", ["content_item_id"])
    op.create_index("ix_tasks_assigned_to", "tasks", ["assigned_to"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])

    # Permission catalog
    op.bulk_insert(
        permissions,
        [{"id": uuid.uuid4(), "code": code, "description": desc} for code, desc in PERMISSIONS],
    )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in (
        "tasks",
        "content_items",
        "organization_members",
        "role_permissions",
        "permissions",
        "roles",
        "organizations",
        "users",
    ):
        op.drop_table(table)
