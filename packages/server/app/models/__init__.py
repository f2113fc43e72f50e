# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .organization import Organization  # noqa: F401
from .role import Role  # noqa: F401
from .permission import Permission, RolePermission  # noqa: F401
from .membership import Membership  # noqa: F401
from .content_item import ContentItem  # noqa: F401
from .task import Task  # noqa: F401
