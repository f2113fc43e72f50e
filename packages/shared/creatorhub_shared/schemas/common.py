from enum import Enum
import uuid
from typing import Any, Optional
from pydantic import AliasChoices, BaseModel

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"
    ARCHIVED = "archived"

# Legacy spellings accepted on input
TASK_STATUS_ALIASES: dict[str, TaskStatus] = {
    "started": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.DONE,
}

# Entering one of these stamps started_at once
TASK_ACTIVE_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.BLOCKED}
)

def normalize_task_status(value: Any) -> Any:
    if isinstance(value, str) and not isinstance(value, TaskStatus):
        lowered = value.strip().lower()
        return TASK_STATUS_ALIASES.get(lowered, lowered)
    return value

class ContentPlatform(str, Enum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    TWITCH = "twitch"
    FACEBOOK = "facebook"
    OTHER = "other"

class ContentVisibility(str, Enum):
    PRIVATE = "private"
    UNLISTED = "unlisted"
    PUBLIC = "public"

# Statuses gated behind ownership
PUBLISHED_STATUSES: frozenset[str] = frozenset({"published", "publicado"})

class PermissionCode(str, Enum):
    ORG_VIEW = "org.view"
    ORG_UPDATE = "org.update"
    ORG_DELETE = "org.delete"

PERMISSION_DESCRIPTIONS: dict[PermissionCode, str] = {
    PermissionCode.ORG_VIEW: "View organization details",
    PermissionCode.ORG_UPDATE: "Update organization settings",
    PermissionCode.ORG_DELETE: "Delete the organization",
}

class PermissionRead(BaseModel):
    id: uuid.UUID
    code: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}

# ORM rows keep JSON metadata on ``metadata_`` (``metadata`` is taken by SQLAlchemy)
ORM_METADATA = AliasChoices("metadata_", "metadata")
