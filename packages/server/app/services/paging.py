"""Limit/offset helpers shared by the list operations."""

from __future__ import annotations

from typing import Optional

from app.core.config import get_settings

settings = get_settings()


def page_bounds(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
    """Clamp a requested page to the configured bounds."""
    if limit is None or limit < 1:
        limit = settings.default_page_size
    limit = min(limit, settings.max_page_size)
    offset = max(offset or 0, 0)
    return limit, offset
