"""
Slug generation and unique-slug resolution.

``slugify`` is a pure normalization. ``resolve_unique_slug`` walks the
candidates ``base``, ``base-2``, ``base-3``... and relies on the store's
unique index as the final arbiter: each insert runs in a savepoint so a
unique violation only discards that attempt.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, is_unique_violation

log = structlog.get_logger()

T = TypeVar("T")

_DISALLOWED = re.compile(r"[^A-Za-z0-9_\s-]")
_WHITESPACE = re.compile(r"\s+")


def slugify(text: str) -> str:
    """Lowercase, accent-stripped, hyphen-joined form of ``text``.

    >>> slugify("Café & Cía!!")
    'cafe-cia'
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    cleaned = _DISALLOWED.sub("", decomposed).strip()
    return _WHITESPACE.sub("-", cleaned).lower()


def slug_candidates(base: str, max_attempts: int) -> list[str]:
    """``[base, base-2, ..., base-N]`` with N == max_attempts."""
    return [base if attempt == 0 else f"{base}-{attempt + 1}" for attempt in range(max_attempts)]


async def resolve_unique_slug(
    session: AsyncSession,
    base: str,
    exists: Callable[[str], Awaitable[bool]],
    insert: Callable[[str], Awaitable[T]],
    max_attempts: int,
) -> T:
    """Insert with the first free slug derived from ``base``.

    ``exists`` is an advisory pre-check; ``insert`` must flush so that a
    unique violation surfaces inside the savepoint. Raises ``ConflictError``
    once ``max_attempts`` candidates are exhausted.
    """
    for candidate in slug_candidates(base, max_attempts):
        if await exists(candidate):
            continue
        try:
            async with session.begin_nested():
                return await insert(candidate)
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            log.info("slug.collision", slug=candidate)

    log.warning("slug.exhausted", base_slug=base, attempts=max_attempts)
    raise ConflictError(
        "Could not generate a unique slug",
        details={"base_slug": base, "attempts": max_attempts},
    )
