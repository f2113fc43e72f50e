"""
Session authentication for CreatorHub.

Users are provisioned by an external identity provider; this module only
verifies the signed session it issues:
- JWT session token from the session cookie or an ``Authorization: Bearer`` header
- Redis revocation list keyed by the token's ``jti``
- FastAPI dependencies that turn the session into a ``RequestContext``
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.authorization import RequestContext
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import UnauthorizedError
from app.core.redis import get_redis, is_revoked, mark_revoked
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int = 3600) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    await mark_revoked(await get_redis(), jti, ttl_seconds)


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    return await is_revoked(await get_redis(), jti)


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionUser:
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Session:
    user: SessionUser
    jti: Optional[str] = None
    expires_at: Optional[datetime] = None


def extract_token(request: Request, authorization: Optional[str] = None) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(settings.session_cookie_name)


async def get_auth_session(
    request: Request,
    db: AsyncSession,
    authorization: Optional[str] = None,
) -> Optional[Session]:
    """Resolve the caller's session; ``None`` means anonymous."""
    token = extract_token(request, authorization)
    if not token:
        return None

    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        log.info("auth.invalid_token", path=request.url.path)
        return None

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        log.info("auth.revoked_token", jti=jti)
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        log.info("auth.unknown_user", user_id=user_id)
        return None

    exp = payload.get("exp")
    return Session(
        user=SessionUser(id=user.id, email=user.email, name=user.name),
        jti=jti,
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
    )


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

async def get_optional_auth_session(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    db: AsyncSession = Depends(get_session),
) -> Optional[Session]:
    auth_session = await get_auth_session(request, db, authorization)
    request.state.auth_session = auth_session
    return auth_session


async def get_request_context(
    auth_session: Optional[Session] = Depends(get_optional_auth_session),
) -> RequestContext:
    """Context for the current request. Anonymous when there is no session."""
    if auth_session is None:
        return RequestContext.anonymous()
    return RequestContext.for_user(auth_session.user.id)


async def require_auth_session(
    auth_session: Optional[Session] = Depends(get_optional_auth_session),
) -> Session:
    if auth_session is None:
        raise UnauthorizedError("Authentication required")
    return auth_session
