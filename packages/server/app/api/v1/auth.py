"""
Session endpoints.

Sessions are issued by the external identity provider; this service only
introspects and revokes them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from app.core.auth import (
    Session,
    generate_csrf_token,
    get_optional_auth_session,
    require_auth_session,
    revoke_jwt,
)
from app.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()


class SessionResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    expires_at: Optional[datetime] = None


@router.get("/session", response_model=SessionResponse)
async def current_session(response: Response, auth: Session = Depends(require_auth_session)):
    """Who the current session belongs to.

    Also (re)issues the CSRF cookie that browser clients echo back in the
    ``X-CSRF-Token`` header on writes.
    """
    response.set_cookie(
        settings.csrf_cookie_name,
        generate_csrf_token(),
        httponly=False,
        samesite="lax",
        secure=not settings.debug,
        path="/",
    )
    return SessionResponse(
        user_id=auth.user.id,
        email=auth.user.email,
        name=auth.user.name,
        expires_at=auth.expires_at,
    )


@router.post("/logout")
async def logout(
    response: Response,
    auth: Optional[Session] = Depends(get_optional_auth_session),
):
    """Revoke the current session token and clear the session cookies."""
    if auth is not None and auth.jti:
        ttl = settings.jwt_expire_minutes * 60
        if auth.expires_at is not None:
            remaining = (auth.expires_at - datetime.now(timezone.utc)).total_seconds()
            ttl = max(int(remaining), 1)
        await revoke_jwt(auth.jti, ttl_seconds=ttl)
        log.info("auth.logout", user_id=auth.user.id, jti=auth.jti)

    response.delete_cookie(settings.session_cookie_name, path="/")
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    return {"message": "Logged out"}
