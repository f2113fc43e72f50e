"""
Tests for session authentication.

Covers:
- JWT creation, decoding, revocation
- Token extraction (bearer header vs. session cookie)
- CSRF middleware
- Security headers middleware
- Request id propagation
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import jwt as pyjwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from app.core.auth import (
    create_jwt,
    decode_jwt,
    extract_token,
    generate_csrf_token,
    is_jwt_revoked,
    revoke_jwt,
)
from app.core.middleware import (
    SECURITY_HEADERS,
    CSRFMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from app.core.redis import REVOKED_PREFIX, is_revoked, mark_revoked, revocation_key


def _request(headers: dict[str, str]) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------

class TestJWT:
    def test_create_and_decode(self):
        token, jti = create_jwt("user_123")
        payload = decode_jwt(token)
        assert payload["sub"] == "user_123"
        assert payload["jti"] == jti
        assert payload["exp"] > payload["iat"]

    def test_unique_jti(self):
        _, a = create_jwt("user_123")
        _, b = create_jwt("user_123")
        assert a != b

    def test_expired_jwt_raises(self):
        token, _ = create_jwt("user_123", expires_delta=timedelta(seconds=-1))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    def test_tampered_jwt_raises(self):
        token, _ = create_jwt("user_123")
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(pyjwt.InvalidSignatureError):
            decode_jwt(tampered)


# ---------------------------------------------------------------------------
# Unit Tests: token extraction
# ---------------------------------------------------------------------------

class TestExtractToken:
    def test_bearer_header(self):
        assert extract_token(_request({}), "Bearer abc") == "abc"

    def test_cookie(self):
        assert extract_token(_request({"Cookie": "ch_session=from-cookie"})) == "from-cookie"

    def test_bearer_wins_over_cookie(self):
        request = _request({"Cookie": "ch_session=from-cookie"})
        assert extract_token(request, "Bearer from-header") == "from-header"

    def test_non_bearer_header_falls_back_to_cookie(self):
        request = _request({"Cookie": "ch_session=from-cookie"})
        assert extract_token(request, "Basic dXNlcjpwYXNz") == "from-cookie"

    def test_nothing(self):
        assert extract_token(_request({}), None) is None


# ---------------------------------------------------------------------------
# Unit Tests: CSRF Token
# ---------------------------------------------------------------------------

class TestCSRFToken:
    def test_generates_unique_tokens(self):
        t1 = generate_csrf_token()
        t2 = generate_csrf_token()
        assert t1 != t2
        assert len(t1) > 20


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value


class TestRequestContextMiddleware:
    def _make_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        return app

    def test_echoes_request_id(self):
        client = TestClient(self._make_app())
        resp = client.get("/test", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"

    def test_generates_request_id(self):
        client = TestClient(self._make_app())
        resp = client.get("/test")
        assert resp.headers["X-Request-ID"]


class TestCSRFMiddleware:
    def _make_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CSRFMiddleware)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        @app.post("/test")
        async def post_test():
            return {"ok": True}

        return app

    def test_get_passes_without_csrf(self):
        client = TestClient(self._make_app(), cookies={"ch_session": "some-jwt"})
        resp = client.get("/test")
        assert resp.status_code == 200

    def test_post_with_bearer_skips_csrf(self):
        client = TestClient(self._make_app(), cookies={"ch_session": "some-jwt"})
        resp = client.post("/test", headers={"Authorization": "Bearer some-jwt"})
        assert resp.status_code == 200

    def test_post_without_session_cookie_passes(self):
        """No session cookie = not a browser request, skip CSRF."""
        client = TestClient(self._make_app())
        resp = client.post("/test")
        assert resp.status_code == 200

    def test_post_with_session_but_no_csrf_fails(self):
        client = TestClient(self._make_app(), cookies={"ch_session": "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "CSRF_VALIDATION_FAILED"

    def test_post_with_matching_csrf_passes(self):
        csrf_token = "test-csrf-token"
        client = TestClient(
            self._make_app(),
            cookies={"ch_session": "some-jwt", "ch_csrf": csrf_token},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": csrf_token})
        assert resp.status_code == 200

    def test_post_with_mismatched_csrf_fails(self):
        client = TestClient(
            self._make_app(),
            cookies={"ch_session": "some-jwt", "ch_csrf": "token-a"},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": "token-b"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Unit Tests: JWT Revocation (mocked Redis)
# ---------------------------------------------------------------------------

class TestJWTRevocation:
    async def test_revoke_and_check(self):
        mock_redis = AsyncMock()
        mock_redis.setex = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=1)

        with patch("app.core.auth.get_redis", return_value=mock_redis):
            await revoke_jwt("test-jti-123")
            mock_redis.setex.assert_called_once_with("session:revoked:test-jti-123", 3600, "1")

            assert await is_jwt_revoked("test-jti-123") is True

    async def test_non_revoked_jwt(self):
        mock_redis = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=0)

        with patch("app.core.auth.get_redis", return_value=mock_redis):
            assert await is_jwt_revoked("non-existent-jti") is False

    async def test_expiry_never_below_one_second(self):
        mock_redis = AsyncMock()
        await mark_revoked(mock_redis, "late-jti", 0)
        mock_redis.setex.assert_awaited_once_with(revocation_key("late-jti"), 1, "1")

    async def test_lookup_uses_revocation_key(self):
        mock_redis = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=1)
        assert await is_revoked(mock_redis, "abc") is True
        mock_redis.exists.assert_awaited_once_with(f"{REVOKED_PREFIX}abc")
