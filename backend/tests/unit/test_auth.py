"""
Unit Tests — JWT Auth
═════════════════════
Tests for:
  • JWKSCache     — fetch, TTL, force-refresh on unknown kid, clear()
  • verify_token  — valid token, expired, bad audience/issuer, missing sub
  • _extract_role — custom:role, namespaced claim, plain role, unknown role
  • require_role  — admin gate

All tests use the test RSA key pair from conftest.py.
Zero network calls — JWKS fetch is patched or the cache is primed.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException

from tests.conftest import TEST_ISSUER, USER_ID


# ─────────────────────────────────────────────────────────────────────────────
# JWKSCache
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.auth
class TestJWKSCache:

    async def test_get_signing_key_returns_public_key(self, make_token, test_jwks):
        from docuintel.auth.jwks import JWKSCache
        cache = JWKSCache()

        with patch.object(cache, "_fetch", new=AsyncMock(return_value=test_jwks)):
            key = await cache.get_signing_key(make_token(), TEST_ISSUER)

        assert key is not None

    async def test_unknown_kid_triggers_single_force_refresh(self, make_token, test_jwks):
        from docuintel.auth.jwks import JWKSCache
        cache = JWKSCache()
        fetch = AsyncMock(return_value=test_jwks)

        with patch.object(cache, "_fetch", new=fetch), pytest.raises(HTTPException) as exc_info:
            await cache.get_signing_key(make_token(kid="rotated-away"), TEST_ISSUER)

        assert exc_info.value.status_code == 401
        assert fetch.await_count == 2

    async def test_fetch_is_cached_within_ttl(self, test_jwks):
        from docuintel.auth.jwks import JWKSCache
        cache = JWKSCache()

        response = AsyncMock()
        response.raise_for_status = lambda: None
        response.json = lambda: test_jwks
        client = AsyncMock()
        client.get = AsyncMock(return_value=response)
        client.__aenter__.return_value = client

        with patch("docuintel.auth.jwks.httpx.AsyncClient", return_value=client):
            await cache._fetch(TEST_ISSUER)
            await cache._fetch(TEST_ISSUER)

        client.get.assert_awaited_once_with("https://test.auth.example.com/.well-known/jwks.json")

    async def test_malformed_token_header(self):
        from docuintel.auth.jwks import JWKSCache
        with pytest.raises(HTTPException) as exc_info:
            await JWKSCache().get_signing_key("not-a-jwt", TEST_ISSUER)
        assert exc_info.value.status_code == 401

    def test_clear(self, test_jwks):
        from docuintel.auth.jwks import JWKSCache
        cache = JWKSCache()
        cache.prime(TEST_ISSUER, test_jwks)
        cache.clear()
        assert cache._store == {}


# ─────────────────────────────────────────────────────────────────────────────
# verify_token
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.auth
class TestVerifyToken:

    async def test_valid_token(self, primed_jwks, make_token):
        from docuintel.auth.token import verify_token

        session = await verify_token(make_token(role="admin", email="a@example.com"))

        assert session.sub == USER_ID
        assert session.user_id == USER_ID
        assert session.email == "a@example.com"
        assert session.role == "admin"
        assert session.iss == TEST_ISSUER

    async def test_expired_token(self, primed_jwks, make_token):
        from docuintel.auth.token import verify_token

        with pytest.raises(HTTPException) as exc_info:
            await verify_token(make_token(expired=True))

        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.detail.lower()

    @pytest.mark.parametrize("overrides", [
        {"audience": "someone-else"},
        {"issuer": "https://evil.example.com/"},
    ])
    async def test_wrong_audience_or_issuer(self, primed_jwks, make_token, overrides):
        from docuintel.auth.token import verify_token

        with pytest.raises(HTTPException) as exc_info:
            await verify_token(make_token(**overrides))
        assert exc_info.value.status_code == 401

    async def test_missing_sub(self, primed_jwks, make_token):
        from docuintel.auth.token import verify_token

        with pytest.raises(HTTPException) as exc_info:
            await verify_token(make_token(sub=None))
        assert exc_info.value.status_code == 401

    async def test_tampered_signature(self, primed_jwks, make_token):
        from docuintel.auth.token import verify_token

        header, payload, signature = make_token().split(".")
        tampered = ".".join([header, payload, signature[:-4] + "AAAA"])

        with pytest.raises(HTTPException):
            await verify_token(tampered)

    async def test_optional_user_without_header_is_none(self):
        from docuintel.auth.token import get_optional_user
        assert await get_optional_user(None) is None


# ─────────────────────────────────────────────────────────────────────────────
# Role extraction
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.auth
class TestExtractRole:

    @pytest.mark.parametrize("claims,expected", [
        ({"custom:role": "admin"},                      "admin"),
        ({"https://docuintel.app/role": "admin"},       "admin"),
        ({"role": "member"},                            "member"),
        ({},                                            "member"),
        ({"custom:role": "superuser"},                  "member"),
    ])
    def test_role_claims(self, claims, expected):
        from docuintel.auth.token import _extract_role
        assert _extract_role(claims) == expected


# ─────────────────────────────────────────────────────────────────────────────
# require_role
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.auth
class TestRequireRole:

    async def test_admin_passes(self, admin_session):
        from docuintel.auth.rbac import RequireAdmin
        assert await RequireAdmin(admin_session) is admin_session

    async def test_member_is_forbidden(self, member_session):
        from docuintel.auth.rbac import RequireAdmin

        with pytest.raises(HTTPException) as exc_info:
            await RequireAdmin(member_session)
        assert exc_info.value.status_code == 403

    def test_unknown_minimum_role_is_rejected(self):
        from docuintel.auth.rbac import require_role
        with pytest.raises(ValueError):
            require_role("owner")
