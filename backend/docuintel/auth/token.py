"""
JWT Token Verification — OIDC-Compatible

The identity provider is an external collaborator: it signs RS256 access
tokens; this module only verifies them and turns the claims into a
UserSession that is passed explicitly through every service call.

Claims used:
  sub    → user id (owner of documents, storage prefix)
  email  → owner contact address stored on each document
  role   → "member" | "admin"  (custom:role, <namespace>/role or role)

Two dependencies:
  get_current_user    401 when the Authorization header is missing
  get_optional_user   None when the header is missing, so the upload
                      workflow can validate input before checking the session
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from docuintel.auth.jwks import jwks_cache
from docuintel.core.config import settings

logger = logging.getLogger(__name__)

bearer_scheme          = HTTPBearer(auto_error=True)
optional_bearer_scheme = HTTPBearer(auto_error=False)

VALID_ROLES: frozenset[str] = frozenset({"member", "admin"})


# ---------------------------------------------------------------------------
# Verified token payload
# ---------------------------------------------------------------------------

class UserSession(BaseModel):
    """Parsed, validated JWT claims — passed to services."""
    sub:   str          # provider user ID
    email: str
    role:  str          # member | admin
    exp:   int
    iss:   str

    @property
    def user_id(self) -> str:
        return self.sub


def _extract_role(claims: dict) -> str:
    role = (
        claims.get("custom:role")
        or claims.get(f"{settings.auth_namespace}/role")
        or claims.get("role")
    )
    if role not in VALID_ROLES:
        if role is not None:
            logger.warning("Unknown role '%s' in token, defaulting to 'member'", role)
        return "member"
    return role


# ---------------------------------------------------------------------------
# Main verification function
# ---------------------------------------------------------------------------

async def verify_token(token: str) -> UserSession:
    """
    Verify a JWT token:
      1. Fetch matching public key from JWKS (cached).
      2. Verify signature, expiry, issuer, audience.
      3. Return a typed UserSession.
    """
    signing_key = await jwks_cache.get_signing_key(token, issuer=settings.auth_issuer)

    try:
        claims = jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"verify_exp": True},
        )
    except ExpiredSignatureError:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError as exc:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {exc}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not claims.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Token missing sub claim")

    return UserSession(
        sub=claims["sub"],
        email=claims.get("email", ""),
        role=_extract_role(claims),
        exp=claims["exp"],
        iss=claims["iss"],
    )


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> UserSession:
    return await verify_token(credentials.credentials)


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
) -> UserSession | None:
    """A present-but-invalid token is still rejected with 401."""
    if credentials is None:
        return None
    return await verify_token(credentials.credentials)
