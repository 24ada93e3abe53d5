"""
JWKS cache — the only module-level singleton in the auth path.

  • Fetches the provider's /.well-known/jwks.json once and caches for TTL.
  • On cache miss for a specific kid: force-refreshes once (handles rotation).
  • On second miss: raises 401 with a clear message.
  • HTTP errors from the JWKS endpoint are propagated as 401 responses
    (the client cannot fix a JWKS endpoint outage).
"""

from __future__ import annotations

import logging
import time

import httpx
from fastapi import HTTPException, status
from jose import JWTError, jwk, jwt

logger = logging.getLogger(__name__)


class JWKSCache:

    _TTL: int = 3600   # 1 hour

    def __init__(self) -> None:
        self._store: dict[str, tuple[dict, float]] = {}   # issuer → (jwks, fetched_at)

    async def get_signing_key(self, token: str, issuer: str) -> object:
        """Resolve the RSA public key for the given token's kid."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise HTTPException(
                status.HTTP_401_UNAUTHORIZED,
                detail="Malformed token header",
            ) from exc

        kid = header.get("kid")

        for attempt in range(2):
            if attempt == 1:
                self._store.pop(issuer, None)   # force refresh on second attempt

            jwks = await self._fetch(issuer)

            for key_data in jwks.get("keys", []):
                if key_data.get("kid") == kid:
                    return jwk.construct(key_data).public_key()

        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail=f"No signing key found for kid={kid!r}.",
        )

    async def _fetch(self, issuer: str) -> dict:
        """Fetch JWKS from well-known endpoint with TTL-based caching."""
        now    = time.monotonic()
        cached = self._store.get(issuer)

        if cached and (now - cached[1]) < self._TTL:
            return cached[0]

        uri = f"{issuer.rstrip('/')}/.well-known/jwks.json"
        try:
            async with httpx.AsyncClient(timeout=10.0) as http:
                resp = await http.get(uri)
                resp.raise_for_status()
                jwks = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("JWKS fetch failed | issuer=%s status=%d", issuer, exc.response.status_code)
            raise HTTPException(
                status.HTTP_401_UNAUTHORIZED,
                detail="Unable to retrieve token signing keys.",
            ) from exc
        except httpx.RequestError as exc:
            logger.error("JWKS fetch network error | issuer=%s error=%s", issuer, exc)
            raise HTTPException(
                status.HTTP_401_UNAUTHORIZED,
                detail="Unable to retrieve token signing keys (network error).",
            ) from exc

        self._store[issuer] = (jwks, now)
        logger.debug("JWKS refreshed | issuer=%s keys=%d", issuer, len(jwks.get("keys", [])))
        return jwks

    def prime(self, issuer: str, jwks: dict) -> None:
        """Seed the cache (tests and offline deployments with pinned keys)."""
        self._store[issuer] = (jwks, time.monotonic())

    def clear(self) -> None:
        self._store.clear()


jwks_cache = JWKSCache()
