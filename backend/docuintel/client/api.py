"""
HTTP client for the DocuIntel API.

Every call takes the caller's ClientSession explicitly; the bearer token is
attached per request, so one DocuIntelClient can serve several sessions.
Non-2xx responses are turned back into the DocuIntelError subclass named by
the body's `kind`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from docuintel.core.errors import DocuIntelError, UnauthenticatedError, error_from_kind
from docuintel.schemas.documents import (
    EMPTY_QUERY_MESSAGE,
    DeleteResponse,
    DocumentOut,
    SearchResponse,
    SearchStatus,
    UploadIndexResponse,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DEFAULT_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True)
class ClientSession:
    """What the client knows about the signed-in user."""
    access_token: str
    user_id:      str = ""
    email:        str = ""


class BearerToken(httpx.Auth):
    def __init__(self, token: str) -> None:
        self._token = token

    def auth_flow(self, request: httpx.Request):
        request.headers["Authorization"] = f"Bearer {self._token}"
        yield request


def _auth(session: ClientSession | None) -> BearerToken:
    if session is None or not session.access_token:
        raise UnauthenticatedError("Authentication required. Sign in first.")
    return BearerToken(session.access_token)


def raise_for_error(resp: httpx.Response) -> None:
    """Map an error response onto the domain exception taxonomy."""
    if resp.is_success:
        return
    try:
        body: dict[str, Any] = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("message") or body.get("detail") or f"HTTP {resp.status_code}"
    details = dict(body.get("details") or {})
    details.setdefault("status_code", resp.status_code)
    if body.get("request_id"):
        details.setdefault("request_id", body["request_id"])

    exc = error_from_kind(body.get("kind"), str(message), details)
    logger.debug("API error | status=%d kind=%s", resp.status_code, exc.kind)
    raise exc


class DocuIntelClient:
    """
    Thin async wrapper over httpx.AsyncClient.

    Usage:
        async with DocuIntelClient("https://docs.example.com") as api:
            result = await api.search("invoice 2024", session)
    """

    def __init__(
        self,
        base_url:  str,
        timeout:   float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    @property
    def http(self) -> httpx.AsyncClient:
        """Underlying client, shared with RemoteDocxExtractor."""
        return self._http

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "DocuIntelClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self,
        method:  str,
        path:    str,
        session: ClientSession | None,
        **kwargs: Any,
    ) -> httpx.Response:
        auth = _auth(session)
        try:
            resp = await self._http.request(method, f"{API_PREFIX}{path}", auth=auth, **kwargs)
        except httpx.RequestError as exc:
            logger.error("API request failed | %s %s error=%s", method, path, exc)
            raise DocuIntelError(f"Could not reach the server: {exc}") from exc
        raise_for_error(resp)
        return resp

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def upload_index(self, payload: dict[str, Any], session: ClientSession) -> DocumentOut:
        resp = await self._request("POST", "/documents/upload-index", session, json=payload)
        return UploadIndexResponse.model_validate(resp.json()).document

    async def search(self, query: str, session: ClientSession) -> SearchResponse:
        if not (query or "").strip():
            return SearchResponse(status=SearchStatus.EMPTY_QUERY, message=EMPTY_QUERY_MESSAGE)
        resp = await self._request("GET", "/documents/search", session, params={"q": query})
        return SearchResponse.model_validate(resp.json())

    async def list_all(self, session: ClientSession) -> SearchResponse:
        resp = await self._request("GET", "/documents/", session)
        return SearchResponse.model_validate(resp.json())

    async def delete(self, doc_id: str, file_url: str, session: ClientSession) -> DeleteResponse:
        resp = await self._request(
            "POST", "/documents/delete", session,
            json={"docId": doc_id, "fileUrl": file_url},
        )
        return DeleteResponse.model_validate(resp.json())
