"""
Document API Router

  POST /api/v1/documents/upload-index   store binary + index extracted text
  GET  /api/v1/documents/search?q=      full-text search over own documents
  GET  /api/v1/documents/               list own documents, newest first
  POST /api/v1/documents/delete         administrative delete (admin role)

Request lifecycle (upload-index):
  ┌─────────────────────────────────────────────────────────┐
  │ 1. Body parsed (camelCase wire names)                   │
  │ 2. Business validation  → 400 validation_error          │
  │ 3. Session check        → 401 unauthenticated           │
  │ 4. Content gate         → 422 extraction_error          │
  │ 5. S3 put (no overwrite) under <user_id>/               │
  │ 6. DB insert, compensating delete on failure            │
  │ 7. 201 {document}                                       │
  └─────────────────────────────────────────────────────────┘

Input validation runs before the session check, so the upload route takes
the optional session dependencies and lets IngestionService decide.
All failures are raised as DocuIntelError subclasses and rendered by the
application's exception handler.
"""

from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from docuintel.auth.dependencies import (
    AdminStorage,
    CurrentUser,
    OptionalUser,
    OptionalUserDB,
    OptionalUserStorage,
    PrivilegedDB,
    SearchDB,
    UserDB,
)
from docuintel.auth.rbac import RequireAdmin
from docuintel.auth.token import UserSession
from docuintel.schemas.documents import (
    DeleteRequest,
    DeleteResponse,
    DocumentOut,
    ErrorResponse,
    SearchResponse,
    UploadIndexRequest,
    UploadIndexResponse,
)
from docuintel.services.admin import AdminService
from docuintel.services.ingestion import IngestionService
from docuintel.services.search import SearchGateway, SearchResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/documents",
    tags=["Documents"],
)


def _search_response(result: SearchResult) -> SearchResponse:
    return SearchResponse(
        documents=[DocumentOut.model_validate(d) for d in result.documents],
        count=result.count,
        status=result.status,
        message=result.message,
    )


# ---------------------------------------------------------------------------
# POST /documents/upload-index
# ---------------------------------------------------------------------------

@router.post(
    "/upload-index",
    response_model=UploadIndexResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store a file and index its extracted text",
    responses={
        400: {"model": ErrorResponse, "description": "Missing title/category, bad payload or extension"},
        401: {"model": ErrorResponse, "description": "No valid session"},
        422: {"model": ErrorResponse, "description": "Extracted content empty or failed"},
        500: {"model": ErrorResponse, "description": "Storage or database failure"},
    },
)
async def upload_index(
    body:    UploadIndexRequest,
    user:    OptionalUser,
    db:      OptionalUserDB,
    storage: OptionalUserStorage,
) -> UploadIndexResponse:
    service = IngestionService(db=db, storage=storage)
    doc = await service.index(body, user)
    return UploadIndexResponse(document=DocumentOut.model_validate(doc))


# ---------------------------------------------------------------------------
# GET /documents/search
# ---------------------------------------------------------------------------

@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Full-text search over the caller's documents",
    responses={
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def search_documents(
    user: CurrentUser,
    db:   SearchDB,
    q:    Optional[str] = Query(None, max_length=500, description="websearch-style query"),
) -> SearchResponse:
    result = await SearchGateway(db).search(q, user)
    return _search_response(result)


# ---------------------------------------------------------------------------
# GET /documents/
# ---------------------------------------------------------------------------

@router.get(
    "/",
    response_model=SearchResponse,
    summary="List the caller's documents, newest first",
    responses={
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def list_documents(
    user: CurrentUser,
    db:   UserDB,
) -> SearchResponse:
    result = await SearchGateway(db).list_all(user)
    return _search_response(result)


# ---------------------------------------------------------------------------
# POST /documents/delete
# ---------------------------------------------------------------------------

@router.post(
    "/delete",
    response_model=DeleteResponse,
    summary="Delete a document's binary and record (admin only)",
    responses={
        400: {"model": ErrorResponse, "description": "Missing docId/fileUrl or malformed URL"},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse, "description": "Caller lacks the admin role"},
        500: {"model": ErrorResponse, "description": "Storage or database failure"},
    },
)
async def delete_document(
    body:    DeleteRequest,
    user:    Annotated[UserSession, Depends(RequireAdmin)],
    db:      PrivilegedDB,
    storage: AdminStorage,
) -> DeleteResponse:
    logger.warning("Admin delete requested | admin=%s doc=%s", user.sub, body.doc_id)
    result = await AdminService(db=db, storage=storage).delete(body.doc_id, body.file_url)
    return DeleteResponse(
        success=result.success,
        message=result.message,
        warnings=result.warnings,
    )
