"""
Document API — Pydantic Request/Response Schemas

Covers:
  - POST /documents/upload-index   (UploadIndexRequest → UploadIndexResponse)
  - GET  /documents/search, GET /documents/   (SearchResponse)
  - POST /documents/delete         (DeleteRequest → DeleteResponse)
  - POST /extract-docx             (DocxExtractionResponse)
  - Uniform error envelope for all 4xx/5xx (ErrorResponse)

Wire names follow the established client contract (camelCase request
fields, snake_case document fields); Python attributes are snake_case
throughout via aliases.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docuintel.core.errors import DocuIntelError


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class DocumentOut(BaseModel):
    """A persisted Document as returned to clients."""
    model_config = ConfigDict(from_attributes=True)

    id:           UUID
    created_at:   datetime
    file_name:    str
    file_url:     str
    storage_path: str
    content:      str
    category:     str
    topic:        str
    user_id:      str
    user_email:   str


# ---------------------------------------------------------------------------
# Upload-index
# ---------------------------------------------------------------------------

class UploadIndexRequest(BaseModel):
    """
    Body of POST /documents/upload-index.

    Only presence/shape is enforced here; the business rules (trimmed
    title/category, extension, base64 payload, content quality) live in
    IngestionService so they surface as ValidationError / ExtractionError
    rather than a generic 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    file_name:      str        = Field("", alias="fileName")
    base64_content: str        = Field("", alias="base64Content")
    content:        str        = Field("", description="Text extracted on the client, indexed for search")
    title:          str        = ""
    category:       str        = ""
    topic:          str        = ""
    user_id:        str | None = Field(None, description="Optional; must match the session subject")


class UploadIndexResponse(BaseModel):
    document: DocumentOut


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

NO_MATCHES_MESSAGE  = "No documents matched your search."
EMPTY_QUERY_MESSAGE = "Enter a search term."


class SearchStatus(str, Enum):
    OK          = "ok"
    NO_MATCHES  = "no_matches"     # advisory, not an error
    EMPTY_QUERY = "empty_query"    # no backend request was issued


class SearchResponse(BaseModel):
    documents: list[DocumentOut] = Field(default_factory=list)
    count:     int = 0
    status:    SearchStatus = SearchStatus.OK
    message:   str | None = None


# ---------------------------------------------------------------------------
# Administrative delete
# ---------------------------------------------------------------------------

class DeleteRequest(BaseModel):
    """Fields are optional so a missing one yields 400, not 422."""
    model_config = ConfigDict(populate_by_name=True)

    doc_id:   str | None = Field(None, alias="docId")
    file_url: str | None = Field(None, alias="fileUrl")


class DeleteResponse(BaseModel):
    success:  bool = True
    message:  str
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# DOCX extraction
# ---------------------------------------------------------------------------

class DocxExtractionResponse(BaseModel):
    text: str


# ---------------------------------------------------------------------------
# Structured error body
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    """
    Uniform error envelope for all 4xx/5xx responses.
    Clients should check `kind` for programmatic handling.
    """
    message:    str             = Field(..., description="Human-readable summary")
    kind:       str             = Field("internal_error", description="Stable machine-readable error kind")
    details:    dict            = Field(default_factory=dict)
    request_id: str | None      = Field(None, description="Trace ID for log correlation")

    @classmethod
    def from_exception(cls, exc: DocuIntelError, request_id: str | None = None) -> "ErrorResponse":
        details = dict(exc.details)
        reason = getattr(exc, "reason", None)
        if reason:
            details.setdefault("reason", reason)
        return cls(message=exc.message, kind=exc.kind, details=details, request_id=request_id)
