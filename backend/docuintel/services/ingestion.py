"""
Document Ingestion Service

Server half of the upload workflow, behind POST /documents/upload-index.
The client has already extracted the text; this service re-checks every
gate before any write and then persists binary + record:

  1. Validate request    (title, category, extension, base64 payload, user_id)
  2. Resolve session     (absent → UnauthenticatedError)
  3. Check content       (empty / failure sentinel → ExtractionError)
  4. Upload binary       <user_id>/<timestamp_ms>-<token>.<ext>, no overwrite
  5. Public URL          <public_base>/<bucket>/<key>
  6. Insert record       commit; on failure delete the binary again
  7. Return the Document

Invariants enforced here:
  - user_id / user_email are ALWAYS taken from the verified session.
  - No storage call happens unless stages 1–3 passed.
  - A record exists iff its binary exists: a failed insert triggers a
    compensating delete. If that delete fails too, the orphaned key is
    logged at ERROR and reported in the DatabaseError details.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
import time
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docuintel.auth.token import UserSession
from docuintel.core.config import settings
from docuintel.core.errors import (
    DatabaseError,
    ExtractionError,
    StorageError,
    UnauthenticatedError,
    ValidationError,
)
from docuintel.models.documents import Document
from docuintel.processing.extractor import SUPPORTED_EXTENSIONS, get_extension
from docuintel.processing.strategies import classify_text
from docuintel.schemas.documents import UploadIndexRequest
from docuintel.storage.s3 import S3StorageService

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "general"

_CONTENT_TYPES: dict[str, str] = {
    ".pdf":  "application/pdf",
    ".png":  "image/png",
    ".jpg":  "image/jpeg",
    ".jpeg": "image/jpeg",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def make_storage_filename(ext: str) -> str:
    """
    <timestamp_ms>-<token><ext>. The random token keeps two uploads by the
    same user in the same millisecond apart; the conditional put still
    rejects any remaining collision.
    """
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"


def decode_payload(encoded: str) -> bytes:
    """Decode base64 file content (a data: URL prefix is tolerated)."""
    if encoded.startswith("data:") and "," in encoded:
        encoded = encoded.split(",", 1)[1]
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("base64Content is not valid base64.") from exc


class IngestionService:
    """
    Stateless service object — one instance per request.
    All dependencies are injected (testable, no hidden globals).
    `db` and `storage` may be None when the request carried no session;
    stage 2 rejects such requests before either is touched.
    """

    def __init__(
        self,
        db:      AsyncSession | None,
        storage: S3StorageService | None,
    ) -> None:
        self._db      = db
        self._storage = storage

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def index(
        self,
        request: UploadIndexRequest,
        session: UserSession | None,
    ) -> Document:
        # ---- Stage 1: Validate --------------------------------------
        title    = request.title.strip()
        category = request.category.strip()
        topic    = request.topic.strip() or DEFAULT_TOPIC
        file_name = request.file_name.strip()

        if not file_name or not request.base64_content:
            raise ValidationError("Please select a file to upload.")
        if not title or not category:
            raise ValidationError("Please provide a title and category for indexing.")

        ext = get_extension(file_name)
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValidationError(
                "Only PDF, PNG, JPG, JPEG or DOCX files are supported.",
                details={"file_name": file_name, "extension": ext},
            )

        file_bytes = decode_payload(request.base64_content)
        if not file_bytes:
            raise ValidationError("The uploaded file is empty.")
        if len(file_bytes) > settings.max_file_size_bytes:
            raise ValidationError(
                f"File exceeds the {settings.max_file_size_bytes // (1024 * 1024)} MB limit.",
                details={"size_bytes": len(file_bytes)},
            )

        # ---- Stage 2: Session ---------------------------------------
        if session is None or self._db is None or self._storage is None:
            raise UnauthenticatedError("Authentication required. Provide a valid Bearer token.")
        if request.user_id and request.user_id != session.sub:
            raise ValidationError("user_id does not match the authenticated session.")

        # ---- Stage 3: Content gate ----------------------------------
        extraction = classify_text(request.content)
        if not extraction.ok:
            logger.info(
                "Ingest rejected | user=%s file=%s outcome=%s",
                session.sub, file_name, extraction.outcome.value,
            )
            raise ExtractionError(
                "Extraction failed: extracted content was empty or contained an error.",
                reason=extraction.outcome.value,
            )

        logger.info(
            "Ingest start | user=%s file=%s size=%d chars=%d",
            session.sub, file_name, len(file_bytes), len(extraction.text),
        )

        # ---- Stage 4 + 5: Upload binary, public URL ------------------
        stored = await self._storage.put_object(
            filename=make_storage_filename(ext),
            body=file_bytes,
            content_type=_CONTENT_TYPES.get(ext),
            metadata={"title": title.encode("ascii", "replace").decode()},
        )

        # ---- Stage 6: Insert record ---------------------------------
        doc = Document(
            id=uuid.uuid4(),
            file_name=title,
            file_url=stored.url,
            storage_path=stored.key,
            content=extraction.text,
            category=category,
            topic=topic,
            user_id=session.sub,
            user_email=session.email,
            created_at=datetime.now(timezone.utc),
        )

        try:
            self._db.add(doc)
            await self._db.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Document insert failed | user=%s key=%s error=%s",
                session.sub, stored.key, exc,
            )
            await self._db.rollback()
            details = {"storage_path": stored.key}
            try:
                await self._storage.delete_object(stored.key)
            except StorageError as cleanup_exc:
                logger.error(
                    "Compensating delete failed, object orphaned | key=%s error=%s",
                    stored.key, cleanup_exc,
                )
                details["orphaned"] = True
            raise DatabaseError(details=details) from exc

        # ---- Stage 7 ------------------------------------------------
        logger.info(
            "Ingest ok | user=%s doc=%s key=%s",
            session.sub, doc.id, stored.key,
        )
        return doc
