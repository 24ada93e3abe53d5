"""
Client-side upload workflow.

  1. Validate   file readable, title + category set, extension supported
  2. Session    absent → UnauthenticatedError
  3. Extract    dispatcher → ExtractionResult; anything but SUCCESS aborts
  4. Send       POST /documents/upload-index with the file and its text

Stages 1–3 make no network writes. The server repeats stages 1–3 and
performs the storage upload and record insert.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Callable

from docuintel.client.api import BearerToken, ClientSession, DocuIntelClient
from docuintel.core.errors import ExtractionError, UnauthenticatedError, ValidationError
from docuintel.processing.extractor import ExtractionDispatcher, is_supported
from docuintel.processing.strategies import (
    DEFAULT_OCR_LANGUAGE,
    DEFAULT_TIMEOUT_SECONDS,
    PyMuPDFExtractor,
    RemoteDocxExtractor,
    TesseractOcrExtractor,
)
from docuintel.schemas.documents import DocumentOut

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "general"

DispatcherFactory = Callable[[DocuIntelClient, ClientSession], ExtractionDispatcher]


def default_dispatcher(
    client:   DocuIntelClient,
    session:  ClientSession,
    language: str = DEFAULT_OCR_LANGUAGE,
    timeout:  float = DEFAULT_TIMEOUT_SECONDS,
) -> ExtractionDispatcher:
    """Tesseract for images, PyMuPDF for PDFs, the server route for DOCX."""
    return ExtractionDispatcher(
        ocr=TesseractOcrExtractor(language=language, timeout=timeout),
        pdf=PyMuPDFExtractor(timeout=timeout),
        docx=RemoteDocxExtractor(
            http=client.http,
            timeout=timeout,
            auth=BearerToken(session.access_token),
        ),
    )


class UploadWorkflow:

    def __init__(
        self,
        client:             DocuIntelClient,
        dispatcher_factory: DispatcherFactory = default_dispatcher,
    ) -> None:
        self._client = client
        self._dispatcher_factory = dispatcher_factory

    async def upload(
        self,
        path:     str | Path,
        title:    str,
        category: str,
        session:  ClientSession | None,
        topic:    str = DEFAULT_TOPIC,
    ) -> DocumentOut:
        path = Path(path)

        # ---- Stage 1: Validate ----
        if not path.is_file():
            raise ValidationError("Please select a file to upload.", details={"path": str(path)})
        title, category = (title or "").strip(), (category or "").strip()
        if not title or not category:
            raise ValidationError("Please provide a title and category for indexing.")
        if not is_supported(path.name):
            raise ValidationError(
                "Only PDF, PNG, JPG, JPEG or DOCX files are supported.",
                details={"file_name": path.name},
            )
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ValidationError(f"Could not read file: {exc}", details={"path": str(path)}) from exc

        # ---- Stage 2: Session ----
        if session is None or not session.access_token:
            raise UnauthenticatedError("Authentication required. Sign in first.")

        # ---- Stage 3: Extract ----
        dispatcher = self._dispatcher_factory(self._client, session)
        result = await dispatcher.extract(path.name, data)
        if not result.ok:
            logger.warning(
                "Upload aborted | file=%s strategy=%s outcome=%s reason=%s",
                path.name, result.strategy, result.outcome.value, result.reason,
            )
            raise ExtractionError(
                "Extraction failed: extracted content was empty or contained an error.",
                reason=result.outcome.value,
                details={"strategy": result.strategy, "detail": result.reason},
            )

        # ---- Stage 4: Send ----
        payload = {
            "fileName":      path.name,
            "base64Content": base64.b64encode(data).decode("ascii"),
            "content":       result.text,
            "title":         title,
            "category":      category,
            "topic":         (topic or "").strip() or DEFAULT_TOPIC,
        }
        if session.user_id:
            payload["user_id"] = session.user_id

        doc = await self._client.upload_index(payload, session)
        logger.info("Upload ok | file=%s doc=%s", path.name, doc.id)
        return doc
