"""
POST /api/v1/extract-docx

The one extraction the server performs: DOCX parsing needs python-docx,
which the client SDK does not ship. Images and PDFs are extracted by the
client before upload.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from docuintel.auth.dependencies import CurrentUser
from docuintel.core.config import settings
from docuintel.core.errors import ExtractionError, ValidationError
from docuintel.processing.docx import DocxParseError, extract_docx_text
from docuintel.processing.extractor import DOCX_EXTENSIONS, get_extension
from docuintel.schemas.documents import DocxExtractionResponse, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Extraction"])


@router.post(
    "/extract-docx",
    response_model=DocxExtractionResponse,
    summary="Extract raw text from a .docx file",
    responses={
        400: {"model": ErrorResponse, "description": "No file, wrong extension or oversized"},
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse, "description": "File could not be parsed as DOCX"},
    },
)
async def extract_docx(
    user: CurrentUser,
    file: UploadFile = File(..., description=".docx file"),
) -> DocxExtractionResponse:
    file_name = file.filename or ""
    if get_extension(file_name) not in DOCX_EXTENSIONS:
        raise ValidationError(
            "Only .docx files can be extracted here.",
            details={"file_name": file_name},
        )

    data = await file.read()
    if not data:
        raise ValidationError("The uploaded file is empty.")
    if len(data) > settings.max_file_size_bytes:
        raise ValidationError(
            "File exceeds the upload size limit.",
            details={"size_bytes": len(data)},
        )

    try:
        text = await run_in_threadpool(extract_docx_text, data)
    except DocxParseError as exc:
        logger.warning("DOCX parse failed | user=%s file=%s error=%s", user.sub, file_name, exc)
        raise ExtractionError(str(exc), reason="extraction_failed") from exc

    logger.info("DOCX extracted | user=%s file=%s chars=%d", user.sub, file_name, len(text))
    return DocxExtractionResponse(text=text)
