"""
Extraction Dispatcher
═════════════════════

Selects the extraction strategy from the file name extension
(case-insensitive) and returns the strategy's ExtractionResult.

    .png / .jpg / .jpeg  →  TesseractOcrExtractor
    .pdf                 →  PyMuPDFExtractor
    .docx                →  RemoteDocxExtractor
    anything else        →  UnsupportedTypeError (no strategy invoked)

This module is the only place that knows the extension → strategy map.
"""

from __future__ import annotations

import logging

from docuintel.core.errors import UnsupportedTypeError
from docuintel.processing.strategies import BaseTextExtractor, ExtractionResult

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS: frozenset[str] = frozenset({".png", ".jpg", ".jpeg"})
PDF_EXTENSIONS:   frozenset[str] = frozenset({".pdf"})
DOCX_EXTENSIONS:  frozenset[str] = frozenset({".docx"})

SUPPORTED_EXTENSIONS: frozenset[str] = IMAGE_EXTENSIONS | PDF_EXTENSIONS | DOCX_EXTENSIONS


def get_extension(file_name: str) -> str:
    """Return the lowercased extension including the dot, or "" if none."""
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    parts = base.rsplit(".", 1)
    return f".{parts[-1].lower()}" if len(parts) == 2 and parts[0] else ""


def is_supported(file_name: str) -> bool:
    return get_extension(file_name) in SUPPORTED_EXTENSIONS


def suggest_title(file_name: str) -> str:
    """Default display title: the base name without its extension."""
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    stem, dot, _ = base.rpartition(".")
    return stem if dot and stem else base


class ExtractionDispatcher:
    """
    Stateless dispatcher — strategies are injected so tests and the client
    SDK can substitute their own.

    Usage:
        dispatcher = ExtractionDispatcher(ocr=..., pdf=..., docx=...)
        result = await dispatcher.extract("scan.png", data)
    """

    def __init__(
        self,
        ocr:  BaseTextExtractor,
        pdf:  BaseTextExtractor,
        docx: BaseTextExtractor,
    ) -> None:
        self._ocr  = ocr
        self._pdf  = pdf
        self._docx = docx

    def strategy_for(self, file_name: str) -> BaseTextExtractor:
        """Return the strategy for `file_name` or raise UnsupportedTypeError."""
        ext = get_extension(file_name)
        if ext in IMAGE_EXTENSIONS:
            return self._ocr
        if ext in PDF_EXTENSIONS:
            return self._pdf
        if ext in DOCX_EXTENSIONS:
            return self._docx
        raise UnsupportedTypeError(
            f"Unsupported file type '{ext or file_name}'. "
            "Only PDF, PNG, JPG, JPEG and DOCX files are supported.",
            details={"file_name": file_name, "extension": ext},
        )

    async def extract(self, file_name: str, data: bytes) -> ExtractionResult:
        strategy = self.strategy_for(file_name)
        logger.info(
            "Extraction dispatch | file=%s strategy=%s size=%d",
            file_name, strategy.strategy_name, len(data),
        )
        return await strategy.extract(data, file_name)
