"""
Document Processing Package
════════════════════════════

Turns an uploaded binary into plain text for full-text indexing.

Modules
───────
  strategies.py  Strategy pattern for text extraction (Tesseract / PyMuPDF / remote DOCX)
  extractor.py   Dispatcher that selects the strategy from the file extension
  docx.py        python-docx extraction used by the server's /extract-docx route

Design principles
─────────────────
  • Strategies are stateless and dependency-injected.
  • Extraction runs in the client process; the server only extracts DOCX
    on request and validates text it receives.
  • Nothing in this package reads application settings, so the client SDK
    imports it without a server configuration.
"""

from docuintel.processing.extractor import (
    SUPPORTED_EXTENSIONS,
    ExtractionDispatcher,
    get_extension,
    is_supported,
    suggest_title,
)
from docuintel.processing.strategies import (
    EXTRACTION_FAILED_SENTINEL,
    BaseTextExtractor,
    ExtractionOutcome,
    ExtractionResult,
    PyMuPDFExtractor,
    RemoteDocxExtractor,
    TesseractOcrExtractor,
    classify_text,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "ExtractionDispatcher",
    "get_extension",
    "is_supported",
    "suggest_title",
    "EXTRACTION_FAILED_SENTINEL",
    "BaseTextExtractor",
    "ExtractionOutcome",
    "ExtractionResult",
    "PyMuPDFExtractor",
    "RemoteDocxExtractor",
    "TesseractOcrExtractor",
    "classify_text",
]
