"""
Extraction Strategy Pattern  —  Text from Images, PDFs and DOCX
════════════════════════════════════════════════════════════════

Three strategies, one per supported family of file types:

  Strategy 1: Tesseract OCR (images)
    - pytesseract over a Pillow image, single fixed language
    - Runs in-process in a thread executor (Tesseract is blocking)

  Strategy 2: PyMuPDF (PDF)
    - Native PDF text layer, all pages flattened into one blob
    - No page structure is preserved

  Strategy 3: Remote DOCX (Word documents)
    - POSTs the raw file to the server's /extract-docx endpoint
    - The only strategy that crosses a network boundary, so it is also the
      only one with transport failure modes (timeouts, 5xx)

Every strategy reports exactly one tri-state ExtractionResult:

    SUCCESS(text) | EMPTY_CONTENT | FAILED(reason)

Strategies never raise: library and transport errors are folded into
FAILED so the dispatcher and the upload workflow branch on one value.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import httpx

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

# Reserved marker older clients embed in the text channel when OCR fails.
# Recognised on inbound text; never produced by this package.
EXTRACTION_FAILED_SENTINEL = "OCR_FAILED_ERROR"

# Prevents a worker thread stalling forever on a pathological file
DEFAULT_TIMEOUT_SECONDS = 120.0

DEFAULT_OCR_LANGUAGE = "eng"


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

class ExtractionOutcome(str, Enum):
    SUCCESS       = "success"
    EMPTY_CONTENT = "empty_content"
    FAILED        = "extraction_failed"


@dataclass(frozen=True)
class ExtractionResult:
    """
    outcome   : tri-state outcome
    text      : trimmed text ("" unless outcome is SUCCESS)
    strategy  : "tesseract" | "pymupdf" | "remote_docx" | "client"
    reason    : human-readable failure reason (FAILED only)
    elapsed_ms: wall-clock time of the strategy
    """
    outcome:    ExtractionOutcome
    text:       str = ""
    strategy:   str = "unknown"
    reason:     str | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.outcome is ExtractionOutcome.SUCCESS

    @classmethod
    def success(cls, text: str, strategy: str, elapsed_ms: float = 0.0) -> "ExtractionResult":
        return cls(ExtractionOutcome.SUCCESS, text, strategy, None, elapsed_ms)

    @classmethod
    def empty(cls, strategy: str, elapsed_ms: float = 0.0) -> "ExtractionResult":
        return cls(
            ExtractionOutcome.EMPTY_CONTENT, "", strategy,
            "Extracted content was empty.", elapsed_ms,
        )

    @classmethod
    def failed(cls, reason: str, strategy: str, elapsed_ms: float = 0.0) -> "ExtractionResult":
        return cls(ExtractionOutcome.FAILED, "", strategy, reason, elapsed_ms)


def classify_text(text: str | None, strategy: str = "client", elapsed_ms: float = 0.0) -> ExtractionResult:
    """
    Apply the output contract shared by every strategy:
      - text is trimmed
      - empty                     → EMPTY_CONTENT
      - contains the sentinel     → FAILED
      - anything else             → SUCCESS
    """
    cleaned = (text or "").strip()
    if not cleaned:
        return ExtractionResult.empty(strategy, elapsed_ms)
    if EXTRACTION_FAILED_SENTINEL in cleaned:
        return ExtractionResult.failed(
            "Extracted content contains the extraction failure marker.",
            strategy, elapsed_ms,
        )
    return ExtractionResult.success(cleaned, strategy, elapsed_ms)


# ---------------------------------------------------------------------------
# Abstract strategy
# ---------------------------------------------------------------------------

class BaseTextExtractor(ABC):
    """
    Abstract base for extraction strategies.

    All implementations:
      - Accept raw bytes plus the file name (never a path)
      - Return ExtractionResult
      - Must NOT raise — failures are reported as FAILED
    """

    @property
    @abstractmethod
    def strategy_name(self) -> str:
        """Unique name for logging."""

    @abstractmethod
    async def extract(self, data: bytes, file_name: str) -> ExtractionResult:
        """Extract text from the given file bytes."""


class _ThreadedExtractor(BaseTextExtractor):
    """Runs a blocking `_extract_sync` in the default executor with a timeout."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    async def extract(self, data: bytes, file_name: str) -> ExtractionResult:
        loop = asyncio.get_running_loop()
        t0 = time.monotonic()

        try:
            raw = await asyncio.wait_for(
                loop.run_in_executor(None, self._extract_sync, data),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            elapsed = (time.monotonic() - t0) * 1000
            logger.error(
                "%s timed out | file=%s timeout_s=%.0f",
                self.strategy_name, file_name, self._timeout,
            )
            return ExtractionResult.failed(
                f"{self.strategy_name} timed out after {self._timeout:.0f}s",
                self.strategy_name, elapsed,
            )
        except Exception as exc:
            elapsed = (time.monotonic() - t0) * 1000
            logger.error(
                "%s extraction failed | file=%s error=%s",
                self.strategy_name, file_name, exc, exc_info=True,
            )
            return ExtractionResult.failed(
                f"Could not extract text: {exc}", self.strategy_name, elapsed,
            )

        result = classify_text(raw, self.strategy_name, (time.monotonic() - t0) * 1000)
        logger.info(
            "%s | file=%s outcome=%s chars=%d elapsed_ms=%.0f",
            self.strategy_name, file_name, result.outcome.value,
            len(result.text), result.elapsed_ms,
        )
        return result

    @abstractmethod
    def _extract_sync(self, data: bytes) -> str:
        """Blocking extraction — runs in thread executor."""


# ---------------------------------------------------------------------------
# Strategy 1: Tesseract OCR
# ---------------------------------------------------------------------------

class TesseractOcrExtractor(_ThreadedExtractor):
    """
    Image OCR through pytesseract.

    Requires the tesseract binary and the traineddata for `language`
    on the host. A missing binary surfaces as FAILED, not as an exception.
    """

    def __init__(
        self,
        language: str = DEFAULT_OCR_LANGUAGE,
        timeout:  float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(timeout=timeout)
        self._language = language

    @property
    def strategy_name(self) -> str:
        return "tesseract"

    def _extract_sync(self, data: bytes) -> str:
        import pytesseract
        from PIL import Image

        with Image.open(io.BytesIO(data)) as image:
            return pytesseract.image_to_string(image, lang=self._language)


# ---------------------------------------------------------------------------
# Strategy 2: PyMuPDF
# ---------------------------------------------------------------------------

class PyMuPDFExtractor(_ThreadedExtractor):
    """
    Reads the native PDF text layer. Scanned PDFs without a text layer
    come back as EMPTY_CONTENT.
    """

    @property
    def strategy_name(self) -> str:
        return "pymupdf"

    def _extract_sync(self, data: bytes) -> str:
        import fitz  # PyMuPDF; imported here to avoid module-level import cost

        with fitz.open(stream=data, filetype="pdf") as doc:
            return "\n".join(page.get_text("text") or "" for page in doc)


# ---------------------------------------------------------------------------
# Strategy 3: Remote DOCX
# ---------------------------------------------------------------------------

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class RemoteDocxExtractor(BaseTextExtractor):
    """
    Delegates DOCX extraction to the server's multipart endpoint.

    http     : shared httpx.AsyncClient (base_url already set)
    endpoint : path or absolute URL of the extraction route
    auth     : optional httpx.Auth applied to each request (the route needs a session)
    """

    def __init__(
        self,
        http:     httpx.AsyncClient,
        endpoint: str = "/api/v1/extract-docx",
        timeout:  float = DEFAULT_TIMEOUT_SECONDS,
        auth:     httpx.Auth | None = None,
    ) -> None:
        self._http = http
        self._endpoint = endpoint
        self._timeout = timeout
        self._auth = auth

    @property
    def strategy_name(self) -> str:
        return "remote_docx"

    async def extract(self, data: bytes, file_name: str) -> ExtractionResult:
        t0 = time.monotonic()

        try:
            resp = await self._http.post(
                self._endpoint,
                files={"file": (file_name, data, DOCX_CONTENT_TYPE)},
                timeout=self._timeout,
                **({"auth": self._auth} if self._auth is not None else {}),
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.TimeoutException:
            logger.error("DOCX extraction timed out | file=%s", file_name)
            return ExtractionResult.failed(
                "DOCX extraction request timed out.",
                self.strategy_name, (time.monotonic() - t0) * 1000,
            )
        except httpx.HTTPStatusError as exc:
            logger.error(
                "DOCX extraction rejected | file=%s status=%d",
                file_name, exc.response.status_code,
            )
            return ExtractionResult.failed(
                f"DOCX extraction endpoint returned HTTP {exc.response.status_code}.",
                self.strategy_name, (time.monotonic() - t0) * 1000,
            )
        except (httpx.RequestError, ValueError) as exc:
            logger.error("DOCX extraction request failed | file=%s error=%s", file_name, exc)
            return ExtractionResult.failed(
                f"DOCX extraction request failed: {exc}",
                self.strategy_name, (time.monotonic() - t0) * 1000,
            )

        if not isinstance(body, dict) or not isinstance(body.get("text"), str):
            logger.error("DOCX extraction returned an unexpected body | file=%s", file_name)
            return ExtractionResult.failed(
                "DOCX extraction endpoint returned an unexpected body.",
                self.strategy_name, (time.monotonic() - t0) * 1000,
            )

        result = classify_text(body["text"], self.strategy_name, (time.monotonic() - t0) * 1000)
        logger.info(
            "remote_docx | file=%s outcome=%s chars=%d elapsed_ms=%.0f",
            file_name, result.outcome.value, len(result.text), result.elapsed_ms,
        )
        return result
