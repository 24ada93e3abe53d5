"""Server-side DOCX text extraction (backs POST /extract-docx)."""

from __future__ import annotations

import io
import zipfile

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError


class DocxParseError(ValueError):
    """The payload is not a readable .docx package."""


def extract_docx_text(data: bytes) -> str:
    """
    Return the raw text of a .docx file: body paragraphs first, then the
    text of every table cell, one per line. Result is trimmed.
    """
    try:
        document = DocxDocument(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise DocxParseError(f"Not a valid DOCX file: {exc}") from exc

    lines = [p.text for p in document.paragraphs if p.text]
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text:
                    lines.append(cell.text)

    return "\n".join(lines).strip()
