from __future__ import annotations

from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from tripdesk.modules.imports.parsers.common import (
    PDF,
    ParsedFile,
    clean_text,
    looks_like_pdf_bytes,
)

# Below this the PDF is treated as scanned/image-only; it is not rasterized.
MIN_TEXT_CHARS = 50

SCANNED_PDF_ERROR = (
    "Could not read this PDF as text. It may be a scanned document; "
    "upload a text-based PDF or a photo (PNG/JPEG) of the pages instead."
)


def _extract_pages(body: bytes) -> list[str]:
    reader = PdfReader(BytesIO(body))
    if reader.is_encrypted and not reader.decrypt(""):
        raise PermissionError("PDF is password protected")
    return [page.extract_text() or "" for page in reader.pages]


def parse_pdf(filename: str, body: bytes) -> ParsedFile:
    if not looks_like_pdf_bytes(body):
        return ParsedFile.failure(filename, PDF, "File is not a valid PDF")
    try:
        pages = _extract_pages(body)
    except PermissionError as e:
        return ParsedFile.failure(filename, PDF, str(e))
    except (PyPdfError, ValueError, KeyError) as e:
        return ParsedFile.failure(filename, PDF, f"Could not open PDF: {e}")

    chunks = []
    for idx, page_text in enumerate(pages, start=1):
        cleaned = clean_text(page_text)
        if cleaned:
            chunks.append(f"[Page {idx}]\n{cleaned}" if len(pages) > 1 else cleaned)
    text = "\n\n".join(chunks)
    if len(text.strip()) < MIN_TEXT_CHARS:
        return ParsedFile.failure(filename, PDF, SCANNED_PDF_ERROR)
    return ParsedFile.success(filename, PDF, text=text)
