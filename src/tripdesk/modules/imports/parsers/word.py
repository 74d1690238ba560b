from __future__ import annotations

import zipfile
from io import BytesIO

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from tripdesk.modules.imports.parsers.common import (
    DOCX,
    IMAGE_CONTENT_TYPES,
    ParsedFile,
    ParsedImage,
    clean_text,
)

MAX_EMBEDDED_IMAGES = 5


def _table_lines(document) -> list[str]:
    lines: list[str] = []
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                lines.append(" | ".join(cells))
        lines.append("")
    return lines


def _embedded_images(document) -> list[ParsedImage]:
    images: list[ParsedImage] = []
    for rel in document.part.rels.values():
        if len(images) >= MAX_EMBEDDED_IMAGES:
            break
        if rel.is_external or "image" not in rel.reltype:
            continue
        part = rel.target_part
        media_type = (part.content_type or "").lower()
        if media_type in IMAGE_CONTENT_TYPES:
            images.append(ParsedImage(media_type=media_type, data=part.blob))
    return images


def parse_docx(filename: str, body: bytes) -> ParsedFile:
    try:
        document = Document(BytesIO(body))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError):
        return ParsedFile.failure(filename, DOCX, "Could not open Word document")

    paragraphs = [p.text for p in document.paragraphs]
    text = clean_text("\n".join(paragraphs + [""] + _table_lines(document)))
    images = _embedded_images(document)
    if not text and not images:
        return ParsedFile.failure(filename, DOCX, "Word document contains no readable text")
    return ParsedFile.success(filename, DOCX, text=text, images=images)
