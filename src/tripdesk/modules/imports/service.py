from __future__ import annotations

import time
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from tripdesk.core.config import settings
from tripdesk.core.logging import get_logger, log_event, log_exception, monotonic_ms
from tripdesk.modules.imports.ai import LanguageModelClient, extract_proposal
from tripdesk.modules.imports.parsers.common import (
    CSV,
    DOCX,
    IMAGE_CONTENT_TYPES,
    PDF,
    XLSX,
    ParsedFile,
    resolve_content_type,
)
from tripdesk.modules.imports.parsers.image import parse_image
from tripdesk.modules.imports.parsers.pdf import parse_pdf
from tripdesk.modules.imports.parsers.spreadsheet import parse_csv, parse_xlsx
from tripdesk.modules.imports.parsers.word import parse_docx
from tripdesk.modules.imports.schemas import SmartImportResult, SourceFileStatus
from tripdesk.modules.venues.matcher import VenueRecord, match_venue
from tripdesk.modules.venues.service import load_venue_records

logger = get_logger(__name__)

# Stop types whose venue can be resolved, and the venue type they resolve against.
_STOP_VENUE_TYPES = {
    "winery": "winery",
    "restaurant": "restaurant",
    "hotel_checkin": "hotel",
    "hotel_checkout": "hotel",
}


@dataclass(frozen=True)
class Upload:
    filename: str
    content_type: str | None
    body: bytes


def parse_upload(upload: Upload) -> ParsedFile:
    filename = upload.filename or "upload"
    if not upload.body:
        return ParsedFile.failure(filename, upload.content_type, "File is empty")
    if len(upload.body) > settings.smart_import_max_file_bytes:
        limit_mb = settings.smart_import_max_file_bytes // (1024 * 1024)
        return ParsedFile.failure(
            filename, upload.content_type, f"File exceeds the {limit_mb} MB limit"
        )

    kind = resolve_content_type(filename, upload.content_type, upload.body)
    if kind is None:
        return ParsedFile.failure(
            filename,
            upload.content_type,
            "Unsupported file type. Upload PDF, DOCX, XLSX, CSV, PNG, JPEG or WebP files.",
        )

    try:
        if kind == PDF:
            return parse_pdf(filename, upload.body)
        if kind == DOCX:
            return parse_docx(filename, upload.body)
        if kind == XLSX:
            return parse_xlsx(filename, upload.body)
        if kind == CSV:
            return parse_csv(filename, upload.body)
        if kind in IMAGE_CONTENT_TYPES:
            return parse_image(filename, kind, upload.body)
    except Exception:
        # One bad file never sinks the batch.
        log_exception(logger, "smart_import.parse_error", filename=filename, content_type=kind)
        return ParsedFile.failure(filename, kind, "Could not read this file")
    return ParsedFile.failure(filename, kind, "Unsupported file type")


def resolve_venues(result: SmartImportResult, venues: list[VenueRecord]) -> int:
    by_type: dict[str, list[VenueRecord]] = {}
    for venue in venues:
        by_type.setdefault(venue.venue_type, []).append(venue)

    matched = 0
    for day in result.days:
        for stop in day.stops:
            venue_type = _STOP_VENUE_TYPES.get((stop.stop_type or "").lower())
            name = stop.venue_name or stop.custom_name
            if not venue_type or not name:
                continue
            match = match_venue(
                name, by_type.get(venue_type, []), threshold=settings.venue_match_threshold
            )
            if not match:
                continue
            stop.matched_venue_id = match.venue.id
            stop.match_confidence = round(match.confidence, 3)
            stop.match_type = match.match_type
            matched += 1
    return matched


def _source_statuses(parsed: list[ParsedFile]) -> list[SourceFileStatus]:
    return [
        SourceFileStatus(
            filename=p.filename,
            status="parsed" if p.ok else "error",
            error=p.error,
        )
        for p in parsed
    ]


def smart_import(
    session: Session, *, uploads: list[Upload], client: LanguageModelClient
) -> SmartImportResult:
    if not uploads:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")
    if len(uploads) > settings.smart_import_max_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.smart_import_max_files} files can be imported at once",
        )

    start = time.monotonic()
    parsed = [parse_upload(u) for u in uploads]
    ok = [p for p in parsed if p.ok]
    log_event(
        logger,
        "smart_import.parsed",
        files=len(parsed),
        parsed=len(ok),
        failed=len(parsed) - len(ok),
    )
    if not ok:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "None of the uploaded files could be read.",
                "files": [s.model_dump() for s in _source_statuses(parsed)],
            },
        )

    venues = load_venue_records(session)
    result = extract_proposal(ok, [v.name for v in venues], client=client)
    matched = resolve_venues(result, venues)
    result.source_files = _source_statuses(parsed)
    log_event(
        logger,
        "smart_import.finish",
        confidence=result.confidence,
        days=len(result.days),
        venues_matched=matched,
        duration_ms=monotonic_ms(start),
    )
    return result
