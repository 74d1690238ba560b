from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from tripdesk.api.deps import get_current_staff
from tripdesk.core.config import settings
from tripdesk.core.db import db_session
from tripdesk.core.logging import get_logger, log_event
from tripdesk.modules.imports.ai import (
    ExtractionError,
    LanguageModelClient,
    OpenAIChatClient,
    language_model_available,
)
from tripdesk.modules.imports.schemas import SmartImportResult
from tripdesk.modules.imports.service import Upload, smart_import

router = APIRouter(tags=["imports"])
logger = get_logger(__name__)


def get_language_model_client() -> LanguageModelClient:
    if not language_model_available():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="AI import is not configured"
        )
    return OpenAIChatClient()


_READ_CHUNK_BYTES = 1024 * 1024


async def _read_capped(upload: UploadFile, limit: int) -> bytes:
    # Stops one byte past the cap; parse_upload reports the file as too large.
    chunks: list[bytes] = []
    size = 0
    while size <= limit:
        chunk = await upload.read(min(_READ_CHUNK_BYTES, limit + 1 - size))
        if not chunk:
            break
        chunks.append(chunk)
        size += len(chunk)
    return b"".join(chunks)


@router.post("/admin/trip-proposals/smart-import", response_model=SmartImportResult)
async def smart_import_endpoint(
    files: list[UploadFile] = File(...),
    _staff: str = Depends(get_current_staff),
    session: Session = Depends(db_session),
    client: LanguageModelClient = Depends(get_language_model_client),
) -> SmartImportResult:
    if len(files) > settings.smart_import_max_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.smart_import_max_files} files can be imported at once",
        )

    uploads: list[Upload] = []
    for upload in files:
        body = await _read_capped(upload, settings.smart_import_max_file_bytes)
        filename = upload.filename or "upload"
        log_event(
            logger,
            "upload.received",
            filename=filename,
            content_type=upload.content_type,
            byte_size=len(body),
        )
        uploads.append(Upload(filename=filename, content_type=upload.content_type, body=body))

    # Parsing and the model call block; keep them off the event loop.
    try:
        return await run_in_threadpool(smart_import, session, uploads=uploads, client=client)
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
