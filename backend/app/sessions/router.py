"""FastAPI router for upload sessions.

Endpoints:
    POST /api/upload                          Upload files, open a session
    GET  /api/session/{session_id}            File names/sizes and expiry
    POST /api/session/{session_id}/complete   Finalize (discard) a session

Status codes:
    400  no files in the upload
    404  unknown or already removed session
    410  session expired (reported once, then 404)
    413  upload larger than the configured limit
    503  no session store installed
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from .schemas import (
    DEFAULT_MAX_PAYLOAD_BYTES,
    CompleteResponse,
    CompletionStatus,
    ErrorResponse,
    InvalidInputError,
    SessionInfoResponse,
    SessionStatus,
    UploadedFile,
    UploadResponse,
)
from .store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sessions"])

# ---------------------------------------------------------------------------
# Store and limit wiring (installed by app.main on startup)
# ---------------------------------------------------------------------------

_store: Optional[SessionStore] = None
_max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES


def get_session_store() -> Optional[SessionStore]:
    """Return the installed SessionStore, or None if not configured."""
    return _store


def set_session_store(store: Optional[SessionStore]) -> None:
    """Install (or clear) the SessionStore used by the endpoints."""
    global _store
    _store = store


def get_upload_limit() -> int:
    return _max_payload_bytes


def set_upload_limit(max_payload_bytes: int) -> None:
    """Set the maximum total bytes accepted by a single upload request."""
    global _max_payload_bytes
    if max_payload_bytes <= 0:
        raise ValueError(f"max_payload_bytes must be positive, got {max_payload_bytes}")
    _max_payload_bytes = max_payload_bytes


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


def _errors(*status_codes: int) -> dict:
    """OpenAPI ``responses=`` entries for the given error status codes."""
    return {code: {"model": ErrorResponse} for code in status_codes}


def _store_unavailable() -> JSONResponse:
    logger.warning("[sessions] Session store not configured, returning 503")
    return _error(503, "Session store not configured")


def _payload_too_large(limit: int) -> JSONResponse:
    logger.warning("[sessions/upload] Rejected: payload exceeds %d bytes", limit)
    return _error(413, f"Upload exceeds limit of {limit} bytes")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses=_errors(400, 413, 500, 503),
)
async def upload_files(request: Request) -> UploadResponse | JSONResponse:
    """Upload one or more files and open a session holding them.

    Expects multipart parts named ``files`` (repeat the field per file).
    Non-file values under that name are ignored, so a form carrying only
    text counts as "no files uploaded".

    Returns:
        UploadResponse with the generated ``sessionId``.
    """
    store = get_session_store()
    if store is None:
        return _store_unavailable()

    form = await request.form()
    files = [v for v in form.getlist("files") if isinstance(v, UploadFile)]
    if not files:
        logger.warning("[sessions/upload] Rejected: no files in request")
        return _error(400, "No files uploaded")

    limit = get_upload_limit()
    try:
        uploaded: List[UploadedFile] = []
        total = 0
        for part in files:
            remaining = limit - total
            # part.size is filled in by the multipart parser; None means unknown
            if part.size is not None and part.size > remaining:
                return _payload_too_large(limit)
            content = await part.read(remaining + 1)
            if len(content) > remaining:
                return _payload_too_large(limit)
            total += len(content)
            uploaded.append(UploadedFile.from_bytes(part.filename or "unnamed", content))

        session_id = store.create(uploaded)
    except InvalidInputError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.error(f"Upload failed: {e}")
        return _error(500, "Upload failed")

    return UploadResponse(session_id=session_id)


@router.get(
    "/session/{session_id}",
    response_model=SessionInfoResponse,
    responses=_errors(404, 410, 503),
)
async def get_session(session_id: str) -> SessionInfoResponse | JSONResponse:
    """Return file metadata and expiry for a session.

    Content bytes are never included.
    """
    store = get_session_store()
    if store is None:
        return _store_unavailable()

    lookup = store.get(session_id)
    if lookup.status is SessionStatus.EXPIRED:
        return _error(410, "Session expired")
    if lookup.status is SessionStatus.NOT_FOUND:
        return _error(404, "Session not found")

    return SessionInfoResponse.from_metadata(lookup.metadata)


@router.post(
    "/session/{session_id}/complete",
    response_model=CompleteResponse,
    responses=_errors(404, 503),
)
async def complete_session(session_id: str) -> CompleteResponse | JSONResponse:
    """Finalize a session, discarding its files.

    Succeeds even if the session has expired but not yet been evicted.
    """
    store = get_session_store()
    if store is None:
        return _store_unavailable()

    if store.complete(session_id) is CompletionStatus.NOT_FOUND:
        return _error(404, "Session not found")

    return CompleteResponse()
