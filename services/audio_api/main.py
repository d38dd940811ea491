"""Audio Store - HTTP API FastAPI application.

Routes:
- GET  /             plain-text greeting
- GET  /health       liveness probe
- GET  /audio        all stored file names
- POST /audio        multipart upload (scalar fields, then a "file" part)
- GET  /audio/query  names matching every supplied metadata predicate

The upload body is read straight from the request stream. There is no
body-size cap: audio payloads may be arbitrarily large.

Run with:
    python -m services.audio_api
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.requests import ClientDisconnect

from audio_store import config
from audio_store.db import MetadataStore, init_db
from audio_store.errors import (
    CLIENT_ERROR_CODES,
    AudioStoreError,
    ErrorCode,
    IncompleteUpload,
)
from audio_store.schemas import ErrorResponse, FileRecord, FilterQuery
from audio_store.utils.file_writer import FileWriter, cleanup_orphan_temp_files
from audio_store.utils.multipart import MultipartReader, parse_boundary
from services.audio_api.ingest import IngestionPipeline
from services.audio_api.query import FilterEngine

logger = logging.getLogger(__name__)

# --- Application State ---

# Initialized on startup
_store: MetadataStore | None = None
_content_root: Path | None = None


def get_metadata_store() -> MetadataStore:
    """Dependency that provides the shared metadata store.

    Raises:
        RuntimeError: If the store is not initialized (app lifespan not invoked).
    """
    if _store is None:
        raise RuntimeError("Metadata store not initialized. App lifespan not invoked?")
    return _store


def get_content_root() -> Path:
    """Dependency that provides the content directory."""
    if _content_root is None:
        raise RuntimeError("Content directory not initialized. App lifespan not invoked?")
    return _content_root


# --- Lifespan ---


def _cleanup_orphan_temp_files_safe(content_root: Path) -> None:
    """Remove staged uploads left over from a crash (best-effort)."""
    try:
        removed = cleanup_orphan_temp_files(content_root)
        if removed > 0:
            logger.info("Startup cleanup: removed %d orphan temp files", removed)
    except Exception:
        # Best-effort: never crash startup
        logger.warning("Startup cleanup failed (non-fatal)", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database, resolve the content root and sweep temp files."""
    global _store, _content_root

    engine, SessionFactory = init_db(config.get_db_path())
    _store = MetadataStore(SessionFactory)

    _content_root = config.get_content_dir().resolve()
    _content_root.mkdir(parents=True, exist_ok=True)
    _cleanup_orphan_temp_files_safe(_content_root)
    logger.info("Serving content from %s", _content_root)

    yield

    engine.dispose()
    _store = None
    _content_root = None


# --- FastAPI App ---


app = FastAPI(
    title="Audio Store API",
    description="Upload audio clips with metadata and query them by attribute.",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Error Handling ---


def error_code_to_status(error_code: str) -> int:
    """Map error codes to HTTP status codes.

    Client mistakes (bad multipart shape, truncated body, unparseable query
    parameter) are 400; filesystem, store and unexpected failures are 500.
    """
    if error_code in CLIENT_ERROR_CODES:
        return 400
    return 500


def make_error_response(error_code: str, error_message: str) -> JSONResponse:
    """Create a JSON error response."""
    return JSONResponse(
        status_code=error_code_to_status(error_code),
        content=ErrorResponse(
            error_code=error_code,
            error_message=error_message,
        ).model_dump(),
    )


def handle_error(e: AudioStoreError, action: str) -> JSONResponse:
    """Log a pipeline/store error and turn it into a response."""
    if e.is_client_error:
        logger.warning("Rejected %s: %s", action, e.message)
    else:
        logger.error("Failed %s: %s", action, e.message, exc_info=e)
    return make_error_response(e.error_code, e.message)


def internal_error() -> JSONResponse:
    return make_error_response(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


async def _request_chunks(request: Request) -> AsyncIterator[bytes]:
    """Request body stream; a client disconnect ends the upload."""
    try:
        async for chunk in request.stream():
            yield chunk
    except ClientDisconnect as e:
        raise IncompleteUpload("client disconnected mid-upload") from e


# --- Endpoints ---

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid client input"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
}


@app.get("/", response_class=PlainTextResponse, summary="Greeting")
def index():
    return "Hello, World!"


@app.get("/health", summary="Health check")
def health_check():
    """Simple health check endpoint."""
    return {"status": "ok"}


@app.get(
    "/audio",
    response_model=list[str],
    responses=_ERROR_RESPONSES,
    summary="List stored file names",
)
async def list_audio(store: Annotated[MetadataStore, Depends(get_metadata_store)]):
    """All file names, one entry per upload (repeated names appear repeatedly)."""
    try:
        return await store.list_names()
    except AudioStoreError as e:
        return handle_error(e, "listing files")
    except Exception:
        logger.exception("Unexpected error while listing files")
        return internal_error()


@app.post(
    "/audio",
    response_model=FileRecord,
    responses=_ERROR_RESPONSES,
    summary="Upload an audio file",
    description=(
        "multipart/form-data body: scalar fields file_name (required) and "
        "file_type (optional), followed by a part named 'file'."
    ),
)
async def upload_audio(
    request: Request,
    store: Annotated[MetadataStore, Depends(get_metadata_store)],
    content_root: Annotated[Path, Depends(get_content_root)],
):
    """Stream an upload to disk and record its metadata.

    Scalar fields must precede the file part; fields sent after it are
    never read.
    """
    try:
        boundary = parse_boundary(request.headers.get("content-type"))
        reader = MultipartReader(_request_chunks(request), boundary)
        pipeline = IngestionPipeline(store, FileWriter(content_root))
        return await pipeline.ingest(reader)
    except AudioStoreError as e:
        return handle_error(e, "upload")
    except Exception:
        # Log full exception server-side, return generic message to client
        logger.exception("Unexpected error during upload")
        return internal_error()


@app.get(
    "/audio/query",
    response_model=list[str],
    responses=_ERROR_RESPONSES,
    summary="Filter files by metadata",
)
async def query_audio(
    store: Annotated[MetadataStore, Depends(get_metadata_store)],
    file_name: str | None = None,
    file_type: str | None = None,
    file_upload_date: str | None = None,
):
    """Names matching every supplied predicate; no predicates match nothing."""
    try:
        query = FilterQuery.from_params(file_name, file_type, file_upload_date)
        return await FilterEngine(store).filter(query)
    except AudioStoreError as e:
        return handle_error(e, "query")
    except Exception:
        logger.exception("Unexpected error during query")
        return internal_error()
