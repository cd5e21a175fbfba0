"""
Haste HTTP Server — FastAPI application for the paste store.

Routes:
    POST /docs               create (raw body, or multipart field "file" / "data")
    GET  /docs/{id}          payload + x-haste-* headers (301 for url-redirect documents)
    HEAD /docs/{id}          x-haste-* headers only
    GET  /keys/{k1,k2,...}   metadata for the keys that exist
    GET  /recent             metadata for recently created documents
    GET  /health             store connectivity
    GET  /                   landing page

Unmatched GET paths of the form ``/<key>[.<ext>]`` serve the landing page
when the key exists, so pretty URLs resolve client-side.

Run:
    haste run --config haste.yaml
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from haste import __version__
from haste.documents.codec import ContentCodec
from haste.documents.keys import KeyGenerator
from haste.documents.service import (
    URL_REDIRECT,
    PasteService,
    document_headers,
    redirect_location,
    strip_extension,
)
from haste.documents.store import DocumentStore
from haste.engine.config import HasteConfig
from haste.engine.errors import HasteError, HasteValidationError
from haste.engine.logging import (
    configure_stdlib_logging,
    init_logging,
    log,
    log_system_event,
    log_request,
    shutdown_logging,
)
from haste.engine.redis_client import RedisConnection

logger = logging.getLogger("haste.server")

INDEX_FILE = "index.html"


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class CreateResponse(BaseModel):
    """Response after storing a document."""
    name: str
    key: str


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    status: HealthStatus
    version: str
    store: str


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_service(request: Request) -> PasteService:
    return request.app.state.service


def build_service(config: HasteConfig, connection: RedisConnection) -> PasteService:
    """Wire codec, key generator and store from configuration."""
    store = DocumentStore(connection, recent_limit=config.storage.recent_limit)
    return PasteService(
        store=store,
        codec=ContentCodec(compression_level=config.storage.compression_level),
        key_generator=KeyGenerator.from_config(config.keys),
        max_length=config.storage.max_length,
        check_collisions=config.keys.check_collisions,
        max_key_attempts=config.keys.max_attempts,
    )


def _error_response(exc: HasteError, request: Request) -> JSONResponse:
    path = request.url.path
    if exc.status_code >= 500:
        logger.error(f"{request.method} {path} failed: {exc!r}", exc_info=exc)
    elif exc.status_code == 404:
        logger.info(f"{request.method} {path}: {exc.message}")
    else:
        logger.warning(f"{request.method} {path} rejected: {exc!r}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    config: Optional[HasteConfig] = None,
    connection: Optional[RedisConnection] = None,
) -> FastAPI:
    """
    Build the application.

    The Redis connection, codec, key generator and service are created here
    once and shared by all requests.
    """
    config = config or HasteConfig()
    connection = connection or RedisConnection.from_config(config.redis)
    service = build_service(config, connection)
    static_dir = Path(config.server.static_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_stdlib_logging(config.logging.level)
        if config.logging.enabled:
            init_logging(
                log_dir=config.logging.directory,
                flush_interval_ms=config.logging.flush_interval_ms,
                flush_batch_size=config.logging.flush_batch_size,
                max_queue_size=config.logging.max_queue_size,
            )

        if await run_in_threadpool(connection.ping):
            logger.info(f"Redis connected: {config.redis.url}")
        else:
            logger.warning(f"Redis not reachable at startup: {config.redis.url}")

        if config.documents:
            try:
                await run_in_threadpool(service.load_static_documents, config.documents)
            except HasteError as e:
                logger.error(f"Static documents not loaded: {e!r}")

        log(log_system_event("server_started", details={"version": __version__}))
        logger.info(f"Haste {__version__} listening on {config.server.host}:{config.server.port}")
        try:
            yield
        finally:
            log(log_system_event("server_shutdown"))
            shutdown_logging()
            connection.close()

    app = FastAPI(
        title=config.name,
        description="Paste storage service",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config
    app.state.connection = connection
    app.state.service = service

    # -- Request logging --

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method}: {request.url.path}")
        start = time.monotonic()
        response = await call_next(request)
        log(log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
            client_ip=request.client.host if request.client else None,
        ))
        return response

    # -- Error translation --

    @app.exception_handler(HasteError)
    async def handle_haste_error(request: Request, exc: HasteError):
        return _error_response(exc, request)

    @app.exception_handler(StarletteHTTPException)
    async def handle_unknown_path(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and request.method in ("GET", "HEAD"):
            key = strip_extension(request.url.path[1:])
            index = static_dir / INDEX_FILE
            if key and "/" not in key and index.is_file():
                try:
                    found = await run_in_threadpool(service.exists, key)
                except HasteError as e:
                    logger.warning(f"Existence probe for {key} failed: {e!r}")
                    found = False
                if found:
                    return FileResponse(index, status_code=200, media_type="text/html")
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(f"{request.method} {request.url.path} crashed", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "InternalError", "message": "Internal server error"},
        )

    # -- Routes --

    @app.get("/")
    async def get_root():
        index = static_dir / INDEX_FILE
        if not index.is_file():
            raise StarletteHTTPException(status_code=404)
        return FileResponse(index, media_type="text/html")

    @app.post("/docs", response_model=CreateResponse)
    async def post_document(request: Request, service: PasteService = Depends(get_service)):
        name: Optional[str] = None
        mimetype: Optional[str] = None
        detect_redirect = True
        content_type = request.headers.get("content-type", "")

        if content_type.split(";")[0].strip().lower() == "multipart/form-data":
            form = await request.form()
            try:
                upload = form.get("file")
                text = form.get("data")
                if isinstance(upload, UploadFile):
                    data = await upload.read()
                    name = upload.filename or ""
                    mimetype = upload.content_type
                    detect_redirect = False
                elif isinstance(text, str):
                    data = text.encode("utf-8")
                else:
                    raise HasteValidationError(
                        "Multipart upload requires a 'file' field",
                        operation="create",
                    )
            finally:
                await form.close()
        else:
            data = await request.body()

        metadata = await run_in_threadpool(
            service.create, data, name, mimetype, detect_redirect=detect_redirect,
        )
        return CreateResponse(name=metadata.name, key=metadata.key)

    @app.get("/docs/{document_id}")
    def get_document(
        document_id: str, request: Request, service: PasteService = Depends(get_service),
    ):
        metadata, data = service.fetch(document_id, accept=request.headers.get("accept"))
        headers = document_headers(metadata)
        if metadata.mimetype == URL_REDIRECT:
            headers["location"] = redirect_location(data)
            headers["content-length"] = "0"
            return Response(status_code=301, headers=headers)
        headers["content-length"] = str(len(data))
        return Response(content=data, headers=headers)

    @app.head("/docs/{document_id}")
    def head_document(
        document_id: str, request: Request, service: PasteService = Depends(get_service),
    ):
        metadata = service.fetch_metadata(document_id, accept=request.headers.get("accept"))
        return Response(headers=document_headers(metadata))

    @app.get("/keys/{keys}")
    def get_keys(keys: str, service: PasteService = Depends(get_service)):
        infos = service.fetch_many_metadata(keys.split(","))
        return JSONResponse(content=[info.to_dict() for info in infos])

    @app.get("/recent")
    def get_recent(service: PasteService = Depends(get_service)):
        return JSONResponse(content=[info.to_dict() for info in service.recent()])

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request):
        ready = request.app.state.connection.ping()
        body = HealthResponse(
            status=HealthStatus.HEALTHY if ready else HealthStatus.UNHEALTHY,
            version=__version__,
            store="ok" if ready else "unavailable",
        )
        return JSONResponse(status_code=200 if ready else 503, content=body.model_dump(mode="json"))

    return app
