"""FastAPI application exposing ingestion and chat over HTTP."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse

from ragette.config import Settings, configure_logging, settings as default_settings
from ragette.exceptions import (
    InvalidChatRequestError,
    StoreWriteError,
    UnsupportedMediaTypeError,
)
from ragette.serving.dependencies import RagServices, build_services, get_services
from ragette.serving.schemas import ChatRequest, EmbedRequest

logger = logging.getLogger(__name__)

INGESTION_FAILED = "Error uploading file to vectorDB"
CHAT_FAILED = "Chat processing failed"


def _error_detail(exc: Exception, message: str) -> dict[str, Any]:
    detail: dict[str, Any] = {
        "error": type(exc).__name__,
        "message": message,
        "component": getattr(exc, "component", "unknown"),
    }
    if isinstance(exc, StoreWriteError):
        detail["failed_batches"] = exc.failed_batches
    return detail


def create_app(services: RagServices | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the API.

    When *services* is given it is used as-is (tests, embedding in another
    process); otherwise the lifespan connects real clients from *settings*.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        owned = services is None
        app.state.services = services if services is not None else await build_services(settings)
        try:
            yield
        finally:
            if owned:
                await app.state.services.aclose()

    app = FastAPI(
        title="Ragette API",
        version="0.1.0",
        description="Upload a document, then chat with it.",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.get("/health/ready")
    async def ready(svc: RagServices = Depends(get_services)) -> JSONResponse:
        """Readiness probe — checks the vector store."""
        if await svc.store.health_check():
            return JSONResponse({"status": "ready"})
        return JSONResponse({"status": "unavailable"}, status_code=503)

    @app.post("/api/embed")
    async def embed(request: EmbedRequest, svc: RagServices = Depends(get_services)) -> str:
        """Fetch, split, embed and store the uploaded file."""
        logger.info("Ingesting fileId=%s from %s", request.file_id, request.file_url)
        try:
            result = await svc.ingestion.ingest_url(request.file_url, request.file_id)
        except UnsupportedMediaTypeError as exc:
            raise HTTPException(status_code=415, detail=_error_detail(exc, str(exc))) from exc
        except Exception as exc:
            logger.exception("Ingestion failed for fileId=%s", request.file_id)
            raise HTTPException(status_code=500, detail=_error_detail(exc, INGESTION_FAILED)) from exc
        return result.status

    @app.post("/api/chat")
    async def chat(request: ChatRequest, svc: RagServices = Depends(get_services)) -> StreamingResponse:
        """Stream the answer to the last user message."""
        try:
            state = await svc.chat.prepare(request.messages, request.file_id)
        except InvalidChatRequestError as exc:
            raise HTTPException(status_code=422, detail=_error_detail(exc, str(exc))) from exc
        except Exception as exc:
            logger.exception("Chat preparation failed for fileId=%s", request.file_id)
            raise HTTPException(status_code=500, detail=_error_detail(exc, CHAT_FAILED)) from exc
        return StreamingResponse(svc.chat.stream(state), media_type="text/plain; charset=utf-8")

    return app


app = create_app()

