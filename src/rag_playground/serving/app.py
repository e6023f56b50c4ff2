"""FastAPI application exposing the RAG service as a REST API."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rag_playground.config import settings
from rag_playground.errors import RagError, ValidationError
from rag_playground.retrieval.models import Source
from rag_playground.service import RagService, build_service

logger = logging.getLogger(__name__)

UPLOAD_READ_SIZE = 1024 * 1024


# ── Request / Response schemas ────────────────────────────────────────
class IngestRequest(BaseModel):
    """Plain-text document to ingest."""

    title: str | None = None
    text: str | None = None
    chunkSize: Any = None  # noqa: N815


class IngestResponse(BaseModel):
    ok: bool = True
    chunks: int
    extractedTextPreview: str | None = None  # noqa: N815


class QueryRequest(BaseModel):
    """Incoming question from the user."""

    query: str | None = None
    topK: Any = None  # noqa: N815


class QueryResponse(BaseModel):
    """Answer plus the sources it was built from."""

    answer: str
    sources: list[Source] = []


class StatusResponse(BaseModel):
    ok: bool = True
    message: str | None = None


# ── Lifespan ──────────────────────────────────────────────────────────
def _log_warmup_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Local embedder warm-up failed: %s", exc)
    else:
        logger.info("Local embedding model ready.")


def create_app(service: RagService | None = None) -> FastAPI:
    """Create the FastAPI app.

    When *service* is omitted it is built from the global settings at
    startup; configuration errors then abort startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = service if service is not None else build_service(settings)
        await svc.startup()
        app.state.service = svc

        warmup_task = None
        if svc.provider.requires_warmup:
            logger.info("Prewarming local embedding model...")
            warmup_task = asyncio.create_task(svc.warmup_embedding_provider())
            warmup_task.add_done_callback(_log_warmup_result)

        yield

        if warmup_task is not None and not warmup_task.done():
            warmup_task.cancel()
        await svc.shutdown()

    app = FastAPI(
        title="RAG Playground API",
        version="0.1.0",
        description="Ingest documents and answer questions over them with retrieval-augmented generation.",
        lifespan=lifespan,
    )

    @app.exception_handler(RagError)
    async def _rag_error_handler(request: Request, exc: RagError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.http_status, content={"error": str(exc)})

    _register_routes(app)
    return app


def get_service(request: Request) -> RagService:
    return request.app.state.service


ServiceDep = Annotated[RagService, Depends(get_service)]


# ── Routes ────────────────────────────────────────────────────────────
def _register_routes(app: FastAPI) -> None:
    @app.get("/api/health")
    async def health(service: ServiceDep) -> JSONResponse:
        """Datastore reachability probe."""
        if await service.health_check():
            return JSONResponse({"ok": True})
        return JSONResponse(status_code=500, content={"ok": False, "error": "Datastore is unreachable."})

    @app.post("/api/ingest", response_model=IngestResponse)
    async def ingest(request: IngestRequest, service: ServiceDep) -> IngestResponse:
        """Chunk, embed and store a plain-text document."""
        result = await service.ingest(request.title, request.text, request.chunkSize)
        return IngestResponse(chunks=result.chunks)

    @app.post("/api/ingest-pdf", response_model=IngestResponse)
    async def ingest_pdf(
        service: ServiceDep,
        file: Annotated[UploadFile | None, File()] = None,
        title: Annotated[str | None, Form()] = None,
        chunkSize: Annotated[str | None, Form()] = None,  # noqa: N803
    ) -> IngestResponse:
        """Extract text from an uploaded PDF and ingest it."""
        if file is None:
            raise ValidationError("PDF file is required.")

        path = await _save_upload(file, service.config.max_upload_mb * 1024 * 1024)
        try:
            result = await service.ingest_pdf(title or file.filename, path, chunkSize)
        finally:
            os.unlink(path)
        return IngestResponse(chunks=result.chunks, extractedTextPreview=result.extracted_text_preview)

    @app.post("/api/clear", response_model=StatusResponse)
    async def clear(service: ServiceDep) -> StatusResponse:
        """Delete every stored chunk."""
        await service.clear_all()
        return StatusResponse()

    @app.post("/api/warmup", response_model=StatusResponse)
    async def warmup(service: ServiceDep) -> StatusResponse:
        """Load the local embedding model ahead of the first request."""
        message = await service.warmup_embedding_provider()
        return StatusResponse(message=message)

    @app.post("/api/query", response_model=QueryResponse)
    async def query(request: QueryRequest, service: ServiceDep) -> QueryResponse:
        """Answer a question from the stored chunks."""
        result = await service.query(request.query or "", request.topK)
        return QueryResponse(answer=result.answer, sources=result.sources)


async def _save_upload(file: UploadFile, max_bytes: int) -> str:
    """Spool *file* to a temporary path, enforcing *max_bytes*."""
    fd, path = tempfile.mkstemp(prefix="rag-playground-upload-", suffix=".pdf")
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while block := await file.read(UPLOAD_READ_SIZE):
                written += len(block)
                if written > max_bytes:
                    raise ValidationError(f"PDF file exceeds {max_bytes // (1024 * 1024)} MB.")
                out.write(block)
    except BaseException:
        os.unlink(path)
        raise
    return path


app = create_app()


def main() -> None:
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
