from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import configure_logging, get_settings
from .errors import (
    ConfigurationError,
    CredentialError,
    DocumentNotFoundError,
    DocumentStoreError,
    ValidationError,
)
from .job_manager import JobManager

logger = logging.getLogger(__name__)

INVALID_INPUT = "Invalid input. Expected destination (string) and durationDays (positive integer)."


def _error(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    body = {"error": error}
    if message:
        body["message"] = message
    return JSONResponse(body, status_code=status_code)


def create_app(manager: JobManager | None = None) -> FastAPI:
    settings = manager.settings if manager else get_settings()
    job_manager = manager or JobManager.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        logger.info(
            "Itinerary service started: collection=%s provider=%s workers=%d",
            settings.collection,
            settings.content_provider,
            settings.max_workers,
        )
        yield
        # Background jobs must finish before the process goes away.
        await run_in_threadpool(job_manager.shutdown, settings.drain_timeout_seconds)
        logger.info("Itinerary service stopped")

    app = FastAPI(title="Itinerary Job Service", version="1.0.0", lifespan=lifespan)
    app.state.job_manager = job_manager

    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, INVALID_INPUT, exc.message)

    @app.exception_handler(DocumentNotFoundError)
    async def on_not_found(request: Request, exc: DocumentNotFoundError) -> JSONResponse:
        return _error(404, "Job not found")

    @app.exception_handler(ConfigurationError)
    async def on_configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Configuration error: %s", exc)
        return _error(500, "Service misconfigured", str(exc))

    # Reached from the read path only; create turns these into a 400 itself.
    @app.exception_handler(CredentialError)
    @app.exception_handler(DocumentStoreError)
    async def on_upstream_error(request: Request, exc: Exception) -> JSONResponse:
        return _error(502, "Upstream store failure", str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "pendingJobs": len(job_manager.pending_jobs())}

    @app.post("/itinerary")
    async def create_itinerary(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError as exc:
            return _error(400, "Invalid JSON input.", str(exc))

        try:
            record = await run_in_threadpool(job_manager.create_job, payload)
        except (CredentialError, DocumentStoreError) as exc:
            # The request is rejected as a whole and no job id is issued.
            return _error(400, "Failed to create itinerary job", str(exc))
        return JSONResponse({"jobId": record.id}, status_code=202)

    @app.get("/itinerary")
    @app.get("/itinerary/")
    def missing_job_id() -> JSONResponse:
        return _error(400, "Missing job id")

    @app.get("/itinerary/{job_id}")
    def get_itinerary(job_id: str) -> JSONResponse:
        record = job_manager.get_job(job_id)
        return JSONResponse(record.to_dict())

    return app
