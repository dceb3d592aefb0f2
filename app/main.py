"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import ValidationError

from .config.settings import settings
from .controllers import health, questionnaire
from .database import dispose_engine, init_models
from .domain.errors import ErrorKind, QuestionnaireError
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware
from .views import ErrorResponse

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ErrorKind.INVALID_AUDIO: 400,
    ErrorKind.SESSION_NOT_FOUND: 404,
    ErrorKind.SESSION_CONFLICT: 409,
    ErrorKind.SESSION_CLOSED: 409,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.CLASSIFICATION_FAILED: 503,
}

_UNAVAILABLE_MESSAGE = "A required service is temporarily unavailable. Please try again."


def _configure_logging() -> None:
    """Ensure structured middleware logs stream to stdout and file."""

    logging.getLogger().handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("app.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    transcript_log_path = Path(settings.transcript_log_file)
    transcript_log_path.parent.mkdir(parents=True, exist_ok=True)
    transcript_handler = RotatingFileHandler(
        transcript_log_path,
        maxBytes=500_000,
        backupCount=5,
        encoding="utf-8",
    )
    transcript_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    transcript_logger = logging.getLogger("app.logs.transcript")
    transcript_logger.handlers.clear()
    transcript_logger.addHandler(transcript_handler)
    transcript_logger.setLevel(logging.INFO)

    noisy_loggers = [
        "botocore",
        "boto3",
        "urllib3",
        "sqlalchemy.engine",
        "amazon_transcribe",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def _error_body(error: str, message: str, request: Request) -> dict[str, str | None]:
    return ErrorResponse(
        error=error,
        message=message,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
    ).model_dump()


def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=_error_body("INTERNAL_ERROR", "An unexpected error occurred", request),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Voice-driven questionnaire backend",
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(questionnaire.router)
    app.include_router(health.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(QuestionnaireError)
    async def questionnaire_exception_handler(request: Request, exc: QuestionnaireError):
        status_code = _ERROR_STATUS.get(exc.kind, 500)
        if status_code == 503:
            logger.error("Service unavailable on %s: %s", request.url.path, exc)
            message = _UNAVAILABLE_MESSAGE
        else:
            logger.warning("%s on %s: %s", exc.kind.value, request.url.path, exc)
            message = str(exc)
        return JSONResponse(
            status_code=status_code,
            content=_error_body(exc.kind.value, message, request),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        # pydantic errors here come from our own models, not from the client.
        if isinstance(exc, ValidationError):
            return _internal_error(request, exc)
        return JSONResponse(
            status_code=400,
            content=_error_body("BAD_REQUEST", str(exc), request),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        return _internal_error(request, exc)

    @app.on_event("startup")
    async def startup_event() -> None:
        if settings.session.backend == "database":
            await init_models()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await dispose_engine()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
