"""Liveness and readiness probes."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.config.settings import settings
from app.controllers.dependencies import SessionStoreDep, TtsServiceDep
from app.views import HealthStatus, ReadinessStatus

router = APIRouter(prefix="/health", tags=["health"])

logger = logging.getLogger(__name__)

_PROBE_SESSION_ID = "health-check"


@router.get("", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    return HealthStatus(
        status="UP",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=settings.app_name,
    )


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_check(store: SessionStoreDep, tts: TtsServiceDep) -> JSONResponse:
    """Probe the session store and Polly; 503 when either is unreachable."""

    dependencies: dict[str, bool] = {}

    try:
        await store.exists(_PROBE_SESSION_ID)
        dependencies["sessionStore"] = True
    except Exception:
        logger.warning("Session store readiness probe failed", exc_info=True)
        dependencies["sessionStore"] = False

    try:
        await tts.ping()
        dependencies["polly"] = True
    except Exception:
        logger.warning("Polly readiness probe failed", exc_info=True)
        dependencies["polly"] = False

    ready = all(dependencies.values())
    body = ReadinessStatus(
        status="READY" if ready else "NOT_READY",
        dependencies=dependencies,
    )
    return JSONResponse(status_code=200 if ready else 503, content=body.model_dump())
