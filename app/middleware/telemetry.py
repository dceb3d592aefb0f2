"""Request instrumentation for Prometheus."""

from __future__ import annotations

import time
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.telemetry import observe_request

# Scrapes and probes would otherwise dominate the request series.
_UNOBSERVED_PATHS = frozenset({"/metrics", "/health", "/health/ready"})


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Count and time questionnaire API requests."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in _UNOBSERVED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:  # pragma: no cover - defensive
            observe_request(
                request.method, self._route_template(request), 500, time.perf_counter() - started
            )
            raise

        observe_request(
            request.method,
            self._route_template(request),
            response.status_code,
            time.perf_counter() - started,
        )
        return response

    @staticmethod
    def _route_template(request: Request) -> str:
        """Label by route template so session ids do not explode cardinality."""

        route: Any = request.scope.get("route")
        template = getattr(route, "path", None) if route is not None else None
        return template or request.url.path
