from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.invtrack.core.context import tags_of
from app.invtrack.core.logging import log_json
from app.invtrack.core.metrics import metrics
from app.invtrack.db.session import get_db_time_ms, start_db_timer, stop_db_timer

logger = logging.getLogger("invtrack.request")


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    db_time_ms: float | None,
) -> dict:
    tags = tags_of(request)
    return {
        "event": "http_request",
        "trace_id": tags.trace_id,
        "tenant_id": tags.tenant_id,
        "user_id": tags.user_id,
        "route": _route_template(request),
        "method": request.method,
        "status_code": response.status_code if response is not None else 500,
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": None if db_time_ms is None else round(db_time_ms, 2),
        "error_code": getattr(request.state, "error_code", None),
        "error_class": getattr(request.state, "error_class", None),
        "idempotency_result": response.headers.get("X-Idempotency-Result") if response is not None else None,
    }


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Writes one ``invtrack.request`` record per request and counts it."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        timer = start_db_timer()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = (time.perf_counter() - started) * 1000
            payload = build_request_log_payload(
                request=request,
                response=response,
                latency_ms=latency_ms,
                db_time_ms=get_db_time_ms(),
            )
            stop_db_timer(timer)
            log_json(logger, payload)
            metrics.record_http_request(
                route=payload["route"],
                method=payload["method"],
                status_code=payload["status_code"],
                latency_ms=latency_ms,
            )
