"""Request middleware: request IDs, access logging with metrics, CORS."""

import logging
import os
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from toolbridge.infra.config import config
from toolbridge.infra.metrics import request_count, request_duration

logger = logging.getLogger("toolbridge.request")

# Probe traffic is logged at debug level only
QUIET_PATHS = frozenset({"/health", "/health/live", "/health/ready", "/metrics"})


def _endpoint_label(request: Request) -> str:
    """Route template (e.g. /tools/{tool_name}) so metric labels stay bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate X-Request-ID, generating one when the caller sent none."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One structured access-log line and one metrics sample per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        context = {
            "request_id": getattr(request.state, "request_id", "unknown"),
            "method": request.method,
            "path": request.url.path,
        }

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={**context, "error": str(e), "duration_ms": int((time.perf_counter() - started) * 1000)},
                exc_info=True,
            )
            request_count.labels(method=request.method, endpoint=_endpoint_label(request), status="500").inc()
            raise

        elapsed = time.perf_counter() - started
        endpoint = _endpoint_label(request)
        request_count.labels(method=request.method, endpoint=endpoint, status=str(response.status_code)).inc()
        request_duration.labels(method=request.method, endpoint=endpoint).observe(elapsed)

        level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO
        logger.log(
            level,
            "Request completed",
            extra={**context, "status_code": response.status_code, "duration_ms": int(elapsed * 1000)},
        )
        response.headers["X-Response-Time-Ms"] = str(int(elapsed * 1000))
        return response


def setup_cors(app):
    """Setup CORS middleware from CORS_ORIGINS (wildcard only in development)."""
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    if config.APP_ENV == "development":
        origins = origins or ["*"]
    else:
        # SECURITY: Never use wildcard outside development
        origins = [o for o in origins if o != "*"]

    if not origins:
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
    )
