from __future__ import annotations

import logging
from time import perf_counter
import uuid

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import Settings

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        # Decisions depend on live occupancy and workload, never serve them from a cache.
        if request.url.path.startswith(self._settings.api_prefix):
            response.headers.setdefault("Cache-Control", "no-store")
        if self._settings.security_enable_hsts:
            max_age = max(1, self._settings.security_hsts_max_age_seconds)
            response.headers.setdefault("Strict-Transport-Security", f"max-age={max_age}; includeSubDomains")
        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs slow assignment traffic."""

    def __init__(self, app, *, max_bytes: int, slow_request_ms: int = 1500) -> None:
        super().__init__(app)
        self._max_bytes = max(1, max_bytes)
        self._slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.scope.get("type") != "http":
            return await call_next(request)

        raw_length = request.headers.get("content-length")
        if raw_length:
            try:
                value = int(raw_length)
            except ValueError:
                value = 0
            if value > self._max_bytes:
                return JSONResponse(
                    status_code=413,
                    content={
                        "message": "Request body too large",
                        "code": "request_too_large",
                        "details": {"size": value, "max_bytes": self._max_bytes},
                    },
                )

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        started = perf_counter()
        response = await call_next(request)
        elapsed_ms = (perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        if elapsed_ms >= self._slow_request_ms:
            logger.warning(
                "Slow request %s %s took %.0fms (request_id=%s)",
                request.method,
                request.url.path,
                elapsed_ms,
                request_id,
            )
        return response
