"""ASGI middleware for session authentication, CSRF checks and request logging."""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .metrics import record_request

SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}
CSRF_HEADER = "X-CSRF-Token"


class AuthenticatedSessionMiddleware(BaseHTTPMiddleware):
    """Reject API calls without a session, and writes without a CSRF token."""

    def __init__(self, app: Callable, api_prefix: str = "/api") -> None:
        super().__init__(app)
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if not request.url.path.startswith(self.api_prefix):
            return await call_next(request)

        user_id = request.session.get("user_id")
        if not user_id:
            return JSONResponse({"detail": "Not authenticated"}, status_code=status.HTTP_401_UNAUTHORIZED)
        request.state.user_id = user_id

        if request.method not in SAFE_METHODS:
            expected = request.session.get("csrf_token")
            provided = request.headers.get(CSRF_HEADER)
            if not expected or provided != expected:
                return JSONResponse({"detail": "Invalid CSRF token"}, status_code=status.HTTP_403_FORBIDDEN)

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request and feed the HTTP metrics."""

    def __init__(self, app: Callable) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("events.request")

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        method = request.method
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            record_request(method, _route_path(request), 500, duration)
            self.logger.exception("HTTP %s %s raised an unhandled exception", method, _route_path(request))
            raise
        duration = time.perf_counter() - start

        route_path = _route_path(request)
        user_id = request.scope.get("session", {}).get("user_id") if "session" in request.scope else None
        self.logger.info(
            "HTTP %s %s status=%s user=%s duration=%.3f",
            method,
            route_path,
            response.status_code,
            user_id or "anonymous",
            duration,
        )
        record_request(method, route_path, response.status_code, duration)
        response.headers.setdefault("X-Process-Time", f"{duration:.6f}")
        return response


def _route_path(request: Request) -> str:
    # Templated path keeps metric label cardinality bounded.
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)
