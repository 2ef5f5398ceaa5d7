"""Request correlation ids, access logging and request metrics."""

import logging
import time
import uuid
from typing import Callable, Iterable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import structlog

from .config import settings
from .observability import metrics_collector


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = ("/health", "/ready", "/metrics", "/favicon.ico")


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


def route_template(request: Request) -> str:
    # /api/packages/{package_id} rather than the concrete id
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with an id.

    A caller-supplied `X-Request-ID` is reused, otherwise a UUID4 is minted.
    The id is stored on `request.state`, bound into structlog's context
    for the duration of the request and echoed on the response.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)

        response.headers[self.header_name] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log each request once it finishes and count it in the request metrics."""

    def __init__(self, app: ASGIApp, skip_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.skip_paths = frozenset(skip_paths if skip_paths is not None else QUIET_PATHS)

    def _finish(self, request: Request, status_code: int, started: float, **fields) -> None:
        elapsed = time.perf_counter() - started
        metrics_collector.record_request(request.method, route_template(request), status_code, elapsed)

        level = logging.INFO
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING

        logger.log(
            level,
            f"{request.method} {request.url.path} -> {status_code}",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
                "client_ip": client_ip(request),
                **fields,
            },
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.skip_paths:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            self._finish(request, 500, started, error=str(e))
            raise

        self._finish(
            request,
            response.status_code,
            started,
            user_agent=request.headers.get("User-Agent"),
            response_size=response.headers.get("Content-Length"),
        )
        return response


def setup_middleware(app, enable_logging: bool = True) -> None:
    """Install request-id and (optionally) access-log middleware on `app`."""
    # Starlette runs the last-added middleware first, so the request id is bound before logging
    if enable_logging:
        quiet = () if settings.debug else QUIET_PATHS
        app.add_middleware(LoggingMiddleware, skip_paths=quiet)

    app.add_middleware(RequestIDMiddleware)
