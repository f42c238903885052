"""Structured logging helpers (PHI-safe)."""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID: ContextVar[str | None] = ContextVar("request_id", default=None)

logger = logging.getLogger("caseportal.request")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def get_request_id() -> str | None:
    """Return the request id bound to the current request, if any."""
    return _REQUEST_ID.get()


def build_log_context(
    *,
    user_id: str | None = None,
    case_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if case_id:
        context["case_id"] = case_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign X-Request-ID and log one line per request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _REQUEST_ID.set(request_id)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            _REQUEST_ID.reset(token)

        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        route = request.scope.get("route")
        context = build_log_context(
            request_id=request_id,
            route=getattr(route, "path", request.url.path),
            method=request.method,
        )
        context["status"] = response.status_code
        context["duration_ms"] = duration_ms
        logger.info("request_completed", extra={"context": context})

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
