"""
Request latency middleware.

Logs method/path/status/elapsed_ms for every request and records
Prometheus counter and histogram observations. Adds ``X-Response-Time-Ms``
and ``X-Request-Id`` headers.

Pure ASGI middleware (not BaseHTTPMiddleware) so response bodies are
never buffered.
"""

from __future__ import annotations

import re
import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from cleaners.api.metrics import observe_duration, record_request
from cleaners.config import get_logger

logger = get_logger(__name__)

# Paths excluded from per-request logging (still measured by Prometheus)
_QUIET_PATHS = {"/metrics", "/health", "/healthz"}

# Static routes map to themselves; parameterized routes are matched by
# pattern. Anything else is labelled "unknown" to keep label cardinality
# bounded when scanners hit random paths.
_KNOWN_ROUTES = {
    "/health": "/health",
    "/healthz": "/healthz",
    "/metrics": "/metrics",
    "/api/chat/message": "/api/chat/message",
    "/api/chat/conversations": "/api/chat/conversations",
    "/api/knowledge": "/api/knowledge",
    "/api/knowledge/search": "/api/knowledge/search",
}

_PATTERN_ROUTES = (
    (re.compile(r"^/api/chat/history/[^/]+$"), "/api/chat/history/{session_id}"),
    (re.compile(r"^/api/chat/session/[^/]+$"), "/api/chat/session/{session_id}"),
    (
        re.compile(r"^/api/chat/conversations/[^/]+/messages$"),
        "/api/chat/conversations/{conversation_id}/messages",
    ),
    (re.compile(r"^/api/knowledge/[^/]+$"), "/api/knowledge/{item_id}"),
)


def _normalize_path(path: str) -> str:
    """Map a raw URL path to a known route label, or 'unknown'."""
    clean = path.rstrip("/") or "/"
    if clean in _KNOWN_ROUTES:
        return _KNOWN_ROUTES[clean]
    for pattern, label in _PATTERN_ROUTES:
        if pattern.match(clean):
            return label
    return "unknown"


class LatencyMiddleware:
    """Pure ASGI middleware for latency measurement and request ids."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = _normalize_path(scope["path"])
        method = scope["method"]
        start = time.perf_counter()
        request_id = uuid.uuid4().hex[:12]
        status = 500  # default until we see http.response.start

        async def send_wrapper(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
                elapsed_ms = (time.perf_counter() - start) * 1000
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", f"{elapsed_ms:.1f}".encode()))
                headers.append((b"x-request-id", request_id.encode()))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            logger.exception("%s %s [%s] failed", method, path, request_id)
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            record_request(path, method, status)
            observe_duration(path, elapsed_ms)
            if path not in _QUIET_PATHS:
                logger.info(
                    "%s %s %d %.1fms [%s]",
                    method,
                    path,
                    status,
                    elapsed_ms,
                    request_id,
                )
