"""
ThesisHub - HTTP Middleware

Tags each request with an id, records the group it targets, and logs the
outcome once the response is ready.
"""

import re
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from thesishub.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    set_group_id,
    generate_request_id,
)

QUIET_PATHS = frozenset({"/", "/api/health", "/favicon.ico", "/docs", "/redoc", "/openapi.json"})

SLOW_REQUEST_MS = 1000

_GROUP_PATH = re.compile(r"/groups/([^/]+)")


def group_id_from_path(path: str) -> Optional[str]:
    """/api/groups/<id>/tasks -> <id>"""
    match = _GROUP_PATH.search(path)
    return match.group(1) if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request id, timing headers and one log line per request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        path = request.url.path
        set_request_id(request_id)
        set_group_id(group_id_from_path(path) or "")

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = (time.perf_counter() - started) * 1000
            logger.log_error_with_context(exc, context=f"{request.method} {path}", duration_ms=round(elapsed, 2))
            raise
        finally:
            set_user_id("")

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.2f}ms"

        if path not in QUIET_PATHS:
            logger.log_request(request.method, path, response.status_code, elapsed)
            if elapsed > SLOW_REQUEST_MS:
                logger.warning(f"Slow request: {request.method} {path}", extra={"event": "http.slow"})

        set_request_id("")
        set_group_id("")
        return response
