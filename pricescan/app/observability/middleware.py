from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import get_logger

logger = get_logger("request")

REQUEST_ID_HEADER = "X-Request-ID"


class TraceLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with trace_id/span_id injected by the logging factory
    and echoes a request id back to the caller.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()

        logger.info(
            "Incoming request",
            extra={
                "path": request.url.path,
                "method": request.method,
                "request_id": request_id,
            },
        )
        response = await call_next(request)
        logger.info(
            "Completed request",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "request_id": request_id,
                "latency_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
