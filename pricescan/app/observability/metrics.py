from __future__ import annotations

import time
from typing import Awaitable, Callable

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

_UNTRACKED_PATHS = frozenset({"/metrics", "/api/docs", "/api/redoc", "/api/openapi.json"})

REQUEST_COUNTER = Counter(
    "pricescan_http_requests_total",
    "Total HTTP requests handled by the API",
    ["method", "route", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "pricescan_http_request_latency_seconds",
    "Latency of HTTP requests in seconds",
    ["method", "route"],
)

REQUESTS_IN_FLIGHT = Gauge(
    "pricescan_http_requests_in_flight",
    "HTTP requests currently being handled",
)


def _route_label(request: Request) -> str:
    # Route template, so unmatched paths cannot blow up label cardinality.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that tracks request counts, latency and concurrency.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in _UNTRACKED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        with REQUESTS_IN_FLIGHT.track_inprogress():
            response = await call_next(request)
        latency = time.perf_counter() - start

        route = _route_label(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            route=route,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(method=request.method, route=route).observe(latency)

        return response


metrics_router = APIRouter(tags=["metrics"])


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    data: bytes = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
