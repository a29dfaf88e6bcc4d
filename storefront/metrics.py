from __future__ import annotations

import time
from typing import Callable, Optional

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, Info, generate_latest
from starlette.routing import Match

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_ERRORS = Counter(
    "http_request_errors_total",
    "Total HTTP requests resulting in server errors",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "In-progress HTTP requests",
    ["method", "path"],
)
SHIPPING_CACHE_HITS = Counter(
    "shipping_rate_cache_hits_total",
    "Shipping estimates served from the rate cache",
)
SHIPPING_CACHE_MISSES = Counter(
    "shipping_rate_cache_misses_total",
    "Shipping estimates that required an upstream quote",
)
SHIPPING_CACHE_SIZE = Gauge(
    "shipping_rate_cache_entries",
    "Entries currently held in the shipping rate cache",
)
SHIPPING_RATE_LIMITED = Counter(
    "shipping_estimate_rate_limited_total",
    "Shipping estimate requests rejected by the per-IP limit",
)
UPSTREAM_REQUESTS = Counter(
    "easypost_requests_total",
    "EasyPost rate requests by outcome",
    ["outcome"],
)
UPSTREAM_LATENCY = Histogram(
    "easypost_request_duration_seconds",
    "EasyPost rate request latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1, 2, 3, 5, 7.5, 10, 15),
)
UPTIME_SECONDS = Gauge(
    "app_uptime_seconds",
    "Application uptime in seconds",
)
APP_INFO = Info(
    "app",
    "Application metadata",
)

_START_TIME = time.monotonic()
UNMATCHED_PATH = "__unmatched__"


def _route_path(request: Request) -> str:
    # Label by route template; unknown paths share one label to bound cardinality.
    route = request.scope.get("route")
    if route and getattr(route, "path", None):
        return route.path
    for candidate in getattr(request.app.router, "routes", []):
        match, _ = candidate.matches(request.scope)
        if match == Match.FULL and getattr(candidate, "path", None):
            return candidate.path
    return UNMATCHED_PATH


def record_cache_lookup(hit: bool) -> None:
    if hit:
        SHIPPING_CACHE_HITS.inc()
    else:
        SHIPPING_CACHE_MISSES.inc()


def record_cache_size(size: int) -> None:
    SHIPPING_CACHE_SIZE.set(size)


def record_rate_limited() -> None:
    SHIPPING_RATE_LIMITED.inc()


def record_upstream_call(outcome: str, elapsed: Optional[float] = None) -> None:
    UPSTREAM_REQUESTS.labels(outcome=outcome).inc()
    if elapsed is not None:
        UPSTREAM_LATENCY.observe(elapsed)


async def metrics_middleware(request: Request, call_next: Callable[[Request], Response]) -> Response:
    method = request.method
    start = time.perf_counter()
    status_code = 500
    path = _route_path(request)
    IN_PROGRESS.labels(method=method, path=path).inc()
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        IN_PROGRESS.labels(method=method, path=path).dec()
        elapsed = time.perf_counter() - start
        REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)
        REQUEST_COUNT.labels(method=method, path=path, status=str(status_code)).inc()
        if status_code >= 500:
            REQUEST_ERRORS.labels(method=method, path=path, status=str(status_code)).inc()


def set_app_info(name: str, version: str) -> None:
    APP_INFO.info({"name": name, "version": version})


def metrics_endpoint() -> Response:
    UPTIME_SECONDS.set(time.monotonic() - _START_TIME)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
