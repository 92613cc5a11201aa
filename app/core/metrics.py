"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "Mention tracker application info")
APP_INFO.info({"version": "1.0.0", "name": "mention_tracker"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

PROVIDER_CALLS = Counter(
    "provider_calls_total",
    "AI provider calls made by scans",
    ["provider", "status"],
)

PROVIDER_LATENCY = Histogram(
    "provider_call_duration_seconds",
    "AI provider call duration in seconds",
    ["provider"],
    buckets=[0.5, 1, 2.5, 5, 10, 20, 30, 60, 120],
)

SCAN_RESULTS_STORED = Counter(
    "scan_results_stored_total",
    "Scan result rows written",
    ["status"],
)

AUTOMATION_RUNS = Counter(
    "automation_runs_total",
    "Automated scan runs",
    ["status"],
)


# --- Middleware ---

# Normalize dynamic path segments to reduce cardinality
_PATH_PREFIXES = ("/api/v1/mentions/brands/",)


def _normalize_path(path: str) -> str:
    """Replace numeric IDs in paths with {id} to avoid high cardinality."""
    for prefix in _PATH_PREFIXES:
        if path.startswith(prefix):
            rest = path[len(prefix) :]
            parts = rest.split("/", 1)
            if parts[0].isdigit():
                tail = f"/{parts[1]}" if len(parts) > 1 else ""
                return f"{prefix}{{id}}{tail}"
    return path


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
