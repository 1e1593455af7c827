"""Prometheus metrics for monitoring and observability."""

import re
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    Info,
    generate_latest,
)
from starlette.requests import Request
from starlette.responses import Response

_UUID_SEGMENT = re.compile(
    r"/[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


class MetricsRegistry:
    """Central registry for application metrics."""

    def __init__(self):
        self._setup_metrics()

    def _setup_metrics(self) -> None:
        """Initialize Prometheus metrics."""

        self.app_info = Info(
            "file_uploader_app", "File Uploader application information"
        )

        # HTTP request metrics
        self.http_requests_total = Counter(
            "file_uploader_http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
        )

        self.http_request_duration_seconds = Histogram(
            "file_uploader_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
        )

        # File store metrics
        self.file_operations_total = Counter(
            "file_uploader_file_operations_total",
            "Total file store operations",
            ["operation", "status"],  # status: success, not_found, failure
        )

        self.file_operation_duration_seconds = Histogram(
            "file_uploader_file_operation_duration_seconds",
            "File store operation duration in seconds",
            ["operation"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
        )

        self.file_bytes_uploaded = Histogram(
            "file_uploader_file_bytes_uploaded",
            "Size of stored payloads in bytes",
            buckets=[1024, 16 * 1024, 256 * 1024, 1024**2, 8 * 1024**2, 64 * 1024**2],
        )

        # Cache metrics
        self.cache_lookups_total = Counter(
            "file_uploader_cache_lookups_total",
            "Record cache lookups",
            ["result"],  # hit, miss
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration: float,
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code),
        ).inc()

        self.http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def record_file_operation(
        self, operation: str, status: str, duration: float
    ) -> None:
        """Record file store operation metrics."""
        self.file_operations_total.labels(operation=operation, status=status).inc()
        self.file_operation_duration_seconds.labels(operation=operation).observe(
            duration
        )

    def record_upload_size(self, size: int) -> None:
        self.file_bytes_uploaded.observe(size)

    def record_cache_lookup(self, hit: bool) -> None:
        self.cache_lookups_total.labels(result="hit" if hit else "miss").inc()


# Global metrics registry
metrics_registry = MetricsRegistry()


def setup_metrics(app_name: str, version: str) -> None:
    """Set up application info metrics."""
    metrics_registry.app_info.info({"app_name": app_name, "version": version})


def normalize_path(path: str) -> str:
    """Collapse record IDs so each route maps to one metric series."""
    return _UUID_SEGMENT.sub("/{id}", path)


class MetricsMiddleware:
    """Middleware to automatically collect HTTP request metrics."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            metrics_registry.record_http_request(
                method=scope.get("method", "UNKNOWN"),
                endpoint=normalize_path(scope.get("path", "/unknown")),
                status_code=status_code,
                duration=time.perf_counter() - start_time,
            )


def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
