"""Observability infrastructure for File Uploader."""

from file_uploader.observability.logging import (
    RequestIDMiddleware,
    configure_logging,
    get_logger,
)
from file_uploader.observability.metrics import (
    MetricsMiddleware,
    metrics_registry,
    setup_metrics,
)

__all__ = [
    "MetricsMiddleware",
    "RequestIDMiddleware",
    "configure_logging",
    "get_logger",
    "metrics_registry",
    "setup_metrics",
]
