"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    RelayMetrics,
    get_metrics_handler,
)

__all__ = [
    "RelayMetrics",
    "get_metrics_handler",
]
