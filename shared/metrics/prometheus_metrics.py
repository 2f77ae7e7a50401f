"""Prometheus metrics definitions and helpers.

Provides the metric definitions for the place-creation relay.
"""

from typing import Callable

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class RelayMetrics:
    """HTTP and Open Cloud metrics for the relay."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize relay metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.registry = registry

        # Inbound requests
        self.http_requests = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=registry,
        )

        # Open Cloud results, labelled by PlaceCreationOutcome value
        self.place_creation_outcomes = Counter(
            "place_creation_outcomes_total",
            "Results of Open Cloud create-place calls",
            ["outcome"],
            registry=registry,
        )


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Args:
        registry: Registry to render

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
