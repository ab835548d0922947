"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from related_queue.constants import (
    METRIC_API_REQUESTS,
    METRIC_ENTRIES_COMPLETED,
    METRIC_ENTRIES_ENQUEUED,
    METRIC_ENTRIES_ERRORED,
    METRIC_FLUSH_DURATION,
    METRIC_FLUSH_PASSES,
    METRIC_HANDLER_DURATION,
    METRIC_QUEUE_DEPTH,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the queue.

    Collects metrics for:
    - Queue depth
    - Entry submissions, completions and errors
    - Handler and flush duration
    - API requests
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of entries in the queue at the start of the last flush",
            registry=self._registry,
        )

        self.entries_enqueued = Counter(
            METRIC_ENTRIES_ENQUEUED,
            "Total number of entries submitted",
            registry=self._registry,
        )

        self.entries_completed = Counter(
            METRIC_ENTRIES_COMPLETED,
            "Total number of entries handled successfully",
            registry=self._registry,
        )

        # reason: handler, exception, contract, stagnation, relation
        self.entries_errored = Counter(
            METRIC_ENTRIES_ERRORED,
            "Total number of entries marked with an error",
            ["reason"],
            registry=self._registry,
        )

        self.handler_duration = Histogram(
            METRIC_HANDLER_DURATION,
            "Handler execution duration in seconds",
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )

        self.flush_duration = Histogram(
            METRIC_FLUSH_DURATION,
            "Flush duration in seconds",
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )

        self.flush_passes = Histogram(
            METRIC_FLUSH_PASSES,
            "Number of sweep passes per flush",
            buckets=(1, 2, 3, 5, 10, 25, 50, 100, 250),
            registry=self._registry,
        )

        self.api_requests = Counter(
            METRIC_API_REQUESTS,
            "Total number of API requests",
            ["method", "endpoint", "status"],
            registry=self._registry,
        )

    def record_entry_enqueued(self) -> None:
        """Record an entry submission."""
        self.entries_enqueued.inc()

    def record_entry_completed(self, duration_seconds: float) -> None:
        """Record a successful handler call."""
        self.entries_completed.inc()
        self.handler_duration.observe(duration_seconds)

    def record_entry_errored(self, reason: str, duration_seconds: float | None = None) -> None:
        """Record an entry being marked with an error."""
        self.entries_errored.labels(reason=reason).inc()
        if duration_seconds is not None:
            self.handler_duration.observe(duration_seconds)

    def record_flush(self, passes: int, duration_seconds: float) -> None:
        """Record a completed flush."""
        self.flush_passes.observe(passes)
        self.flush_duration.observe(duration_seconds)

    def update_queue_depth(self, depth: int) -> None:
        """Update queue depth."""
        self.queue_depth.set(depth)

    def record_api_request(self, method: str, endpoint: str, status: int) -> None:
        """Record an API request."""
        self.api_requests.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
