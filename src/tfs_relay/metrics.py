"""
Prometheus metrics for the TFS relay.

This module defines the metrics collected while receiving build requests,
dispatching them to the build queue and annotating builds whose rich
integration is not supported.
"""

from prometheus_client import Counter, Histogram, Gauge
import time


# Request reception metrics
webhooks_received_total = Counter(
    "tfs_relay_webhooks_received_total",
    "Total number of build requests received",
    ["event_type"],  # build_variables|none|unknown or an event type
)

dispatch_duration_seconds = Histogram(
    "tfs_relay_dispatch_duration_seconds",
    "Time spent dispatching build requests",
    ["event_type"],
)

dispatch_errors_total = Counter(
    "tfs_relay_dispatch_errors_total",
    "Total number of build requests rejected",
    ["event_type", "error_type"],
)

# Scheduling metrics
builds_scheduled_total = Counter(
    "tfs_relay_builds_scheduled_total",
    "Total number of builds submitted to the queue",
    ["job_name", "outcome"],  # outcome = created|accepted|sterile
)

unsupported_integrations_total = Counter(
    "tfs_relay_unsupported_integrations_total",
    "Total number of builds annotated as lacking rich TFS/Team Services integration",
)

queue_length = Gauge(
    "tfs_relay_queue_length",
    "Number of items waiting in the build queue",
)


class MetricsContext:
    """Context manager for timing operations and handling errors with metrics."""

    def __init__(self, histogram, error_counter, error_labels=None):
        self.histogram = histogram
        self.error_counter = error_counter
        self.error_labels = error_labels or []
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            duration = time.time() - self.start_time
            self.histogram.observe(duration)

        if exc_type is not None:
            error_type = exc_type.__name__
            self.error_counter.labels(*self.error_labels, error_type).inc()

        return False  # Don't suppress exceptions


def track_dispatch(event_type: str):
    """Context manager for tracking build dispatch metrics."""
    webhooks_received_total.labels(event_type).inc()
    return MetricsContext(
        dispatch_duration_seconds.labels(event_type),
        dispatch_errors_total,
        error_labels=[event_type],
    )
