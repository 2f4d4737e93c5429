"""Prometheus metrics for the service broker.

Usage::

    from service_broker.observability.metrics import BROKER_OPERATIONS_TOTAL

    BROKER_OPERATIONS_TOTAL.labels(operation="provision", outcome="ok").inc()
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    generate_latest,
)

# ---------------------------------------------------------------------------
# Lifecycle operations
# ---------------------------------------------------------------------------

BROKER_OPERATIONS_TOTAL = Counter(
    "broker_operations_total",
    "Lifecycle operations by verb and outcome (ok or error code).",
    labelnames=["operation", "outcome"],
    registry=REGISTRY,
)

LAST_OPERATION_POLLS_TOTAL = Counter(
    "broker_last_operation_polls_total",
    "Last-operation polls by reported state.",
    labelnames=["state"],
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Partial failures (operator action required)
# ---------------------------------------------------------------------------

PARTIAL_FAILURES_TOTAL = Counter(
    "broker_partial_failures_total",
    "Failures that left external and local state out of sync.",
    labelnames=["kind"],
    registry=REGISTRY,
)


def record_operation(operation: str, outcome: str) -> None:
    BROKER_OPERATIONS_TOTAL.labels(operation=operation, outcome=outcome).inc()


def metrics_text() -> tuple[bytes, str]:
    """Render the default registry in Prometheus exposition format."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
