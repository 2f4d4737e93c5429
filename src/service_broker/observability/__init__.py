"""Observability for the service broker: structured logging and metrics.

Quick start::

    from service_broker.observability import configure_logging, get_logger

    configure_logging("INFO", json_output=True)
"""

from .logging import configure_logging, get_logger, request_id_ctx
from .metrics import metrics_text, record_operation

__all__ = [
    "configure_logging",
    "get_logger",
    "metrics_text",
    "record_operation",
    "request_id_ctx",
]
