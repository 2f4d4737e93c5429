"""Structured logging for the service broker.

Lifecycle code logs through structlog with event names and keyword fields
(``logger.info("provisioning", instance_id=...)``). ``configure_logging``
installs one root handler so those events and plain stdlib records from the
vault client and httpx share the same renderer.

Values under secret-bearing keys (see ``SECRET_KEYS``) are masked before
rendering.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TextIO

import structlog

# Correlation ID of the broker request being handled, set by the caller.
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "[redacted]"
SECRET_KEYS = frozenset({
    "credentials",
    "password",
    "client_secret",
    "service_role_key",
    "authorization",
})

# Marks the handler installed here so reconfiguring replaces only it.
_HANDLER_ATTR = "_service_broker_handler"


def _add_request_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    rid = request_id_ctx.get()
    if rid is not None:
        event_dict["request_id"] = rid
    return event_dict


def _redact_secrets(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(
    level: str = "INFO",
    *,
    json_output: bool = True,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Route broker and library logs through one structlog renderer.

    Safe to call again: the handler from an earlier call is replaced, and
    handlers installed by anything else are left alone.

    Returns the installed handler.
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    # Module-level logger proxies must follow reconfiguration.
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    setattr(handler, _HANDLER_ATTR, True)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return handler


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
