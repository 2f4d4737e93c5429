"""Classification of provider failures seen while polling.

A transient failure means the upstream API is briefly unavailable and the
operation is still running; it must not be reported as a terminal failure.
Everything else is terminal.
"""

from __future__ import annotations

import httpx

from ..models import OperationOutcome

# Upstream statuses that signal "try again later".
TRANSIENT_STATUS_CODES = frozenset({429, 503})


def _status_code(exc: BaseException) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    status = getattr(exc, "status_code", None)
    return status if isinstance(status, int) else None


def is_transient(exc: BaseException) -> bool:
    return _status_code(exc) in TRANSIENT_STATUS_CODES


def classify_poll_error(
    exc: BaseException, operation_id: str | None = None,
) -> OperationOutcome:
    """Map a poll failure to pending (transient) or failed (terminal)."""
    if is_transient(exc):
        return OperationOutcome.pending(operation_id or "", cause=exc)
    return OperationOutcome.failed(exc)
