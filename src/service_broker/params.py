"""User-supplied parameter validation.

Only syntactic validity is checked here. Shape validation against a
service's JSON schemas happens in the catalog merge step.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import ValidationError

INVALID_USER_INPUT_MSG = (
    "User supplied paramaters must be in the form of a valid JSON map."
)

RawParameters = str | bytes | bytearray | None


def is_valid_or_empty_json(payload: RawParameters) -> bool:
    """Return True for an absent/empty payload or well-formed JSON."""
    if payload is None or len(payload) == 0:
        return True
    try:
        json.loads(payload)
    except ValueError:
        return False
    return True


def parse_parameters(payload: RawParameters) -> dict[str, Any]:
    """Decode a raw payload into a parameter map.

    Absent, empty and JSON ``null`` payloads yield ``{}``.

    Raises:
        ValidationError: If the payload is not JSON or not a JSON object.
    """
    if not is_valid_or_empty_json(payload):
        raise ValidationError(INVALID_USER_INPUT_MSG)
    if payload is None or len(payload) == 0:
        return {}

    decoded = json.loads(payload)
    if decoded is None:
        return {}
    if not isinstance(decoded, dict):
        raise ValidationError(INVALID_USER_INPUT_MSG)
    return decoded


def raw_text(payload: RawParameters) -> str:
    """Raw payload as text, for the provision request audit record."""
    if payload is None:
        return ""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).decode("utf-8", errors="replace")
    return payload
