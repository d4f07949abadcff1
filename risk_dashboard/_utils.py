"""Shared helper utilities for risk dashboard modules."""

from __future__ import annotations

import json
import math
from typing import Any

from .exceptions import MalformedData

__all__ = [
    "json_default",
    "stringify_payload",
    "parse_decimal",
]


def json_default(value: Any) -> Any:
    """Coerce non-serialisable objects into JSON-compatible types."""

    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.decode("utf-8", errors="replace")
    return str(value)


def stringify_payload(payload: Any) -> str:
    """Return a JSON string representation for logging purposes."""

    try:
        return json.dumps(payload, ensure_ascii=False, default=json_default, sort_keys=True)
    except (TypeError, ValueError):  # pragma: no cover - defensive fallback
        return repr(payload)


def parse_decimal(value: Any, field: str) -> float:
    """Return ``value`` (usually a decimal string) as a finite ``float``.

    Raises :class:`MalformedData` naming ``field`` instead of coercing bad
    input to zero.
    """

    if value is None or isinstance(value, bool):
        raise MalformedData(field, value)
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedData(field, value) from None
    if not math.isfinite(number):
        raise MalformedData(field, value)
    return number
