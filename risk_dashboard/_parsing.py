"""Helpers for turning Bybit position payloads into dashboard positions."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from ._utils import parse_decimal
from .domain.models import EnrichedPosition
from .exceptions import ApiError, MalformedData

__all__ = ["ensure_success", "extract_records", "is_open", "map_position", "map_positions", "map_symbol_position"]

DEFAULT_STOP_LOSS = "0.00"


def ensure_success(envelope: Any) -> Mapping[str, Any]:
    """Return ``envelope`` when ``retCode`` is zero, otherwise raise :class:`ApiError`."""

    if not isinstance(envelope, Mapping):
        raise MalformedData("envelope", envelope, detail="expected a JSON object")
    if "retCode" not in envelope:
        raise MalformedData("retCode", None, detail="missing from response envelope")
    code = envelope["retCode"]
    if code != 0:
        raise ApiError(code, envelope.get("retMsg"))
    return envelope


def extract_records(envelope: Any) -> Sequence[Mapping[str, Any]]:
    """Return ``result.list`` from a successful envelope."""

    envelope = ensure_success(envelope)
    result = envelope.get("result")
    if not isinstance(result, Mapping):
        raise MalformedData("result", result, detail="expected an object with a 'list' field")
    records = result.get("list") or []
    if not isinstance(records, (list, tuple)):
        raise MalformedData("result.list", records, detail="expected an array of positions")
    return records


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def is_open(record: Mapping[str, Any]) -> bool:
    """A record is open when its size parses to a number above zero."""

    try:
        return parse_decimal(record.get("size") or "0", "size") > 0
    except MalformedData:
        return False



def map_position(record: Mapping[str, Any]) -> EnrichedPosition:
    if not isinstance(record, Mapping):
        raise MalformedData("position", record, detail="expected a JSON object")
    return EnrichedPosition(
        symbol=str(record.get("symbol") or ""),
        side=str(record.get("side") or ""),
        size=str(record.get("size") or "0"),
        entry_price=_optional_str(record.get("avgPrice")),
        mark_price=_optional_str(record.get("markPrice")),
        unrealized_pnl=_optional_str(record.get("unrealisedPnl")),
        stop_loss=str(record.get("stopLoss") or DEFAULT_STOP_LOSS),
        leverage=_optional_str(record.get("leverage")),
        position_value=_optional_str(record.get("positionValue")),
    )


def map_positions(envelope: Any) -> List[EnrichedPosition]:
    """Return the open positions of a position-list envelope in exchange order."""

    positions: List[EnrichedPosition] = []
    for record in extract_records(envelope):
        if not isinstance(record, Mapping):
            raise MalformedData("position", record, detail="expected a JSON object")
        if is_open(record):
            positions.append(map_position(record))
    return positions


def map_symbol_position(envelope: Any) -> Optional[EnrichedPosition]:
    """Return the first listed position when it is open, otherwise ``None``."""

    records = extract_records(envelope)
    if not records:
        return None
    record = records[0]
    if not isinstance(record, Mapping) or not is_open(record):
        return None
    return map_position(record)
