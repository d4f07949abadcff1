"""Risk exposure calculations for open positions.

Exposure models the loss realised if a position's stop loss were hit from the
current mark price. A stop already beyond the mark price contributes nothing
rather than a negative amount.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from ._utils import parse_decimal
from .domain.models import EnrichedPosition, RiskSummary
from .exceptions import InvalidConfiguration, MalformedData

__all__ = [
    "RISK_LEVELS",
    "classify_utilization",
    "enrich_positions",
    "position_risk_exposure",
    "summarize",
    "total_risk_exposure",
    "utilization_percent",
    "validate_max_loss",
]

# upper utilization bound (inclusive) for each band
RISK_LEVELS = (
    (30.0, "low"),
    (60.0, "moderate"),
    (80.0, "elevated"),
)


def position_risk_exposure(position: EnrichedPosition) -> float:
    mark_price = parse_decimal(position.mark_price, "markPrice")
    stop_loss = parse_decimal(position.stop_loss, "stopLoss")
    size = parse_decimal(position.size, "size")
    side = position.side.strip().lower()
    if side == "buy":
        exposure = (mark_price - stop_loss) * size
    elif side == "sell":
        exposure = (stop_loss - mark_price) * size
    else:
        raise MalformedData("side", position.side, detail="expected 'Buy' or 'Sell'")
    return max(0.0, exposure)


def enrich_positions(positions: Iterable[EnrichedPosition]) -> List[EnrichedPosition]:
    """Return copies of ``positions`` with ``risk_exposure`` filled in."""

    return [position.with_risk_exposure(position_risk_exposure(position)) for position in positions]


def total_risk_exposure(positions: Sequence[EnrichedPosition]) -> float:
    total = 0.0
    for position in positions:
        exposure = position.risk_exposure
        if exposure is None:
            exposure = position_risk_exposure(position)
        total += exposure
    return total


def validate_max_loss(max_loss: float) -> float:
    try:
        value = float(max_loss)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"max_loss must be numeric, got {max_loss!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise InvalidConfiguration(f"max_loss must be greater than zero, got {max_loss!r}")
    return value


def utilization_percent(total: float, max_loss: float) -> float:
    """Share of ``max_loss`` consumed by ``total``, clamped to ``[0, 100]``."""

    max_loss = validate_max_loss(max_loss)
    return max(0.0, min(100.0, total / max_loss * 100.0))


def classify_utilization(percent: float) -> str:
    for bound, label in RISK_LEVELS:
        if percent <= bound:
            return label
    return "critical"


def summarize(positions: Sequence[EnrichedPosition], max_loss: float) -> RiskSummary:
    max_loss = validate_max_loss(max_loss)
    total = total_risk_exposure(positions)
    percent = utilization_percent(total, max_loss)
    return RiskSummary(
        total_risk_exposure=total,
        max_loss=max_loss,
        utilization_percent=percent,
        risk_level=classify_utilization(percent),
        position_count=len(positions),
    )
