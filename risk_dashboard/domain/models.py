"""Domain models used by the risk dashboard and its services."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Credentials:
    """Exchange API key pair. Only ever used as signing input."""

    api_key: str
    api_secret: str = field(repr=False)


@dataclass(frozen=True)
class EnrichedPosition:
    """An open position with exchange field names normalised.

    Numeric fields keep the decimal strings returned by the exchange so the
    presentation layer can render them verbatim. ``risk_exposure`` is filled in
    by :func:`risk_dashboard.risk.enrich_positions`.
    """

    symbol: str
    side: str
    size: str
    entry_price: Optional[str]
    mark_price: Optional[str]
    unrealized_pnl: Optional[str]
    stop_loss: str
    leverage: Optional[str] = None
    position_value: Optional[str] = None
    risk_exposure: Optional[float] = None

    def with_risk_exposure(self, value: float) -> "EnrichedPosition":
        return replace(self, risk_exposure=value)

    def to_view(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side,
            "size": self.size,
            "entryPrice": self.entry_price,
            "markPrice": self.mark_price,
            "unrealizedPnl": self.unrealized_pnl,
            "stopLoss": self.stop_loss,
            "leverage": self.leverage,
            "positionValue": self.position_value,
            "riskExposure": self.risk_exposure,
        }


@dataclass(frozen=True)
class RiskSummary:
    """Aggregate exposure measured against the user's loss ceiling."""

    total_risk_exposure: float
    max_loss: float
    utilization_percent: float
    risk_level: str
    position_count: int = 0

    def to_view(self) -> Dict[str, Any]:
        return {
            "totalRiskExposure": self.total_risk_exposure,
            "maxLoss": self.max_loss,
            "utilizationPercent": self.utilization_percent,
            "riskLevel": self.risk_level,
            "positionCount": self.position_count,
        }


@dataclass
class DashboardState:
    """Application state backing one dashboard session."""

    credentials: Optional[Credentials] = None
    environment: str = "testnet"
    max_loss: float = 1000.0
    positions: List[EnrichedPosition] = field(default_factory=list)
    summary: Optional[RiskSummary] = None
    error: Optional[Dict[str, str]] = None
    loading: bool = False

    def to_view(self) -> Dict[str, Any]:
        return {
            "hasCredentials": self.credentials is not None,
            "environment": self.environment,
            "maxLoss": self.max_loss,
            "positions": [position.to_view() for position in self.positions],
            "totalPositions": len(self.positions),
            "summary": self.summary.to_view() if self.summary is not None else None,
            "error": dict(self.error) if self.error else None,
            "loading": self.loading,
        }


__all__ = [
    "Credentials",
    "EnrichedPosition",
    "RiskSummary",
    "DashboardState",
]
