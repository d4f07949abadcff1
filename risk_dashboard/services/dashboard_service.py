"""Service abstractions orchestrating position fetches and risk calculation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

from .._parsing import ensure_success, map_positions, map_symbol_position
from ..configuration import ClientConfig, DashboardConfig, resolve_environment
from ..domain.models import Credentials, EnrichedPosition, RiskSummary
from ..exceptions import MalformedData, RiskDashboardError
from ..httpclient import BybitHTTPClient
from ..risk import enrich_positions, summarize, validate_max_loss

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ClientConfig], BybitHTTPClient]


def error_payload(exc: RiskDashboardError) -> Dict[str, str]:
    return {"type": exc.kind, "message": str(exc)}


@dataclass
class FetchResult:
    """Outcome of a position fetch: either positions and a summary, or an error."""

    success: bool
    positions: List[EnrichedPosition] = field(default_factory=list)
    summary: Optional[RiskSummary] = None
    error: Optional[Dict[str, str]] = None

    @classmethod
    def failure(cls, exc: RiskDashboardError) -> "FetchResult":
        return cls(success=False, error=error_payload(exc))

    def to_view(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error, "positions": []}
        return {
            "success": True,
            "positions": [position.to_view() for position in self.positions],
            "totalPositions": len(self.positions),
            "summary": self.summary.to_view() if self.summary is not None else None,
        }


class DashboardServiceProtocol(Protocol):
    """Protocol describing the operations exposed by :class:`DashboardService`."""

    async def fetch_positions(
        self,
        credentials: Credentials,
        environment: Any,
        max_loss: float,
        *,
        category: Optional[str] = None,
        settle_coin: Optional[str] = None,
    ) -> FetchResult:
        """Fetch open positions and compute their risk exposure."""

    async def fetch_symbol_position(
        self,
        credentials: Credentials,
        environment: Any,
        symbol: str,
        *,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return the open position for ``symbol`` if any."""

    async def fetch_account_info(self, credentials: Credentials, environment: Any) -> Dict[str, Any]:
        """Return account metadata."""

    async def fetch_wallet_balance(
        self, credentials: Credentials, environment: Any, account_type: str = "UNIFIED"
    ) -> Dict[str, Any]:
        """Return wallet balances for ``account_type``."""


class DashboardService(DashboardServiceProtocol):
    """Concrete implementation of :class:`DashboardServiceProtocol` backed by ``BybitHTTPClient``.

    Every exchange failure is returned as a ``success: False`` payload so the
    presentation layer can show it inline instead of crashing.
    """

    def __init__(self, config: DashboardConfig, client_factory: Optional[ClientFactory] = None) -> None:
        self.config = config
        self._client_factory: ClientFactory = client_factory or BybitHTTPClient

    def client_config(self, credentials: Credentials, environment: Any) -> ClientConfig:
        return ClientConfig(
            credentials=credentials,
            environment=resolve_environment(environment, strict=self.config.strict_environment),
            debug_api_payloads=self.config.debug_api_payloads,
        )

    async def fetch_positions(
        self,
        credentials: Credentials,
        environment: Any,
        max_loss: float,
        *,
        category: Optional[str] = None,
        settle_coin: Optional[str] = None,
    ) -> FetchResult:
        try:
            max_loss = validate_max_loss(max_loss)
            client_config = self.client_config(credentials, environment)
            async with self._client_factory(client_config) as client:
                envelope = await client.get_positions(
                    category or self.config.category,
                    settle_coin=settle_coin or self.config.settle_coin,
                )
            positions = enrich_positions(map_positions(envelope))
            summary = summarize(positions, max_loss)
        except RiskDashboardError as exc:
            logger.warning("Error fetching positions: %s", exc)
            return FetchResult.failure(exc)
        logger.info(
            "Fetched %d open positions from %s (exposure %.2f, utilization %.1f%%)",
            len(positions),
            client_config.environment.value,
            summary.total_risk_exposure,
            summary.utilization_percent,
        )
        return FetchResult(success=True, positions=positions, summary=summary)

    async def fetch_symbol_position(
        self,
        credentials: Credentials,
        environment: Any,
        symbol: str,
        *,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            client_config = self.client_config(credentials, environment)
            async with self._client_factory(client_config) as client:
                envelope = await client.get_positions(category or self.config.category, symbol=symbol)
            position = map_symbol_position(envelope)
            if position is not None:
                position = enrich_positions([position])[0]
        except RiskDashboardError as exc:
            logger.warning("Error fetching symbol position %s: %s", symbol, exc)
            return {"success": False, "error": error_payload(exc), "position": None}
        if position is None:
            return {
                "success": True,
                "position": None,
                "message": "No active position found for this symbol",
            }
        return {"success": True, "position": position.to_view()}

    async def fetch_account_info(self, credentials: Credentials, environment: Any) -> Dict[str, Any]:
        try:
            client_config = self.client_config(credentials, environment)
            async with self._client_factory(client_config) as client:
                envelope = await client.get_account_info()
            result = _result_of(envelope)
        except RiskDashboardError as exc:
            logger.warning("Error fetching account info: %s", exc)
            return {"success": False, "error": error_payload(exc), "accountInfo": None}
        return {"success": True, "accountInfo": result}

    async def fetch_wallet_balance(
        self, credentials: Credentials, environment: Any, account_type: str = "UNIFIED"
    ) -> Dict[str, Any]:
        try:
            client_config = self.client_config(credentials, environment)
            async with self._client_factory(client_config) as client:
                envelope = await client.get_wallet_balance(account_type)
            result = _result_of(envelope)
        except RiskDashboardError as exc:
            logger.warning("Error fetching wallet balance: %s", exc)
            return {"success": False, "error": error_payload(exc), "walletBalance": None}
        return {"success": True, "walletBalance": result}


def _result_of(envelope: Any) -> Dict[str, Any]:
    result = ensure_success(envelope).get("result")
    if result is None:
        return {}
    if not isinstance(result, dict):
        raise MalformedData("result", result, detail="expected a JSON object")
    return result
