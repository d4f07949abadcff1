"""Handlers that move a :class:`DashboardState` between discrete states."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..configuration import resolve_environment
from ..domain.models import Credentials, DashboardState
from ..exceptions import InvalidConfiguration
from ..risk import validate_max_loss
from .dashboard_service import DashboardServiceProtocol, FetchResult

logger = logging.getLogger(__name__)


def update_settings(
    state: DashboardState,
    *,
    credentials: Optional[Credentials] = None,
    environment: Any = None,
    max_loss: Optional[float] = None,
    strict_environment: bool = False,
) -> DashboardState:
    """Apply user supplied settings. Values left as ``None`` are unchanged."""

    if credentials is not None:
        state.credentials = credentials
    if environment is not None:
        state.environment = resolve_environment(environment, strict=strict_environment).value
    if max_loss is not None:
        state.max_loss = validate_max_loss(max_loss)
    return state


def apply_result(state: DashboardState, result: FetchResult) -> DashboardState:
    """Record ``result``; a failure keeps the previously displayed positions."""

    if result.success:
        state.positions = list(result.positions)
        state.summary = result.summary
        state.error = None
    else:
        state.error = result.error
    return state


async def refresh_positions(
    state: DashboardState,
    service: DashboardServiceProtocol,
    *,
    category: Optional[str] = None,
    settle_coin: Optional[str] = None,
) -> FetchResult:
    if state.credentials is None:
        result = FetchResult.failure(
            InvalidConfiguration("Please enter both API key and secret")
        )
        apply_result(state, result)
        return result
    state.loading = True
    state.error = None
    try:
        result = await service.fetch_positions(
            state.credentials,
            state.environment,
            state.max_loss,
            category=category,
            settle_coin=settle_coin,
        )
    finally:
        state.loading = False
    apply_result(state, result)
    return result


__all__ = ["apply_result", "refresh_positions", "update_settings"]
