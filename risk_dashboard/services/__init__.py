"""Service abstractions for risk dashboard workflows."""

from .dashboard_service import DashboardService, DashboardServiceProtocol, FetchResult
from .state import apply_result, refresh_positions, update_settings

__all__ = [
    "DashboardService",
    "DashboardServiceProtocol",
    "FetchResult",
    "apply_result",
    "refresh_positions",
    "update_settings",
]
