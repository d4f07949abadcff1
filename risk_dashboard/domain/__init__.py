"""Domain package for risk dashboard models and value objects."""

from .models import Credentials, DashboardState, EnrichedPosition, RiskSummary

__all__ = ["Credentials", "DashboardState", "EnrichedPosition", "RiskSummary"]
