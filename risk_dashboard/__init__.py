"""Position risk dashboard for Bybit derivatives accounts.

The package signs requests against the Bybit v5 REST API, maps the open
position list and measures how much of a user defined loss ceiling the
positions' stop losses put at risk.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
