"""Exceptions raised by the risk dashboard."""

from __future__ import annotations

from typing import Any, Optional


class RiskDashboardError(Exception):
    """
    Base class for risk dashboard exceptions
    """

    kind = "error"


class TransportError(RiskDashboardError):
    """The network call could not complete (DNS, timeout, refused connection)."""

    kind = "transport"

    def __init__(self, url: str, reason: Any) -> None:
        self.url = url
        self.reason = reason
        super().__init__(url, reason)

    def __str__(self) -> str:
        return f"Request to {self.url!r} could not be completed: {self.reason}"


class HttpError(RiskDashboardError):
    """The exchange answered with a non-success HTTP status."""

    kind = "http"

    def __init__(self, url: str, code: int, msg: Optional[str] = None) -> None:
        self.url = url
        self.code = code
        self.msg = msg
        super().__init__(url, code, msg)

    def __str__(self) -> str:
        return f"Request to {self.url!r} failed. Code: {self.code}; Message: {self.msg}"


class ApiError(RiskDashboardError):
    """The exchange envelope carried a non-zero ``retCode``."""

    kind = "api"

    def __init__(self, code: Any, message: Optional[str] = None) -> None:
        self.code = code
        self.message = message
        super().__init__(code, message)

    def __str__(self) -> str:
        return f"API Error: {self.message} (retCode {self.code})"


class MalformedData(RiskDashboardError):
    """A payload field could not be interpreted."""

    kind = "malformed_data"

    def __init__(self, field: str, value: Any = None, detail: Optional[str] = None) -> None:
        self.field = field
        self.value = value
        self.detail = detail
        super().__init__(field, value, detail)

    def __str__(self) -> str:
        if self.detail:
            return f"Malformed {self.field}: {self.detail}"
        return f"Malformed {self.field}: {self.value!r}"


class InvalidConfiguration(RiskDashboardError, ValueError):
    """A user supplied setting cannot be used (e.g. a non-positive max loss)."""

    kind = "invalid_configuration"


__all__ = [
    "RiskDashboardError",
    "TransportError",
    "HttpError",
    "ApiError",
    "MalformedData",
    "InvalidConfiguration",
]
