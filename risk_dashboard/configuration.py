"""Utilities for loading risk dashboard configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .domain.models import Credentials
from .exceptions import InvalidConfiguration
from .risk import validate_max_loss


logger = logging.getLogger(__name__)

DEFAULT_RECV_WINDOW = 5000
DEFAULT_MAX_LOSS = 1000.0


class Environment(str, Enum):
    """Bybit deployments the dashboard can talk to."""

    TESTNET = "testnet"
    DEMO = "demo"
    MAINNET = "mainnet"
    MAINNET_ALT = "mainnet-alt"

    @property
    def base_url(self) -> str:
        return BASE_URLS[self]


BASE_URLS: Mapping[Environment, str] = MappingProxyType(
    {
        Environment.TESTNET: "https://api-testnet.bybit.com",
        Environment.DEMO: "https://api-demo.bybit.com",
        Environment.MAINNET: "https://api.bybit.com",
        Environment.MAINNET_ALT: "https://api.bytick.com",
    }
)

DEFAULT_ENVIRONMENT = Environment.TESTNET


def resolve_environment(value: Any, *, strict: bool = False) -> Environment:
    """Return the :class:`Environment` named by ``value``.

    Names match exactly, so ``"MAINNET"`` or ``" mainnet "`` are unknown.
    Unknown identifiers fall back to testnet, never to a live deployment. When
    ``strict`` is set they raise :class:`InvalidConfiguration` instead.
    """

    if isinstance(value, Environment):
        return value
    try:
        return Environment(value)
    except ValueError:
        if strict:
            raise InvalidConfiguration(f"Unknown environment {value!r}") from None
        logger.warning("Unknown environment %r, falling back to %s", value, DEFAULT_ENVIRONMENT.value)
        return DEFAULT_ENVIRONMENT


def _ensure_debug_logging_enabled() -> None:
    """Raise logging verbosity when debug API payloads are requested."""

    dashboard_logger = logging.getLogger("risk_dashboard")
    if dashboard_logger.level == logging.NOTSET or dashboard_logger.level > logging.DEBUG:
        dashboard_logger.setLevel(logging.DEBUG)


def _coerce_bool(value: Any, default: bool = False) -> bool:
    """Return a boolean for ``value`` supporting common string representations."""

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"", "default", "auto"}:
            return default
        if lowered in {"1", "true", "yes", "on", "enabled", "enable"}:
            return True
        if lowered in {"0", "false", "no", "off", "disabled", "disable"}:
            return False
    return bool(value)


@dataclass(frozen=True)
class ClientConfig:
    """Everything the signing client needs for one exchange deployment."""

    credentials: Credentials
    environment: Environment = DEFAULT_ENVIRONMENT
    recv_window: int = DEFAULT_RECV_WINDOW
    debug_api_payloads: bool = False

    @property
    def base_url(self) -> str:
        return self.environment.base_url


@dataclass()
class DashboardConfig:
    """Top level dashboard configuration."""

    credentials: Optional[Credentials] = None
    environment: Environment = DEFAULT_ENVIRONMENT
    strict_environment: bool = False
    max_loss: float = DEFAULT_MAX_LOSS
    category: str = "linear"
    settle_coin: str = "USDT"
    debug_api_payloads: bool = False
    config_root: Optional[Path] = None

    def client_config(self, credentials: Optional[Credentials] = None) -> ClientConfig:
        creds = credentials or self.credentials
        if creds is None:
            raise InvalidConfiguration("API credentials are required to query the exchange.")
        return ClientConfig(
            credentials=creds,
            environment=self.environment,
            debug_api_payloads=self.debug_api_payloads,
        )


_CREDENTIAL_ALIASES = {
    "key": "api_key",
    "apikey": "api_key",
    "api_key": "api_key",
    "secret": "api_secret",
    "secret_key": "api_secret",
    "secretkey": "api_secret",
    "apisecret": "api_secret",
    "api_secret": "api_secret",
}


def _normalise_credentials(data: Mapping[str, Any]) -> Dict[str, str]:
    """Normalise credential keys to ``api_key``/``api_secret``."""

    normalised: Dict[str, str] = {}
    for raw_key, value in data.items():
        if value is None:
            continue
        value = str(value).strip()
        if value == "":
            continue
        key_lookup = str(raw_key).lower().replace(" ", "").replace("-", "_")
        key = _CREDENTIAL_ALIASES.get(key_lookup)
        if key is None:
            continue
        normalised[key] = value
    return normalised


def credentials_from_mapping(data: Mapping[str, Any]) -> Optional[Credentials]:
    """Build :class:`Credentials` from a mapping using any supported alias.

    Returns ``None`` when neither key is present. Supplying only one half of
    the pair is a configuration error.
    """

    normalised = _normalise_credentials(data)
    if not normalised:
        return None
    if "api_key" not in normalised or "api_secret" not in normalised:
        raise InvalidConfiguration("Both an API key and an API secret must be provided.")
    return Credentials(api_key=normalised["api_key"], api_secret=normalised["api_secret"])


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Configuration file not found: {path}") from exc


def load_dashboard_config(
    path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> DashboardConfig:
    """Load the dashboard configuration from ``path`` and the environment.

    ``BYBIT_API_KEY``, ``BYBIT_API_SECRET``, ``BYBIT_ENVIRONMENT`` and
    ``RISK_DASHBOARD_MAX_LOSS`` override values from the file.
    """

    if environ is None:
        environ = os.environ
    raw: Dict[str, Any] = {}
    config_root: Optional[Path] = None
    if path is not None:
        raw = _load_json(path)
        if not isinstance(raw, Mapping):
            raise InvalidConfiguration(f"Configuration file {path} must contain a JSON object.")
        config_root = path.parent.resolve()

    credentials_raw: Dict[str, Any] = dict(raw.get("credentials") or {})
    if environ.get("BYBIT_API_KEY"):
        credentials_raw["api_key"] = environ["BYBIT_API_KEY"]
    if environ.get("BYBIT_API_SECRET"):
        credentials_raw["api_secret"] = environ["BYBIT_API_SECRET"]
    credentials = credentials_from_mapping(credentials_raw)

    strict_environment = _coerce_bool(raw.get("strict_environment"), False)
    environment = resolve_environment(
        environ.get("BYBIT_ENVIRONMENT") or raw.get("environment", DEFAULT_ENVIRONMENT.value),
        strict=strict_environment,
    )
    max_loss = validate_max_loss(
        environ.get("RISK_DASHBOARD_MAX_LOSS") or raw.get("max_loss", DEFAULT_MAX_LOSS)
    )
    debug_api_payloads = _coerce_bool(raw.get("debug_api_payloads"), False)
    if debug_api_payloads:
        _ensure_debug_logging_enabled()

    config = DashboardConfig(
        credentials=credentials,
        environment=environment,
        strict_environment=strict_environment,
        max_loss=max_loss,
        category=str(raw.get("category", "linear")),
        settle_coin=str(raw.get("settle_coin", "USDT")),
        debug_api_payloads=debug_api_payloads,
        config_root=config_root,
    )
    logger.info(
        "Loaded dashboard configuration (environment=%s, credentials=%s)",
        config.environment.value,
        "present" if credentials else "absent",
    )
    return config


__all__ = [
    "BASE_URLS",
    "ClientConfig",
    "DashboardConfig",
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_MAX_LOSS",
    "DEFAULT_RECV_WINDOW",
    "Environment",
    "credentials_from_mapping",
    "load_dashboard_config",
    "resolve_environment",
]
