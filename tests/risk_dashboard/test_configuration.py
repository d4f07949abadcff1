"""Tests for dashboard configuration helpers."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from risk_dashboard.configuration import (  # noqa: E402
    BASE_URLS,
    DashboardConfig,
    Environment,
    _normalise_credentials,
    credentials_from_mapping,
    load_dashboard_config,
    resolve_environment,
)
from risk_dashboard.exceptions import InvalidConfiguration  # noqa: E402


def _write_config(tmp_path: Path, payload: dict) -> Path:
    config_path = tmp_path / "configs" / "dashboard.json"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(payload), encoding="utf-8")
    return config_path


def test_base_urls_cover_every_environment() -> None:
    assert dict(BASE_URLS) == {
        Environment.TESTNET: "https://api-testnet.bybit.com",
        Environment.DEMO: "https://api-demo.bybit.com",
        Environment.MAINNET: "https://api.bybit.com",
        Environment.MAINNET_ALT: "https://api.bytick.com",
    }
    with pytest.raises(TypeError):
        BASE_URLS[Environment.MAINNET] = "https://example.com"  # type: ignore[index]


@pytest.mark.parametrize("value", ["mainnet-alt", Environment.MAINNET_ALT])
def test_resolve_environment_accepts_known_names(value) -> None:
    assert resolve_environment(value) is Environment.MAINNET_ALT


@pytest.mark.parametrize("value", ["production", "", None, "live", "MAINNET", " mainnet ", "Mainnet-Alt"])
def test_resolve_environment_falls_back_to_testnet(value, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="risk_dashboard.configuration"):
        assert resolve_environment(value) is Environment.TESTNET
    assert "falling back" in caplog.text


def test_resolve_environment_strict_rejects_unknown() -> None:
    with pytest.raises(InvalidConfiguration):
        resolve_environment("production", strict=True)


def test_normalise_credentials_supports_aliases() -> None:
    payload = {"key": " key-value ", "API-Secret": " secret-value ", "exchange": "bybit", "note": ""}

    assert _normalise_credentials(payload) == {"api_key": "key-value", "api_secret": "secret-value"}


def test_credentials_from_mapping_requires_both_halves() -> None:
    assert credentials_from_mapping({}) is None
    with pytest.raises(InvalidConfiguration):
        credentials_from_mapping({"apiKey": "only-key"})


def test_load_config_from_file(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        {
            "credentials": {"apiKey": "abc", "apiSecret": "def"},
            "environment": "demo",
            "max_loss": 250,
            "settle_coin": "USDC",
        },
    )

    config = load_dashboard_config(config_path, environ={})

    assert config.credentials is not None
    assert config.credentials.api_key == "abc"
    assert config.environment is Environment.DEMO
    assert config.max_loss == 250.0
    assert config.settle_coin == "USDC"
    assert config.category == "linear"
    assert config.config_root == config_path.parent.resolve()


def test_environment_variables_override_file(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        {"credentials": {"key": "file-key", "secret": "file-secret"}, "environment": "demo"},
    )
    environ = {
        "BYBIT_API_KEY": "env-key",
        "BYBIT_ENVIRONMENT": "mainnet",
        "RISK_DASHBOARD_MAX_LOSS": "500",
    }

    config = load_dashboard_config(config_path, environ=environ)

    assert config.credentials.api_key == "env-key"
    assert config.credentials.api_secret == "file-secret"
    assert config.environment is Environment.MAINNET
    assert config.max_loss == 500.0


def test_defaults_without_file() -> None:
    config = load_dashboard_config(environ={})

    assert config == DashboardConfig()


def test_missing_file_reports_path(tmp_path: Path) -> None:
    missing = tmp_path / "nope.json"

    with pytest.raises(FileNotFoundError) as excinfo:
        load_dashboard_config(missing, environ={})

    assert str(missing) in str(excinfo.value)


@pytest.mark.parametrize("max_loss", [0, -10, "lots"])
def test_invalid_max_loss_is_rejected(tmp_path: Path, max_loss) -> None:
    config_path = _write_config(tmp_path, {"max_loss": max_loss})

    with pytest.raises(InvalidConfiguration):
        load_dashboard_config(config_path, environ={})


def test_strict_environment_from_file(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, {"environment": "prod", "strict_environment": "yes"})

    with pytest.raises(InvalidConfiguration):
        load_dashboard_config(config_path, environ={})


def test_debug_api_payloads_enables_debug_logging(tmp_path: Path) -> None:
    logger = logging.getLogger("risk_dashboard")
    previous = logger.level
    logger.setLevel(logging.WARNING)
    try:
        config_path = _write_config(tmp_path, {"debug_api_payloads": True})
        config = load_dashboard_config(config_path, environ={})
        assert config.debug_api_payloads is True
        assert logger.level == logging.DEBUG
    finally:
        logger.setLevel(previous)


def test_client_config_requires_credentials() -> None:
    with pytest.raises(InvalidConfiguration):
        DashboardConfig().client_config()
