"""Command line entry point for the risk dashboard web API."""

from __future__ import annotations

import argparse
import copy
import importlib
import logging
from pathlib import Path

import uvicorn

from .configuration import load_dashboard_config, resolve_environment


def _determine_uvicorn_logging(config) -> tuple[dict | None, str]:
    """Return logging configuration overrides for uvicorn."""

    if not config.debug_api_payloads:
        return None, "info"
    try:
        uvicorn_config = importlib.import_module("uvicorn.config")
    except ModuleNotFoundError:  # pragma: no cover - uvicorn not importable in tests
        return None, "debug"
    LOGGING_CONFIG = getattr(uvicorn_config, "LOGGING_CONFIG", None)
    if LOGGING_CONFIG is None:  # pragma: no cover - unexpected configuration shape
        return None, "debug"

    log_config = copy.deepcopy(LOGGING_CONFIG)
    loggers = log_config.setdefault("loggers", {})
    dashboard_logger = loggers.setdefault(
        "risk_dashboard", {"handlers": ["default"], "level": "INFO", "propagate": False}
    )
    if not dashboard_logger.get("handlers"):
        dashboard_logger["handlers"] = ["default"]
    dashboard_logger["level"] = "DEBUG"
    dashboard_logger.setdefault("propagate", False)

    return log_config, "debug"


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Launch the Bybit risk dashboard API")
    parser.add_argument("--config", type=Path, help="Path to the dashboard configuration file")
    parser.add_argument("--host", default="127.0.0.1", help="Host address for the web server")
    parser.add_argument("--port", type=int, default=8000, help="Port for the web server")
    parser.add_argument(
        "--environment",
        help="Override the exchange environment (testnet, demo, mainnet, mainnet-alt)",
    )
    parser.add_argument(
        "--debug-api-payloads",
        action="store_true",
        help="Log request URLs and response payloads at DEBUG level",
    )
    parser.add_argument("--reload", action="store_true", help="Enable autoreload (development only)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = load_dashboard_config(args.config)
    if args.environment:
        config.environment = resolve_environment(args.environment, strict=config.strict_environment)
    if args.debug_api_payloads:
        config.debug_api_payloads = True
    log_config, log_level = _determine_uvicorn_logging(config)
    from .web import create_app  # imported lazily to avoid heavy dependencies at import time

    if config.credentials is None:
        logging.getLogger("risk_dashboard.web_server").info(
            "No API credentials configured; clients must supply them with each request."
        )
    app = create_app(config)
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=log_config,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
