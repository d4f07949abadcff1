"""FastAPI powered JSON API for the position risk dashboard.

The presentation layer posts credentials and settings to these endpoints and
renders whatever comes back. Every request starts from a fresh
:class:`DashboardState` seeded from the immutable configuration, so nothing a
caller sends outlives its request. Exchange and data failures are returned as
``success: false`` payloads; only malformed requests produce 4xx responses.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from .configuration import BASE_URLS, DashboardConfig, credentials_from_mapping
from .domain.models import Credentials, DashboardState
from .exceptions import InvalidConfiguration
from .services.dashboard_service import DashboardService, DashboardServiceProtocol
from .services.state import refresh_positions, update_settings


async def _read_payload(request: Request) -> Mapping[str, Any]:
    if request.headers.get("content-length") in (None, "0"):
        return {}
    try:
        payload = await request.json()
    except Exception as exc:  # pragma: no cover - invalid JSON yields 400
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload") from exc
    if not isinstance(payload, Mapping):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payload must be an object")
    return payload


def _optional_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value in (None, ""):
        return None
    return str(value).strip() or None


def _requested_environment(payload: Mapping[str, Any]) -> Any:
    value = payload.get("environment")
    if value in (None, ""):
        return None
    return value


def _initial_state(config: DashboardConfig) -> DashboardState:
    return DashboardState(
        credentials=config.credentials,
        environment=config.environment.value,
        max_loss=config.max_loss,
    )


def _parse_max_loss(payload: Mapping[str, Any]) -> Optional[float]:
    raw = payload.get("max_loss", payload.get("maxLoss"))
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="max_loss must be numeric") from exc


def _resolve_credentials(payload: Mapping[str, Any], state: DashboardState) -> Credentials:
    try:
        credentials = credentials_from_mapping(payload)
    except InvalidConfiguration as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if credentials is None:
        credentials = state.credentials
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter both API key and secret",
        )
    return credentials


def create_app(
    config: DashboardConfig,
    *,
    service: Optional[DashboardServiceProtocol] = None,
) -> FastAPI:
    if service is None:
        service = DashboardService(config)

    app = FastAPI(title="Bybit Risk Exposure Dashboard")
    app.state.service = service

    def get_service(request: Request) -> DashboardServiceProtocol:
        return request.app.state.service

    def get_state() -> DashboardState:
        return _initial_state(config)

    def apply_settings(payload: Mapping[str, Any], state: DashboardState) -> Credentials:
        credentials = _resolve_credentials(payload, state)
        try:
            update_settings(
                state,
                credentials=credentials,
                environment=_requested_environment(payload),
                max_loss=_parse_max_loss(payload),
                strict_environment=config.strict_environment,
            )
        except InvalidConfiguration as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return credentials

    @app.get("/health", response_class=JSONResponse)
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    @app.get("/api/environments", response_class=JSONResponse)
    async def api_environments(state: DashboardState = Depends(get_state)) -> JSONResponse:
        environments = [
            {"name": environment.value, "base_url": url} for environment, url in BASE_URLS.items()
        ]
        return JSONResponse({"environments": environments, "selected": state.environment})

    @app.get("/api/state", response_class=JSONResponse)
    async def api_state(state: DashboardState = Depends(get_state)) -> JSONResponse:
        return JSONResponse(state.to_view())

    @app.post("/api/positions", response_class=JSONResponse)
    async def api_positions(
        request: Request,
        service: DashboardServiceProtocol = Depends(get_service),
        state: DashboardState = Depends(get_state),
    ) -> JSONResponse:
        payload = await _read_payload(request)
        apply_settings(payload, state)
        result = await refresh_positions(
            state,
            service,
            category=_optional_str(payload, "category"),
            settle_coin=_optional_str(payload, "settle_coin"),
        )
        return JSONResponse(result.to_view())

    @app.post("/api/positions/{symbol}", response_class=JSONResponse)
    async def api_symbol_position(
        symbol: str,
        request: Request,
        service: DashboardServiceProtocol = Depends(get_service),
        state: DashboardState = Depends(get_state),
    ) -> JSONResponse:
        target = symbol.strip().upper()
        if not target:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Symbol is required")
        payload = await _read_payload(request)
        credentials = apply_settings(payload, state)
        result = await service.fetch_symbol_position(
            credentials,
            state.environment,
            target,
            category=_optional_str(payload, "category"),
        )
        return JSONResponse(result)

    @app.post("/api/account", response_class=JSONResponse)
    async def api_account_info(
        request: Request,
        service: DashboardServiceProtocol = Depends(get_service),
        state: DashboardState = Depends(get_state),
    ) -> JSONResponse:
        payload = await _read_payload(request)
        credentials = apply_settings(payload, state)
        result: Dict[str, Any] = await service.fetch_account_info(credentials, state.environment)
        return JSONResponse(result)

    @app.post("/api/wallet-balance", response_class=JSONResponse)
    async def api_wallet_balance(
        request: Request,
        service: DashboardServiceProtocol = Depends(get_service),
        state: DashboardState = Depends(get_state),
    ) -> JSONResponse:
        payload = await _read_payload(request)
        credentials = apply_settings(payload, state)
        account_type = _optional_str(payload, "account_type") or "UNIFIED"
        result = await service.fetch_wallet_balance(credentials, state.environment, account_type)
        return JSONResponse(result)

    return app
