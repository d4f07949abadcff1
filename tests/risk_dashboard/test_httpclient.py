"""Tests for the signed Bybit REST client."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import pytest

aiohttp = pytest.importorskip("aiohttp")

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from risk_dashboard import httpclient  # noqa: E402
from risk_dashboard.configuration import ClientConfig, Environment  # noqa: E402
from risk_dashboard.domain.models import Credentials  # noqa: E402
from risk_dashboard.exceptions import HttpError, MalformedData, TransportError  # noqa: E402
from risk_dashboard.httpclient import (  # noqa: E402
    BybitHTTPClient,
    canonical_body,
    canonical_query,
    sign,
    signature_payload,
)

TIMESTAMP = 1700000000000
SECRET = "test-secret"


class FakeResponse:
    def __init__(self, status: int, text: str) -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class FakeSession:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.calls: List[dict] = []
        self.closed = False

    def request(self, method: str, url: str, headers: Optional[dict] = None, data: Optional[str] = None):
        self.calls.append({"method": method, "url": url, "headers": dict(headers or {}), "data": data})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


def _ok(payload: Optional[dict] = None) -> FakeResponse:
    body = payload if payload is not None else {"retCode": 0, "retMsg": "OK", "result": {"list": []}}
    return FakeResponse(200, json.dumps(body))


def _client(session: FakeSession, environment: Environment = Environment.TESTNET) -> BybitHTTPClient:
    config = ClientConfig(credentials=Credentials("K", SECRET), environment=environment)
    return BybitHTTPClient(config, session=session)


@pytest.fixture(autouse=True)
def _fixed_timestamp(monkeypatch) -> None:
    monkeypatch.setattr(httpclient, "_timestamp_ms", lambda: TIMESTAMP)


def test_sign_matches_reference_digest_for_empty_params() -> None:
    payload = signature_payload(TIMESTAMP, "K", 5000, "")

    assert payload == "1700000000000K5000"
    assert sign(SECRET, payload) == "79e0d6926592aa9bff13666be0060e762f899bba68c1ffdc6cde5e68875d383b"


def test_canonical_query_sorts_keys() -> None:
    assert canonical_query({"b": 2, "a": 1}) == "a=1&b=2"
    assert canonical_query({}) == ""
    assert canonical_query(None) == ""
    assert canonical_query({"reduceOnly": True}) == "reduceOnly=true"


def test_canonical_body_is_compact_json() -> None:
    assert canonical_body({"category": "linear", "symbol": "BTCUSDT"}) == '{"category":"linear","symbol":"BTCUSDT"}'
    assert canonical_body(None) == ""


def test_prepare_get_request_signs_sorted_query() -> None:
    client = _client(FakeSession([]))

    prepared = client.prepare_request("get", "/v5/position/list", {"settleCoin": "USDT", "category": "linear"})

    assert prepared.method == "GET"
    assert prepared.url == "https://api-testnet.bybit.com/v5/position/list?category=linear&settleCoin=USDT"
    assert prepared.body == ""
    assert prepared.headers == {
        "X-BAPI-API-KEY": "K",
        "X-BAPI-SIGN": "e5f79234f7e1a7f0914dd5da548d18237137bb71da73e307152ad93e84412d2f",
        "X-BAPI-TIMESTAMP": "1700000000000",
        "X-BAPI-RECV-WINDOW": "5000",
        "Content-Type": "application/json",
    }


def test_prepare_post_request_signs_json_body() -> None:
    client = _client(FakeSession([]))

    prepared = client.prepare_request("POST", "/v5/position/list", {"category": "linear", "symbol": "BTCUSDT"})

    assert prepared.url == "https://api-testnet.bybit.com/v5/position/list"
    assert prepared.body == '{"category":"linear","symbol":"BTCUSDT"}'
    assert prepared.headers["X-BAPI-SIGN"] == "855dc7f706ec4202d8228c1880b71fd593b58615cc9d76d93217a72c50a8eeda"


def test_prepare_request_without_params_has_no_query_string() -> None:
    client = _client(FakeSession([]))

    prepared = client.prepare_request("GET", "/v5/account/info")

    assert prepared.url == "https://api-testnet.bybit.com/v5/account/info"
    assert prepared.headers["X-BAPI-SIGN"] == sign(SECRET, "1700000000000K5000")


def test_prepare_request_rejects_unsupported_method() -> None:
    client = _client(FakeSession([]))

    with pytest.raises(ValueError):
        client.prepare_request("DELETE", "/v5/position/list")


@pytest.mark.parametrize(
    "environment, base_url",
    [
        (Environment.TESTNET, "https://api-testnet.bybit.com"),
        (Environment.DEMO, "https://api-demo.bybit.com"),
        (Environment.MAINNET, "https://api.bybit.com"),
        (Environment.MAINNET_ALT, "https://api.bytick.com"),
    ],
)
def test_url_for_endpoint_uses_environment_base_url(environment: Environment, base_url: str) -> None:
    client = _client(FakeSession([]), environment)

    assert client.url_for_endpoint("positions") == f"{base_url}/v5/position/list"


def test_get_positions_defaults_linear_settle_coin() -> None:
    session = FakeSession([_ok()])
    client = _client(session)

    payload = asyncio.run(client.get_positions())

    assert payload["retCode"] == 0
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"].endswith("/v5/position/list?category=linear&settleCoin=USDT")
    assert call["data"] is None


def test_get_positions_prefers_symbol_over_settle_coin() -> None:
    session = FakeSession([_ok()])
    client = _client(session)

    asyncio.run(client.get_positions("linear", symbol="BTCUSDT", settle_coin="USDC"))

    assert session.calls[0]["url"].endswith("?category=linear&symbol=BTCUSDT")


def test_get_positions_non_linear_without_coin_sends_category_only() -> None:
    session = FakeSession([_ok()])
    client = _client(session)

    asyncio.run(client.get_positions("inverse"))

    assert session.calls[0]["url"].endswith("/v5/position/list?category=inverse")


def test_account_endpoints() -> None:
    session = FakeSession([_ok({"retCode": 0, "result": {}}), _ok({"retCode": 0, "result": {}})])
    client = _client(session)

    asyncio.run(client.get_account_info())
    asyncio.run(client.get_wallet_balance())

    assert session.calls[0]["url"] == "https://api-testnet.bybit.com/v5/account/info"
    assert session.calls[1]["url"] == "https://api-testnet.bybit.com/v5/account/wallet-balance?accountType=UNIFIED"


def test_request_raises_http_error_on_bad_status() -> None:
    session = FakeSession([FakeResponse(403, "forbidden")])
    client = _client(session)

    with pytest.raises(HttpError) as excinfo:
        asyncio.run(client.get_account_info())

    assert excinfo.value.code == 403
    assert excinfo.value.msg == "forbidden"


def test_request_wraps_network_failures() -> None:
    session = FakeSession([aiohttp.ClientConnectionError("connection refused")])
    client = _client(session)

    with pytest.raises(TransportError):
        asyncio.run(client.get_account_info())
    assert len(session.calls) == 1


def test_request_wraps_timeouts() -> None:
    session = FakeSession([asyncio.TimeoutError()])
    client = _client(session)

    with pytest.raises(TransportError):
        asyncio.run(client.get_account_info())


def test_request_rejects_invalid_json() -> None:
    session = FakeSession([FakeResponse(200, "<html>")])
    client = _client(session)

    with pytest.raises(MalformedData):
        asyncio.run(client.get_account_info())


def test_close_leaves_injected_session_open() -> None:
    session = FakeSession([])
    client = _client(session)

    asyncio.run(client.close())

    assert session.closed is False


def test_credentials_repr_hides_secret() -> None:
    assert SECRET not in repr(Credentials("K", SECRET))
