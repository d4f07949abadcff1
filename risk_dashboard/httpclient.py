"""Signed REST client for the Bybit v5 API."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import aiohttp

from ._utils import stringify_payload
from .configuration import ClientConfig
from .exceptions import HttpError, MalformedData, TransportError

log = logging.getLogger(__name__)

ENDPOINTS: Mapping[str, str] = {
    "positions": "/v5/position/list",
    "account_info": "/v5/account/info",
    "wallet_balance": "/v5/account/wallet-balance",
}

SUPPORTED_METHODS = ("GET", "POST")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def canonical_query(params: Optional[Mapping[str, Any]]) -> str:
    """Return ``params`` as ``key=value`` pairs sorted by key and joined by ``&``."""

    if not params:
        return ""
    return "&".join(f"{key}={_format_value(params[key])}" for key in sorted(params))


def canonical_body(params: Optional[Mapping[str, Any]]) -> str:
    """Return ``params`` serialised as a compact JSON object."""

    if not params:
        return ""
    return json.dumps(dict(params), separators=(",", ":"))


def signature_payload(timestamp: int, api_key: str, recv_window: int, params: str) -> str:
    return f"{timestamp}{api_key}{recv_window}{params}"


def sign(api_secret: str, payload: str) -> str:
    """Hex encoded HMAC-SHA256 of ``payload`` keyed with ``api_secret``."""

    return hmac.new(
        api_secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def build_headers(api_key: str, signature: str, timestamp: int, recv_window: int) -> Dict[str, str]:
    return {
        "X-BAPI-API-KEY": api_key,
        "X-BAPI-SIGN": signature,
        "X-BAPI-TIMESTAMP": str(timestamp),
        "X-BAPI-RECV-WINDOW": str(recv_window),
        "Content-Type": "application/json",
    }


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    headers: Dict[str, str]
    body: str = ""


class BybitHTTPClient:
    """Issue signed requests against one Bybit deployment.

    The client holds nothing but its immutable :class:`ClientConfig` and an
    ``aiohttp`` session, which is created on first use unless one is
    injected. Every call is a single attempt; retry policy belongs to the
    caller.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "BybitHTTPClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    def url_for_endpoint(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        url = ENDPOINTS.get(endpoint, endpoint)
        if not url.startswith("/"):
            raise ValueError(f"The endpoint URL({url}) does not start with '/'")
        return f"{self.base_url}{url}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if not self._owns_session or self._session is None:
            return
        if not self._session.closed:
            await self._session.close()
        self._session = None

    def prepare_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        timestamp: Optional[int] = None,
    ) -> PreparedRequest:
        """Build the URL, signed headers and body for a request without sending it."""

        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method {method!r}; expected one of {SUPPORTED_METHODS}")
        if timestamp is None:
            timestamp = _timestamp_ms()
        url = self.url_for_endpoint(endpoint)
        if method == "GET":
            query = canonical_query(params)
            body = ""
            if query:
                url = f"{url}?{query}"
            signed_params = query
        else:
            body = canonical_body(params)
            signed_params = body
        credentials = self.config.credentials
        recv_window = self.config.recv_window
        signature = sign(
            credentials.api_secret,
            signature_payload(timestamp, credentials.api_key, recv_window, signed_params),
        )
        headers = build_headers(credentials.api_key, signature, timestamp, recv_window)
        return PreparedRequest(method=method, url=url, headers=headers, body=body)

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        prepared = self.prepare_request(method, endpoint, params)
        if self.config.debug_api_payloads:
            log.debug(
                "HTTPRequest METHOD: %s; URL: %s; BODY: %s;",
                prepared.method,
                prepared.url,
                prepared.body or "-",
            )
        session = self._get_session()
        try:
            async with session.request(
                prepared.method,
                prepared.url,
                headers=prepared.headers,
                data=prepared.body or None,
            ) as response:
                status = response.status
                text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            log.error("Request to %s failed: %s", prepared.url, exc)
            raise TransportError(prepared.url, exc) from exc
        if not 200 <= status < 300:
            log.error("Request to %s returned HTTP %s", prepared.url, status)
            raise HttpError(prepared.url, code=status, msg=text[:500] if text else None)
        try:
            payload: Dict[str, Any] = json.loads(text)
        except ValueError as exc:
            raise MalformedData("response body", text[:200], detail=f"invalid JSON from {prepared.url}") from exc
        if self.config.debug_api_payloads:
            log.debug("HTTPResponse URL: %s; PAYLOAD: %s;", prepared.url, stringify_payload(payload))
        return payload

    async def get_positions(
        self,
        category: str = "linear",
        symbol: Optional[str] = None,
        settle_coin: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"category": category}
        if symbol:
            params["symbol"] = symbol
        elif settle_coin:
            params["settleCoin"] = settle_coin
        elif category == "linear":
            params["settleCoin"] = "USDT"
        return await self.request("GET", ENDPOINTS["positions"], params)

    async def get_account_info(self) -> Dict[str, Any]:
        return await self.request("GET", ENDPOINTS["account_info"])

    async def get_wallet_balance(self, account_type: str = "UNIFIED") -> Dict[str, Any]:
        return await self.request("GET", ENDPOINTS["wallet_balance"], {"accountType": account_type})


__all__ = [
    "BybitHTTPClient",
    "ENDPOINTS",
    "PreparedRequest",
    "build_headers",
    "canonical_body",
    "canonical_query",
    "sign",
    "signature_payload",
]
