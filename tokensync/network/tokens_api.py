"""Tokens network client (wallet node JSON-RPC + tokens API) with retries.

This client implements the four calls the sync coordinator needs:
- fetch_native_balance  (eth_getBalance)
- fetch_asset_balance   (eth_call balanceOf)
- fetch_tickers         (POST {api_url}/prices)
- discover_assets       (GET {api_url}/tokens?address=...)

Env vars used as fallbacks when no URL is passed explicitly:
- TOKENSYNC_RPC_URL
- TOKENSYNC_API_URL

Notes:
- Empty or benign responses come back as None; transport failures raise TransportError.
- Retries cover connection errors and HTTP 429/5xx with exponential backoff.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Sequence

import httpx

from tokensync.data.tokens.constants import (
    DEFAULT_CURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
)
from tokensync.data.tokens.models import Asset, AssetRef, Ticker, normalize_asset_id

from .errors import TransportError

logger = logging.getLogger("tokensync.network")

DEFAULT_RPC_URL = "https://mainnet.infura.io/v3/"
DEFAULT_API_URL = "https://api.trustwalletapp.com"

BALANCE_OF_SELECTOR = "0x70a08231"
_RETRY_STATUSES = {429, 500, 502, 503, 504}


class TokensNetwork(ABC):
    """Capability set consumed by the balance fetcher and sync coordinator."""

    @abstractmethod
    async def fetch_native_balance(self, address: str) -> Optional[int]:
        """Return the raw native balance, or None when nothing is observable."""

    @abstractmethod
    async def fetch_asset_balance(
        self, address: str, asset: Asset
    ) -> tuple[Asset, Optional[int]]:
        """Return the asset paired with its raw balance (None when absent)."""

    @abstractmethod
    async def fetch_tickers(
        self, assets: Sequence[Asset], currency: str
    ) -> Optional[list[Ticker]]:
        """Return price tickers for ``assets`` or None on an empty response."""

    @abstractmethod
    async def discover_assets(self, address: str) -> Optional[list[AssetRef]]:
        """Return the assets associated with ``address``."""


def _parse_quantity(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text in {"", "0x"}:
        return None
    try:
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError:
        logger.debug("Failed to parse quantity %s", value)
        return None


def encode_balance_of(address: str) -> str:
    body = address.lower()
    if body.startswith("0x"):
        body = body[2:]
    return BALANCE_OF_SELECTOR + body.rjust(64, "0")


class TrustTokensNetwork(TokensNetwork):
    def __init__(
        self,
        rpc_url: Optional[str] = None,
        api_url: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url or os.environ.get("TOKENSYNC_RPC_URL", DEFAULT_RPC_URL)
        self.api_url = (api_url or os.environ.get("TOKENSYNC_API_URL", DEFAULT_API_URL)).rstrip("/")
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self._max_retries = max(0, max_retries)
        self._retry_backoff = retry_backoff
        self._client = client
        self._ids = itertools.count(1)

    # -------- Core request --------
    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            timeout=self._timeout,
            headers={"Accept": "application/json", "User-Agent": "tokensync/1.0 (+httpx)"},
        ) as client:
            yield client

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Dict[str, Any] | None = None,
        payload: Any | None = None,
    ) -> Any:
        attempt = 0
        while True:
            try:
                async with self._session() as client:
                    resp = await client.request(method, url, params=params, json=payload)
            except httpx.RequestError as exc:
                if attempt >= self._max_retries:
                    raise TransportError(0, f"{type(exc).__name__} for {url}: {exc}") from exc
                await asyncio.sleep(self._retry_backoff * 2**attempt)
                attempt += 1
                continue

            status = resp.status_code
            if status in _RETRY_STATUSES and attempt < self._max_retries:
                await asyncio.sleep(self._retry_backoff * 2**attempt)
                attempt += 1
                continue
            if status >= 400:
                snippet = resp.text[:200]
                raise TransportError(status, f"HTTP {status} at {url}", {"body": snippet})
            try:
                return resp.json()
            except ValueError as exc:
                snippet = resp.text[:200]
                raise TransportError(status, f"HTTP {status} non-JSON response: {snippet}") from exc

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        reply = await self._request("POST", self.rpc_url, payload=body)
        if not isinstance(reply, dict):
            raise TransportError(-1, f"malformed JSON-RPC reply for {method}")
        error = reply.get("error")
        if error:
            code = error.get("code", -1) if isinstance(error, dict) else -1
            message = error.get("message", "unknown") if isinstance(error, dict) else str(error)
            raise TransportError(int(code), str(message), error)
        return reply.get("result")

    # -------- Balances --------
    async def fetch_native_balance(self, address: str) -> Optional[int]:
        result = await self._rpc("eth_getBalance", [address, "latest"])
        return _parse_quantity(result)

    async def fetch_asset_balance(
        self, address: str, asset: Asset
    ) -> tuple[Asset, Optional[int]]:
        call = {"to": asset.id, "data": encode_balance_of(address)}
        result = await self._rpc("eth_call", [call, "latest"])
        return asset, _parse_quantity(result)

    # -------- Tokens API --------
    async def fetch_tickers(
        self, assets: Sequence[Asset], currency: str = DEFAULT_CURRENCY
    ) -> Optional[list[Ticker]]:
        if not assets:
            return None
        body = {
            "currency": currency,
            "tokens": [{"contract": a.id, "symbol": a.symbol} for a in assets],
        }
        reply = await self._request("POST", f"{self.api_url}/prices", payload=body)
        if not isinstance(reply, dict):
            return None
        entries = reply.get("response") or []
        reply_currency = str(reply.get("currency") or currency)
        tickers: list[Ticker] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            contract = normalize_asset_id(entry.get("contract") or entry.get("id") or "")
            price = entry.get("price")
            if not contract or price is None:
                continue
            change = entry.get("percent_change_24h")
            tickers.append(
                Ticker(
                    asset_id=contract,
                    price=str(price),
                    currency=reply_currency,
                    percent_change=str(change) if change is not None else None,
                )
            )
        return tickers or None

    async def discover_assets(self, address: str) -> Optional[list[AssetRef]]:
        reply = await self._request("GET", f"{self.api_url}/tokens", params={"address": address})
        if not isinstance(reply, dict):
            return None
        refs: list[AssetRef] = []
        for entry in reply.get("docs") or []:
            if not isinstance(entry, dict):
                continue
            contract = entry.get("contract")
            info = contract if isinstance(contract, dict) else entry
            address_value = info.get("address") or info.get("contract")
            if not address_value or not isinstance(address_value, str):
                continue
            try:
                decimals = int(info.get("decimals") or 0)
            except (TypeError, ValueError):
                decimals = 0
            refs.append(
                AssetRef(
                    contract=address_value,
                    name=str(info.get("name") or ""),
                    symbol=str(info.get("symbol") or ""),
                    decimals=decimals,
                )
            )
        return refs or None


__all__ = [
    "BALANCE_OF_SELECTOR",
    "TokensNetwork",
    "TrustTokensNetwork",
    "encode_balance_of",
]
