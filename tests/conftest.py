"""Shared fixtures for the tokensync test-suite."""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import pytest

from tokensync.data.tokens import Asset, AssetRef, Ticker, TokensDataStore
from tokensync.data.tokens.constants import NATIVE_CONTRACT
from tokensync.network.errors import TransportError
from tokensync.network.tokens_api import TokensNetwork

WALLET = "0x00000000000000000000000000000000000000aa"
TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x2222222222222222222222222222222222222222"


class FakeTokensNetwork(TokensNetwork):
    """In-memory network double; ``None`` entries mean "no observable value"."""

    def __init__(
        self,
        *,
        native: Optional[int] = None,
        balances: Optional[dict[str, int]] = None,
        tickers: Optional[list[Ticker]] = None,
        discovered: Optional[list[AssetRef]] = None,
        failing: Sequence[str] = (),
        delays: Optional[dict[str, float]] = None,
    ) -> None:
        self.native = native
        self.balances = dict(balances or {})
        self.tickers = tickers
        self.discovered = discovered
        self.failing = set(failing)
        self.delays = dict(delays or {})
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self, key: str) -> None:
        self.calls.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
        finally:
            self.in_flight -= 1
        if key in self.failing:
            raise TransportError(503, f"{key} unavailable")

    async def fetch_native_balance(self, address: str) -> Optional[int]:
        await self._enter("native")
        return self.native

    async def fetch_asset_balance(self, address: str, asset: Asset) -> tuple[Asset, Optional[int]]:
        await self._enter(asset.id)
        return asset, self.balances.get(asset.id)

    async def fetch_tickers(self, assets: Sequence[Asset], currency: str) -> Optional[list[Ticker]]:
        await self._enter("tickers")
        return self.tickers

    async def discover_assets(self, address: str) -> Optional[list[AssetRef]]:
        await self._enter("discover")
        return self.discovered


@pytest.fixture
def native_asset() -> Asset:
    return Asset(id=NATIVE_CONTRACT, name="Ethereum", symbol="ETH", decimals=18, is_native=True)


@pytest.fixture
def token_a() -> Asset:
    return Asset(id=TOKEN_A, name="Token A", symbol="TKA", decimals=0)


@pytest.fixture
def token_b() -> Asset:
    return Asset(id=TOKEN_B, name="Token B", symbol="TKB", decimals=0, is_custom=True)


@pytest.fixture
def store(native_asset: Asset, token_a: Asset, token_b: Asset) -> TokensDataStore:
    return TokensDataStore(native=native_asset, assets=[token_a, token_b])
