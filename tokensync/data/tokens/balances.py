from __future__ import annotations

"""Balance lookups for the native asset and tracked tokens."""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from .constants import NATIVE_CONTRACT
from .models import Asset, Balance

if TYPE_CHECKING:  # pragma: no cover - typing only
    from tokensync.network.tokens_api import TokensNetwork

logger = logging.getLogger("tokensync.balances")


class BalanceFetcher:
    """Turn raw network quantities into timestamped ``Balance`` records.

    Transport failures propagate as ``TransportError``; an address without an
    observable balance yields ``None``.
    """

    def __init__(self, network: "TokensNetwork") -> None:
        self._network = network

    async def fetch_native_balance(
        self, address: str, asset_id: str = NATIVE_CONTRACT
    ) -> Optional[Balance]:
        raw = await self._network.fetch_native_balance(address)
        if raw is None:
            logger.debug("No native balance observable for %s", address)
            return None
        return Balance(asset_id=asset_id, value=raw, updated_at=datetime.now(timezone.utc))

    async def fetch_asset_balance(
        self, address: str, asset: Asset
    ) -> tuple[Asset, Optional[Balance]]:
        paired_asset, raw = await self._network.fetch_asset_balance(address, asset)
        if raw is None:
            return paired_asset, None
        balance = Balance(
            asset_id=paired_asset.id,
            value=raw,
            updated_at=datetime.now(timezone.utc),
        )
        return paired_asset, balance
