from __future__ import annotations

"""Local store of tracked assets, their balances and the ticker set."""

import json
import logging
import os
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from .models import (
    Asset,
    AssetRef,
    Balance,
    Ticker,
    TokenAction,
    TokenActionKind,
    TokenItem,
    normalize_asset_id,
)
from .observers import ChangeNotifier, StoreChange, Subscription
from .tickers import PriceTickerRepository

logger = logging.getLogger("tokensync.store")


class TokensDataStore(ChangeNotifier):
    """In-memory store keyed by asset identity, preserving insertion order.

    Every mutation is a short locked transaction; subscribers are notified after
    the lock is released.
    """

    def __init__(
        self,
        *,
        native: Optional[Asset] = None,
        assets: Iterable[Asset] | None = None,
        tickers: Optional[PriceTickerRepository] = None,
    ) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._assets: dict[str, Asset] = {}
        self._balances: dict[str, Balance] = {}
        if native is not None:
            native = Asset(
                id=normalize_asset_id(native.id),
                name=native.name,
                symbol=native.symbol,
                decimals=native.decimals,
                is_custom=False,
                is_disabled=native.is_disabled,
                is_native=True,
            )
            self._assets[native.id] = native
        for asset in assets or []:
            asset_id = normalize_asset_id(asset.id)
            if asset_id and asset_id not in self._assets:
                # only ``native`` may carry the native flag
                self._assets[asset_id] = replace(asset, id=asset_id, is_native=False)
        self.tickers = tickers or PriceTickerRepository()
        self._ticker_subscription: Subscription = self.tickers.subscribe(self._notify)

    # ---- reads ----
    def objects(self) -> list[Asset]:
        with self._lock:
            return list(self._assets.values())

    def enabled_objects(self) -> list[Asset]:
        with self._lock:
            return [asset for asset in self._assets.values() if asset.is_enabled]

    def tokens(self) -> list[TokenItem]:
        with self._lock:
            return [
                TokenItem(asset=asset, balance=self._balances.get(asset.id))
                for asset in self._assets.values()
                if asset.is_enabled
            ]

    def get(self, asset_id: str) -> Optional[Asset]:
        with self._lock:
            return self._assets.get(normalize_asset_id(asset_id))

    def balance(self, asset_id: str) -> Optional[Balance]:
        with self._lock:
            return self._balances.get(normalize_asset_id(asset_id))

    def native(self) -> Optional[Asset]:
        with self._lock:
            return next((a for a in self._assets.values() if a.is_native), None)

    def coin_ticker(self, asset_id: str) -> Optional[Ticker]:
        return self.tickers.get(asset_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._assets)

    # ---- writes ----
    def update(self, asset_id: str, action: TokenAction) -> bool:
        """Apply ``action`` to a single asset. Unknown ids are ignored."""
        key = normalize_asset_id(asset_id)
        with self._lock:
            asset = self._assets.get(key)
            if asset is None:
                change = None
            elif action.kind is TokenActionKind.UPDATE_VALUE:
                fetched = action.value if isinstance(action.value, Balance) else None
                self._balances[key] = Balance(
                    asset_id=key,
                    value=fetched.value if fetched is not None else int(action.value),
                    updated_at=fetched.updated_at if fetched is not None else datetime.now(timezone.utc),
                )
                change = StoreChange.BALANCES
            elif action.kind is TokenActionKind.DISABLE:
                self._assets[key] = asset.with_disabled(bool(action.value))
                change = StoreChange.ASSETS
            else:
                raise ValueError(f"unsupported token action: {action.kind}")
        if change is None:
            logger.debug("Ignoring %s for unknown asset %s", action.kind.value, key)
            return False
        self._notify(change)
        return True

    def add_custom(self, asset: Asset) -> Asset:
        key = normalize_asset_id(asset.id)
        if not key:
            raise ValueError("asset id must not be empty")
        custom = Asset(
            id=key,
            name=asset.name,
            symbol=asset.symbol,
            decimals=asset.decimals,
            is_custom=True,
            is_disabled=asset.is_disabled,
        )
        with self._lock:
            existing = self._assets.get(key)
            if existing is not None and existing.is_native:
                raise ValueError("the native asset cannot be replaced")
            self._assets[key] = custom
        logger.info("Custom asset added: %s (%s)", custom.symbol, key)
        self._notify(StoreChange.ASSETS)
        return custom

    def remove(self, asset_id: str) -> None:
        key = normalize_asset_id(asset_id)
        with self._lock:
            asset = self._assets.get(key)
            if asset is None:
                raise KeyError(key)
            if not asset.is_custom:
                raise ValueError(f"asset {key} is not custom and cannot be removed")
            del self._assets[key]
            self._balances.pop(key, None)
        logger.info("Custom asset removed: %s", key)
        self._notify(StoreChange.ASSETS)

    def upsert_discovered(self, refs: Iterable[AssetRef]) -> list[Asset]:
        """Create assets that are absent; existing ones are left untouched."""
        added: list[Asset] = []
        with self._lock:
            for ref in refs:
                asset = ref.to_asset()
                if not asset.id or asset.id in self._assets:
                    continue
                self._assets[asset.id] = asset
                added.append(asset)
        if added:
            logger.debug("Discovered assets added: %s", [a.id for a in added])
            self._notify(StoreChange.ASSETS)
        return added

    # ---- persistence ----
    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            assets = [asset.to_dict() for asset in self._assets.values()]
            balances = {
                key: {"value": str(bal.value), "updated_at": bal.updated_at.isoformat()}
                for key, bal in self._balances.items()
            }
        tickers = [
            {
                "asset_id": t.asset_id,
                "price": t.price,
                "currency": t.currency,
                "percent_change": t.percent_change,
            }
            for t in self.tickers.tickers()
        ]
        return {"assets": assets, "balances": balances, "tickers": tickers}

    def save(self, path: str | os.PathLike[str]) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_suffix(target.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2)
        tmp.replace(target)
        return target

    @classmethod
    def load(
        cls,
        path: str | os.PathLike[str],
        *,
        native: Optional[Asset] = None,
    ) -> "TokensDataStore":
        source = Path(path)
        store = cls(native=native)
        if not source.exists():
            return store
        try:
            with source.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to load token store from %s: %s", source, exc)
            return store
        store._restore(payload)
        return store

    def _restore(self, payload: dict[str, Any]) -> None:
        with self._lock:
            for entry in payload.get("assets") or []:
                try:
                    asset = Asset.from_dict(entry)
                except (TypeError, ValueError, AttributeError):
                    logger.debug("Skipping malformed asset entry: %s", entry)
                    continue
                existing = self._assets.get(asset.id)
                if existing is not None and existing.is_native:
                    self._assets[asset.id] = existing.with_disabled(asset.is_disabled)
                    continue
                if asset.is_native and any(a.is_native for a in self._assets.values()):
                    continue
                self._assets[asset.id] = asset
            for key, entry in (payload.get("balances") or {}).items():
                key = normalize_asset_id(key)
                if key not in self._assets:
                    continue
                try:
                    updated_at = datetime.fromisoformat(entry["updated_at"])
                    self._balances[key] = Balance(
                        asset_id=key, value=int(entry["value"]), updated_at=updated_at
                    )
                except (KeyError, TypeError, ValueError):
                    logger.debug("Skipping malformed balance entry for %s", key)
        tickers: list[Ticker] = []
        for entry in payload.get("tickers") or []:
            try:
                tickers.append(
                    Ticker(
                        asset_id=entry["asset_id"],
                        price=str(entry["price"]),
                        currency=str(entry.get("currency") or ""),
                        percent_change=entry.get("percent_change"),
                    )
                )
            except (KeyError, TypeError, AttributeError):
                logger.debug("Skipping malformed ticker entry: %s", entry)
        if tickers:
            self.tickers.replace_all(tickers)
