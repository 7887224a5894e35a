from __future__ import annotations

"""Container holding the latest known price ticker per asset."""

import logging
import threading
from typing import Iterable, Optional

from .models import Ticker, normalize_asset_id
from .observers import ChangeNotifier, StoreChange

logger = logging.getLogger("tokensync.tickers")


class PriceTickerRepository(ChangeNotifier):
    """In-memory ticker set that is only ever replaced as a whole."""

    def __init__(self, tickers: Iterable[Ticker] | None = None) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._tickers: dict[str, Ticker] = self._index(tickers or [])

    @staticmethod
    def _index(tickers: Iterable[Ticker]) -> dict[str, Ticker]:
        indexed: dict[str, Ticker] = {}
        for ticker in tickers:
            asset_id = normalize_asset_id(ticker.asset_id)
            if not asset_id:
                continue
            indexed[asset_id] = ticker
        return indexed

    def get(self, asset_id: str) -> Optional[Ticker]:
        with self._lock:
            return self._tickers.get(normalize_asset_id(asset_id))

    def tickers(self) -> list[Ticker]:
        with self._lock:
            return list(self._tickers.values())

    def replace_all(self, tickers: Iterable[Ticker]) -> int:
        indexed = self._index(tickers)
        with self._lock:
            self._tickers = indexed
        logger.debug("Ticker set replaced: %s entries", len(indexed))
        self._notify(StoreChange.TICKERS)
        return len(indexed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tickers)

    def __contains__(self, asset_id: object) -> bool:
        if not isinstance(asset_id, str):
            return False
        with self._lock:
            return normalize_asset_id(asset_id) in self._tickers
