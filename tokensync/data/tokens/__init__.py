"""Token store, ticker repository and balance/ticker synchronization."""

from .balances import BalanceFetcher
from .constants import (
    DEFAULT_CURRENCY,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_REFRESH_INTERVAL,
    EMPTY_BALANCE_TEXT,
    NATIVE_CONTRACT,
)
from .models import Asset, AssetRef, Balance, Ticker, TokenAction, TokenItem
from .observers import StoreChange, Subscription
from .store import TokensDataStore
from .sync import SyncReport, SyncToken, TokensSyncCoordinator
from .tickers import PriceTickerRepository

__all__ = [
    "DEFAULT_CURRENCY",
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_REFRESH_INTERVAL",
    "EMPTY_BALANCE_TEXT",
    "NATIVE_CONTRACT",
    "Asset",
    "AssetRef",
    "Balance",
    "BalanceFetcher",
    "PriceTickerRepository",
    "StoreChange",
    "Subscription",
    "SyncReport",
    "SyncToken",
    "Ticker",
    "TokenAction",
    "TokenItem",
    "TokensDataStore",
    "TokensSyncCoordinator",
]
