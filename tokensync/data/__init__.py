"""Data utilities package."""

from .tokens import (
    DEFAULT_REFRESH_INTERVAL,
    TokensDataStore,
    TokensSyncCoordinator,
)

__all__ = [
    "DEFAULT_REFRESH_INTERVAL",
    "TokensDataStore",
    "TokensSyncCoordinator",
]
