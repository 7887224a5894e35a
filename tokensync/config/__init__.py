"""Configuration utilities for tokensync."""

from .network_config import (
    NetworkConfig,
    load_network_config,
    maybe_load_network_config,
    resolve_network_config_path,
)
from .wallet_config import (
    WalletConfig,
    load_wallet_config,
    maybe_load_wallet_config,
    resolve_wallet_config_path,
)

__all__ = [
    "NetworkConfig",
    "WalletConfig",
    "load_network_config",
    "maybe_load_network_config",
    "resolve_network_config_path",
    "load_wallet_config",
    "maybe_load_wallet_config",
    "resolve_wallet_config_path",
]
