from __future__ import annotations

"""Configuration loader for the tracked wallet address and its native asset."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tokensync.data.tokens.constants import (
    DEFAULT_CURRENCY,
    DEFAULT_NATIVE_DECIMALS,
    DEFAULT_NATIVE_SYMBOL,
    DEFAULT_SERVER_NAME,
    NATIVE_CONTRACT,
)
from tokensync.data.tokens.models import Asset

_CONFIG_ENV_VAR = "TOKENSYNC_WALLET_CONFIG"
_DEFAULT_FILE_NAME = "wallet.ini"
_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


@dataclass(slots=True)
class WalletConfig:
    """Wallet address plus the chain's native asset description."""

    address: str
    server: str = DEFAULT_SERVER_NAME
    symbol: str = DEFAULT_NATIVE_SYMBOL
    decimals: int = DEFAULT_NATIVE_DECIMALS
    currency: str = DEFAULT_CURRENCY

    def native_asset(self) -> Asset:
        return Asset(
            id=NATIVE_CONTRACT,
            name=self.server,
            symbol=self.symbol,
            decimals=self.decimals,
            is_native=True,
        )


def resolve_wallet_config_path(path: str | os.PathLike[str] | None = None) -> Path:
    candidates: list[Path] = []
    if path:
        candidates.append(Path(path).expanduser())
    env_path = os.environ.get(_CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser())
    candidates.append(_CONFIG_DIR / _DEFAULT_FILE_NAME)
    candidates.append(Path(_DEFAULT_FILE_NAME))
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def load_wallet_config(path: str | os.PathLike[str] | None = None) -> WalletConfig:
    config_path = resolve_wallet_config_path(path)
    parser = configparser.ConfigParser()
    read_files = parser.read(config_path)
    if not read_files:
        raise FileNotFoundError(f"wallet config not found at {config_path}")
    if "wallet" not in parser:
        raise ValueError(f"wallet config missing [wallet] section in {config_path}")
    section = parser["wallet"]
    address = section.get("address", fallback="").strip()
    if not address:
        raise ValueError("address missing in wallet.ini")
    decimals = section.getint("decimals", fallback=DEFAULT_NATIVE_DECIMALS)
    if decimals < 0:
        raise ValueError("decimals must not be negative")
    return WalletConfig(
        address=address,
        server=section.get("server", fallback=DEFAULT_SERVER_NAME).strip() or DEFAULT_SERVER_NAME,
        symbol=section.get("symbol", fallback=DEFAULT_NATIVE_SYMBOL).strip() or DEFAULT_NATIVE_SYMBOL,
        decimals=decimals,
        currency=(section.get("currency", fallback=DEFAULT_CURRENCY).strip() or DEFAULT_CURRENCY).upper(),
    )


def maybe_load_wallet_config(
    path: str | os.PathLike[str] | None = None,
    *,
    strict: bool = False,
) -> Optional[WalletConfig]:
    try:
        return load_wallet_config(path)
    except (FileNotFoundError, ValueError, KeyError):
        if strict:
            raise
        return None
