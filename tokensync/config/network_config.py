from __future__ import annotations

"""Configuration loader for network endpoints and sync pacing."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tokensync.data.tokens.constants import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_TIMEOUT,
)

_CONFIG_ENV_VAR = "TOKENSYNC_NETWORK_CONFIG"
_DEFAULT_FILE_NAME = "network.ini"
_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


@dataclass(slots=True)
class NetworkConfig:
    rpc_url: Optional[str] = None
    api_url: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY


def _parse_config(parser: configparser.ConfigParser, path: Path) -> NetworkConfig:
    if "network" not in parser:
        raise ValueError(f"network config missing [network] section in {path}")
    section = parser["network"]
    rpc_url = section.get("rpc_url", fallback="").strip() or os.environ.get("TOKENSYNC_RPC_URL")
    api_url = section.get("api_url", fallback="").strip() or os.environ.get("TOKENSYNC_API_URL")
    timeout = section.getfloat("timeout", fallback=DEFAULT_TIMEOUT)
    max_retries = section.getint("max_retries", fallback=DEFAULT_MAX_RETRIES)
    refresh_interval = section.getfloat("refresh_interval", fallback=DEFAULT_REFRESH_INTERVAL)
    max_concurrency = section.getint("max_concurrency", fallback=DEFAULT_MAX_CONCURRENCY)
    return NetworkConfig(
        rpc_url=rpc_url or None,
        api_url=api_url or None,
        timeout=max(0.5, timeout),
        max_retries=max(0, max_retries),
        refresh_interval=max(1.0, refresh_interval),
        max_concurrency=max(1, max_concurrency),
    )


def resolve_network_config_path(path: str | os.PathLike[str] | None = None) -> Path:
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


def load_network_config(path: str | os.PathLike[str] | None = None) -> NetworkConfig:
    config_path = resolve_network_config_path(path)
    parser = configparser.ConfigParser()
    read_files = parser.read(config_path)
    if not read_files:
        raise FileNotFoundError(f"network config not found at {config_path}")
    return _parse_config(parser, config_path)


def maybe_load_network_config(
    path: str | os.PathLike[str] | None = None,
    *,
    strict: bool = False,
) -> Optional[NetworkConfig]:
    try:
        return load_network_config(path)
    except (FileNotFoundError, ValueError):
        if strict:
            raise
        return None
