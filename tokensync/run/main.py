from __future__ import annotations

"""Main entry point: keep the wallet's token list in sync and log the header balance."""

import asyncio
import logging
import sys
import threading
import time
from datetime import datetime, timedelta
from pathlib import Path

# allow running as a script (e.g. F5 in IDE) without manual PYTHONPATH tweaks
if __package__ is None or __package__ == "":
    current_file = Path(__file__).resolve()
    project_root = current_file.parents[2]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

from tokensync.config import (  # noqa: E402  pylint: disable=wrong-import-position
    WalletConfig,
    maybe_load_network_config,
    maybe_load_wallet_config,
    resolve_wallet_config_path,
)
from tokensync.data.tokens import (  # noqa: E402  pylint: disable=wrong-import-position
    TokensDataStore,
    TokensSyncCoordinator,
)
from tokensync.view import CurrencyFormatter, TokensViewModel  # noqa: E402  pylint: disable=wrong-import-position

logger = logging.getLogger("tokensync")

_PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _configure_logging(log_file: Path) -> None:
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root.addHandler(stream_handler)
    root.addHandler(file_handler)


def _setup_logging() -> tuple[Path, datetime]:
    log_dir = _PROJECT_ROOT / "log"
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"tokensync_{timestamp}.log"
    _configure_logging(log_file)
    return log_file, datetime.now()


def _maybe_rotate_logs(
    current_file: Path,
    start_time: datetime,
    rotation_hours: int = 6,
) -> tuple[Path, datetime]:
    if datetime.now() - start_time < timedelta(hours=rotation_hours):
        return current_file, start_time
    return _setup_logging()


def _require_wallet_config() -> WalletConfig:
    config = maybe_load_wallet_config()
    if config is None:
        default_path = resolve_wallet_config_path()
        raise FileNotFoundError(
            f"wallet.ini not found. Create {default_path} with a [wallet] section "
            f"containing at least `address = 0x...` (see {default_path.parent / 'sampleWallet.ini'})."
        )
    logger.info(
        "Loaded wallet config: address=%s server=%s currency=%s",
        config.address,
        config.server,
        config.currency,
    )
    return config


def _log_tokens(view_model: TokensViewModel) -> None:
    logger.info("%s: %s", view_model.title, view_model.header_balance)
    if not view_model.has_content:
        logger.info(view_model.footer_title)
        return
    for index in range(view_model.count()):
        cell = view_model.cell_view_model(index)
        logger.info(
            "  %s %s %s price=%s change=%s",
            cell.symbol or cell.name,
            cell.amount,
            cell.fiat_value or "-",
            cell.price or "-",
            cell.percent_change or "-",
        )


def _flush_changes(
    changed: threading.Event,
    view_model: TokensViewModel,
    store: TokensDataStore,
    store_file: Path,
) -> bool:
    """Log and persist the store if anything changed since the last call."""
    if not changed.is_set():
        return False
    # cleared before flushing; changes during the flush stay pending
    changed.clear()
    _log_tokens(view_model)
    try:
        store.save(store_file)
    except OSError as exc:
        logger.warning("Failed to persist token store to %s: %s", store_file, exc)
    return True


def main() -> None:
    log_file, log_started = _setup_logging()
    logger.info("Logging to %s", log_file)
    wallet = _require_wallet_config()
    network_config = maybe_load_network_config()
    store_file = _PROJECT_ROOT / "data" / f"tokens_{wallet.address.lower()}.json"
    store = TokensDataStore.load(store_file, native=wallet.native_asset())
    coordinator = TokensSyncCoordinator(
        store=store,
        address=wallet.address,
        currency=wallet.currency,
        network_config=network_config,
    )
    view_model = TokensViewModel(
        store=store,
        formatter=CurrencyFormatter(wallet.currency),
        coordinator=coordinator,
    )
    changed = threading.Event()
    view_model.subscribe(lambda change: changed.set())

    try:
        asyncio.run(coordinator.initial_sync())
    except Exception as exc:  # noqa: BLE001
        logger.exception("Initial token sync failed: %s", exc)
    _log_tokens(view_model)

    logger.info("Starting token sync loop every %ss", coordinator.refresh_interval)
    coordinator.start()
    try:
        while True:
            time.sleep(coordinator.refresh_interval)
            _flush_changes(changed, view_model, store, store_file)
            new_log_file, new_start = _maybe_rotate_logs(log_file, log_started)
            if new_log_file != log_file:
                logger.info("Rotated log file to %s", new_log_file)
            log_file, log_started = new_log_file, new_start
    except KeyboardInterrupt:
        logger.info("Received interrupt, stopping token sync")
    finally:
        coordinator.stop()
        view_model.unsubscribe()
        store.save(store_file)


if __name__ == "__main__":
    main()
