from __future__ import annotations

"""Coordinator that refreshes balances, tickers and discovered assets for one address."""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, TypeVar

from tokensync.network.errors import EmptyResult, StaleRequest, TransportError

from .balances import BalanceFetcher
from .constants import (
    DEFAULT_CURRENCY,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_REFRESH_INTERVAL,
)
from .models import Asset, TokenAction
from .store import TokensDataStore

if TYPE_CHECKING:  # pragma: no cover - typing only
    from tokensync.config.network_config import NetworkConfig
    from tokensync.network.tokens_api import TokensNetwork

logger = logging.getLogger("tokensync.sync")

T = TypeVar("T")


def _maybe_load_network_config() -> Optional["NetworkConfig"]:
    from tokensync.config.network_config import maybe_load_network_config

    return maybe_load_network_config()


@dataclass(slots=True)
class SyncReport:
    """What a full sync cycle managed to apply."""

    tickers: bool = False
    native_balance: bool = False
    asset_balances: int = 0
    discovered: int = 0


class SyncToken:
    """Cancellation token shared by the operations of one sync request."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self) -> None:
        if self._cancelled.is_set():
            raise StaleRequest("sync request was cancelled")


class TokensSyncCoordinator:
    """Fetch balances and tickers for tracked assets and merge them into the store.

    Every operation fails soft: network and parse errors are logged and the
    store keeps its previous state. Nothing is retried here; callers decide
    when to trigger ``fetch`` again.
    """

    def __init__(
        self,
        *,
        store: TokensDataStore,
        address: str,
        network: Optional["TokensNetwork"] = None,
        fetcher: Optional[BalanceFetcher] = None,
        currency: str = DEFAULT_CURRENCY,
        refresh_interval: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        network_config: Optional["NetworkConfig"] = None,
    ) -> None:
        if not address:
            raise ValueError("wallet address is required")
        config = network_config
        if config is None and (network is None or refresh_interval is None or max_concurrency is None):
            config = _maybe_load_network_config()
        if network is None:
            from tokensync.network.tokens_api import TrustTokensNetwork

            network = (
                TrustTokensNetwork(
                    rpc_url=config.rpc_url,
                    api_url=config.api_url,
                    timeout=config.timeout,
                    max_retries=config.max_retries,
                )
                if config
                else TrustTokensNetwork()
            )
        self._store = store
        self._address = address
        self._network = network
        self._fetcher = fetcher or BalanceFetcher(network)
        self._currency = currency
        self.refresh_interval = (
            refresh_interval
            if refresh_interval is not None
            else (config.refresh_interval if config else None)
        ) or DEFAULT_REFRESH_INTERVAL
        self._max_concurrency = max(
            1,
            (
                max_concurrency
                if max_concurrency is not None
                else (config.max_concurrency if config else None)
            )
            or DEFAULT_MAX_CONCURRENCY,
        )

        self._tokens_lock = threading.Lock()
        self._live_tokens: dict[SyncToken, int] = {}
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    @property
    def store(self) -> TokensDataStore:
        return self._store

    @property
    def address(self) -> str:
        return self._address

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    # -------- Cancellation --------
    def cancel(self) -> None:
        """Cancel every in-flight request; their late results are dropped."""
        with self._tokens_lock:
            tokens = list(self._live_tokens)
        for token in tokens:
            token.cancel()
        if tokens:
            logger.debug("Cancelled %s in-flight sync request(s)", len(tokens))

    async def _soft(
        self,
        name: str,
        operation: Callable[[SyncToken], Awaitable[T]],
        token: Optional[SyncToken],
    ) -> Optional[T]:
        token = token or SyncToken()
        with self._tokens_lock:
            self._live_tokens[token] = self._live_tokens.get(token, 0) + 1
        try:
            token.check()
            return await operation(token)
        except StaleRequest as exc:
            logger.debug("Dropped %s result: %s", name, exc)
        except EmptyResult as exc:
            logger.debug("No %s to apply: %s", name, exc)
        except TransportError as exc:
            logger.warning("%s sync failed: %s", name, exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s sync failed unexpectedly: %s", name, exc)
        finally:
            with self._tokens_lock:
                remaining = self._live_tokens.pop(token, 1) - 1
                if remaining > 0:
                    self._live_tokens[token] = remaining
        return None

    # -------- Operations --------
    async def sync_tickers(self, token: Optional[SyncToken] = None) -> bool:
        return bool(await self._soft("tickers", self._sync_tickers, token))

    async def _sync_tickers(self, token: SyncToken) -> bool:
        enabled = self._store.enabled_objects()
        if not enabled:
            raise EmptyResult("no enabled assets to price")
        tickers = await self._network.fetch_tickers(enabled, self._currency)
        token.check()
        if not tickers:
            raise EmptyResult("ticker response was empty")
        count = self._store.tickers.replace_all(tickers)
        logger.debug("Tickers updated: %s", count)
        return True

    async def sync_native_balance(self, token: Optional[SyncToken] = None) -> bool:
        return bool(await self._soft("native balance", self._sync_native_balance, token))

    async def _sync_native_balance(self, token: SyncToken) -> bool:
        native = self._store.native()
        if native is None:
            raise EmptyResult("no native asset tracked")
        balance = await self._fetcher.fetch_native_balance(self._address, native.id)
        token.check()
        if balance is None:
            raise EmptyResult(f"no native balance for {self._address}")
        return self._store.update(native.id, TokenAction.update_value(balance))

    async def sync_asset_balances(self, token: Optional[SyncToken] = None) -> int:
        return await self._soft("asset balances", self._sync_asset_balances, token) or 0

    async def _sync_asset_balances(self, token: SyncToken) -> int:
        assets = [asset for asset in self._store.enabled_objects() if not asset.is_native]
        if not assets:
            return 0
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _apply(asset: Asset) -> bool:
            async with semaphore:
                try:
                    paired, balance = await self._fetcher.fetch_asset_balance(
                        self._address, asset
                    )
                    token.check()
                except StaleRequest:
                    logger.debug("Dropped stale balance for %s", asset.id)
                    return False
                except TransportError as exc:
                    logger.warning("Balance fetch failed for %s: %s", asset.symbol or asset.id, exc)
                    return False
                except Exception as exc:  # noqa: BLE001
                    logger.exception("Balance fetch failed for %s: %s", asset.id, exc)
                    return False
            if balance is None:
                return False
            return self._store.update(paired.id, TokenAction.update_value(balance))

        results = await asyncio.gather(*(_apply(asset) for asset in assets))
        updated = sum(1 for applied in results if applied)
        logger.debug("Asset balances updated: %s/%s", updated, len(assets))
        return updated

    async def discover_assets(self, token: Optional[SyncToken] = None) -> int:
        return await self._soft("asset discovery", self._discover_assets, token) or 0

    async def _discover_assets(self, token: SyncToken) -> int:
        refs = await self._network.discover_assets(self._address)
        token.check()
        if not refs:
            raise EmptyResult(f"no assets discovered for {self._address}")
        added = self._store.upsert_discovered(refs)
        if added:
            logger.info("Discovered %s new asset(s): %s", len(added), ", ".join(a.symbol or a.id for a in added))
        return len(added)

    async def fetch(self, token: Optional[SyncToken] = None) -> SyncReport:
        token = token or SyncToken()
        tickers, native, balances, discovered = await asyncio.gather(
            self.sync_tickers(token),
            self.sync_native_balance(token),
            self.sync_asset_balances(token),
            self.discover_assets(token),
        )
        report = SyncReport(
            tickers=tickers,
            native_balance=native,
            asset_balances=balances,
            discovered=discovered,
        )
        logger.info(
            "Token sync finished: tickers=%s native=%s balances=%s discovered=%s",
            report.tickers,
            report.native_balance,
            report.asset_balances,
            report.discovered,
        )
        return report

    async def initial_sync(self, token: Optional[SyncToken] = None) -> SyncReport:
        """Refresh balances and tickers without running discovery."""
        token = token or SyncToken()
        native, balances, tickers = await asyncio.gather(
            self.sync_native_balance(token),
            self.sync_asset_balances(token),
            self.sync_tickers(token),
        )
        return SyncReport(tickers=tickers, native_balance=native, asset_balances=balances)

    # -------- Periodic refresh --------
    def start(self) -> None:
        thread = self._thread
        if thread and thread.is_alive():
            if self._stop_event is not None and not self._stop_event.is_set():
                return
            # a stopped thread may still be finishing its last cycle
            thread.join(timeout=self.refresh_interval * 2)
            if thread.is_alive():
                logger.warning("Previous token sync thread is still stopping; not starting a new one")
                return
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run,
            args=(stop_event,),
            name="TokensSyncCoordinator",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        self.cancel()
        thread = self._thread
        if thread and thread.is_alive():
            thread.join(timeout=self.refresh_interval * 2)
        if thread is not None and not thread.is_alive():
            self._thread = None

    def _run(self, stop_event: threading.Event) -> None:
        logger.info(
            "Starting token sync thread: interval=%ss address=%s concurrency=%s",
            self.refresh_interval,
            self._address,
            self._max_concurrency,
        )
        loop = asyncio.new_event_loop()
        try:
            while not stop_event.is_set():
                start = time.perf_counter()
                try:
                    loop.run_until_complete(self.fetch())
                except Exception as exc:  # noqa: BLE001
                    logger.exception("Token sync cycle failed: %s", exc)
                elapsed = time.perf_counter() - start
                wait_time = max(0.0, self.refresh_interval - elapsed)
                if stop_event.wait(wait_time):
                    break
        finally:
            loop.close()
        logger.info("Token sync thread stopped")

    def __enter__(self) -> "TokensSyncCoordinator":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001, D401
        self.stop()


__all__ = ["SyncReport", "SyncToken", "TokensSyncCoordinator"]

