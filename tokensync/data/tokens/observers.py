from __future__ import annotations

"""Change-notification plumbing shared by the token store and ticker repository."""

import logging
import threading
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger("tokensync.observers")


class StoreChange(str, Enum):
    ASSETS = "assets"
    BALANCES = "balances"
    TICKERS = "tickers"


ChangeCallback = Callable[[StoreChange], None]


class Subscription:
    """Handle returned by ``subscribe``; cancelling it stops further delivery."""

    def __init__(self, notifier: "ChangeNotifier", callback: ChangeCallback) -> None:
        self._notifier: Optional[ChangeNotifier] = notifier
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._notifier is not None

    def cancel(self) -> None:
        notifier, self._notifier = self._notifier, None
        if notifier is not None:
            notifier._remove(self)

    def _deliver(self, change: StoreChange) -> None:
        if self._notifier is None:
            return
        self._callback(change)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.cancel()


class ChangeNotifier:
    def __init__(self) -> None:
        self._subscribers_lock = threading.Lock()
        self._subscribers: list[Subscription] = []

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        subscription = Subscription(self, callback)
        with self._subscribers_lock:
            self._subscribers.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._subscribers_lock:
            try:
                self._subscribers.remove(subscription)
            except ValueError:
                pass

    def _notify(self, change: StoreChange) -> None:
        # Called outside of any data lock so callbacks may read back freely.
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            try:
                subscription._deliver(change)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Change listener failed for %s: %s", change.value, exc)
