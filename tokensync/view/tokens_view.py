from __future__ import annotations

"""Read-only view model over the token store for list-style consumers."""

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import TYPE_CHECKING, Optional

from tokensync.data.tokens.constants import EMPTY_BALANCE_TEXT
from tokensync.data.tokens.models import TokenItem
from tokensync.data.tokens.observers import ChangeCallback, Subscription
from tokensync.data.tokens.store import TokensDataStore

from .formatting import CurrencyFormatter

if TYPE_CHECKING:  # pragma: no cover - typing only
    from tokensync.data.tokens.sync import SyncReport, TokensSyncCoordinator

logger = logging.getLogger("tokensync.view")


def _digits(value: Decimal) -> int:
    return len(value.as_tuple().digits)


@dataclass(slots=True, frozen=True)
class TokenCellViewModel:
    """Display strings for a single row of the token list."""

    asset_id: str
    name: str
    symbol: str
    amount: str
    fiat_value: str
    price: str
    percent_change: str
    is_editable: bool


class TokensViewModel:
    """Aggregate valuation, row access and change notification for the token list."""

    title = "Tokens"
    footer_title = "Tokens will appear automagically. Tap + to add manually."

    def __init__(
        self,
        *,
        store: TokensDataStore,
        formatter: Optional[CurrencyFormatter] = None,
        coordinator: Optional["TokensSyncCoordinator"] = None,
    ) -> None:
        self._store = store
        self._formatter = formatter or CurrencyFormatter()
        self._coordinator = coordinator
        self._subscription: Optional[Subscription] = None

    @property
    def has_content(self) -> bool:
        return bool(self._store.tokens())

    # -------- Valuation --------
    def _value_for(self, item: TokenItem) -> Decimal:
        if item.balance is None:
            return Decimal(0)
        ticker = self._store.coin_ticker(item.asset.id)
        if ticker is None:
            return Decimal(0)
        amount = item.balance.as_decimal(item.asset.decimals)
        price = ticker.price_decimal()
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, _digits(amount) + _digits(price))
            return amount * price

    def aggregate_value(self) -> Decimal | str:
        """Sum of balance * price over priced assets, or ``"--"`` when it is zero."""
        values = [value for value in map(self._value_for, self._store.tokens()) if value]
        if not values:
            return EMPTY_BALANCE_TEXT
        highest = max(value.adjusted() for value in values)
        lowest = min(value.as_tuple().exponent for value in values)
        with localcontext() as ctx:
            # room for every column the addends span plus carries
            ctx.prec = max(ctx.prec, highest - lowest + len(values) + 1)
            total = sum(values, Decimal(0))
        if total == 0:
            return EMPTY_BALANCE_TEXT
        return total

    @property
    def header_balance(self) -> str:
        total = self.aggregate_value()
        if isinstance(total, str):
            return total
        return self._formatter.format_fiat(total)

    # -------- Observation --------
    def subscribe(self, on_change: ChangeCallback) -> Subscription:
        if self._subscription is not None:
            self._subscription.cancel()
        self._subscription = self._store.subscribe(on_change)
        return self._subscription

    def unsubscribe(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()

    # -------- Rows --------
    def count(self) -> int:
        return len(self._store.tokens())

    def item_at(self, index: int) -> TokenItem:
        items = self._store.tokens()
        if index < 0 or index >= len(items):
            raise IndexError(f"token index {index} out of range (count={len(items)})")
        return items[index]

    def is_editable(self, index: int) -> bool:
        return self.item_at(index).asset.is_custom

    def cell_view_model(self, index: int) -> TokenCellViewModel:
        item = self.item_at(index)
        asset = item.asset
        ticker = self._store.coin_ticker(asset.id)
        value = self._value_for(item)
        return TokenCellViewModel(
            asset_id=asset.id,
            name=asset.name,
            symbol=asset.symbol,
            amount=self._formatter.format_amount(item.value, asset.decimals),
            fiat_value=self._formatter.format_fiat(value) if ticker is not None else "",
            price=self._formatter.format_price(ticker.price) if ticker is not None else "",
            percent_change=(
                self._formatter.format_percent(ticker.percent_change) if ticker is not None else ""
            ),
            is_editable=asset.is_custom,
        )

    # -------- Refresh --------
    async def fetch(self) -> Optional["SyncReport"]:
        if self._coordinator is None:
            logger.debug("fetch requested without a sync coordinator")
            return None
        return await self._coordinator.fetch()
