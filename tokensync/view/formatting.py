from __future__ import annotations

"""Currency and token amount formatting injected into the view model."""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional

from tokensync.data.tokens.constants import DEFAULT_CURRENCY

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "RUB": "₽",
}


class CurrencyFormatter:
    """Format fiat values and raw token quantities for display."""

    def __init__(
        self,
        currency: str = DEFAULT_CURRENCY,
        *,
        fraction_digits: int = 2,
        amount_fraction_digits: int = 4,
    ) -> None:
        self.currency = currency.upper()
        self._symbol = _CURRENCY_SYMBOLS.get(self.currency)
        self._fiat_quantum = Decimal(1).scaleb(-fraction_digits)
        self._fraction_digits = fraction_digits
        self._amount_fraction_digits = amount_fraction_digits
        self._amount_quantum = Decimal(1).scaleb(-amount_fraction_digits)

    def format_fiat(self, value: Decimal) -> str:
        # quantize needs every integer digit plus the fraction digits
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, value.adjusted() + self._fraction_digits + 2)
            rounded = value.quantize(self._fiat_quantum, rounding=ROUND_HALF_UP)
            sign = "-" if rounded < 0 else ""
            body = f"{rounded.copy_abs():,.{self._fraction_digits}f}"
        if self._symbol:
            return f"{sign}{self._symbol}{body}"
        return f"{sign}{body} {self.currency}"

    def format_amount(self, raw: int, decimals: int) -> str:
        """Plain decimal string for a raw on-chain quantity, trailing zeros dropped."""
        raw_value = Decimal(raw)
        with localcontext() as ctx:
            ctx.prec = max(
                ctx.prec,
                len(raw_value.as_tuple().digits) + self._amount_fraction_digits + 2,
            )
            value = raw_value.scaleb(-decimals)
            if value == 0:
                return "0"
            truncated = value.quantize(self._amount_quantum, rounding=ROUND_DOWN)
            if truncated == 0:
                # keep dust visible instead of collapsing it to zero
                truncated = value
            return format(truncated.normalize(), "f")

    def format_price(self, price: Optional[str]) -> str:
        if price is None:
            return ""
        try:
            value = Decimal(str(price))
        except (InvalidOperation, ValueError):
            return ""
        if not value.is_finite():
            return ""
        return self.format_fiat(value)

    @staticmethod
    def format_percent(change: Optional[str]) -> str:
        if change is None:
            return ""
        try:
            value = Decimal(str(change)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        except (InvalidOperation, ValueError):
            return ""
        sign = "+" if value > 0 else ""
        return f"{sign}{value}%"
