from __future__ import annotations

"""Data structures for tracked assets, their balances and price tickers."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Optional


def normalize_asset_id(value: str) -> str:
    return str(value or "").strip().lower()


@dataclass(slots=True, frozen=True)
class Asset:
    """A trackable currency or token."""

    id: str
    name: str
    symbol: str
    decimals: int
    is_custom: bool = False
    is_disabled: bool = False
    is_native: bool = False

    @property
    def is_enabled(self) -> bool:
        return not self.is_disabled

    def with_disabled(self, flag: bool) -> "Asset":
        return replace(self, is_disabled=flag)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "is_custom": self.is_custom,
            "is_disabled": self.is_disabled,
            "is_native": self.is_native,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Asset":
        asset_id = normalize_asset_id(payload.get("id", ""))
        if not asset_id:
            raise ValueError("asset id missing")
        return cls(
            id=asset_id,
            name=str(payload.get("name") or ""),
            symbol=str(payload.get("symbol") or ""),
            decimals=int(payload.get("decimals") or 0),
            is_custom=bool(payload.get("is_custom", False)),
            is_disabled=bool(payload.get("is_disabled", False)),
            is_native=bool(payload.get("is_native", False)),
        )


@dataclass(slots=True, frozen=True)
class AssetRef:
    """Asset description returned by the discovery service."""

    contract: str
    name: str = ""
    symbol: str = ""
    decimals: int = 0

    def to_asset(self) -> Asset:
        return Asset(
            id=normalize_asset_id(self.contract),
            name=self.name or self.symbol,
            symbol=self.symbol,
            decimals=self.decimals,
            is_custom=False,
        )


@dataclass(slots=True, frozen=True)
class Balance:
    asset_id: str
    value: int
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_decimal(self, decimals: int) -> Decimal:
        """Return the raw integer value scaled down by ``decimals`` places, exactly."""
        raw = Decimal(self.value)
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(raw.as_tuple().digits))
            return raw.scaleb(-decimals)


@dataclass(slots=True, frozen=True)
class Ticker:
    asset_id: str
    price: str
    currency: str
    percent_change: Optional[str] = None

    def price_decimal(self) -> Decimal:
        """Parsed price, or zero when the quote is not a number."""
        try:
            value = Decimal(str(self.price))
        except (InvalidOperation, ValueError):
            return Decimal(0)
        if not value.is_finite():
            return Decimal(0)
        return value


@dataclass(slots=True, frozen=True)
class TokenItem:
    """Read-only pairing of an asset with its latest balance."""

    asset: Asset
    balance: Optional[Balance] = None

    @property
    def value(self) -> int:
        return self.balance.value if self.balance is not None else 0


class TokenActionKind(str, Enum):
    UPDATE_VALUE = "update_value"
    DISABLE = "disable"


@dataclass(slots=True, frozen=True)
class TokenAction:
    kind: TokenActionKind
    value: Any = None

    @classmethod
    def update_value(cls, raw: int | Balance) -> "TokenAction":
        """Set the balance; a ``Balance`` keeps its own fetch timestamp."""
        if isinstance(raw, Balance):
            return cls(TokenActionKind.UPDATE_VALUE, raw)
        return cls(TokenActionKind.UPDATE_VALUE, int(raw))

    @classmethod
    def disable(cls, flag: bool) -> "TokenAction":
        return cls(TokenActionKind.DISABLE, bool(flag))


__all__ = [
    "Asset",
    "AssetRef",
    "Balance",
    "Ticker",
    "TokenAction",
    "TokenActionKind",
    "TokenItem",
    "normalize_asset_id",
]
