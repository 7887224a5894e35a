"""Presentation helpers for the token list."""

from .formatting import CurrencyFormatter
from .tokens_view import TokenCellViewModel, TokensViewModel

__all__ = ["CurrencyFormatter", "TokenCellViewModel", "TokensViewModel"]
