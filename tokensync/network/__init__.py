"""Network collaborators for balance, ticker and asset discovery calls."""

from .errors import EmptyResult, StaleRequest, SyncError, TransportError
from .tokens_api import TokensNetwork, TrustTokensNetwork

__all__ = [
    "EmptyResult",
    "StaleRequest",
    "SyncError",
    "TokensNetwork",
    "TransportError",
    "TrustTokensNetwork",
]
