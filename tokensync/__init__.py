"""Token balance and ticker synchronization for a wallet address."""

__version__ = "0.1.0"
