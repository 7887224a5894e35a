"""Error types raised by the tokens network client and the sync coordinator."""

from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """Base class for failures swallowed at the sync coordinator boundary."""


class TransportError(SyncError):
    def __init__(self, status: int, message: str, data: Any | None = None):
        super().__init__(f"Transport error {status}: {message}")
        self.status = status
        self.message = message
        self.data = data


class EmptyResult(SyncError):
    """Valid response that carried nothing to apply."""


class StaleRequest(SyncError):
    """Response for a request whose triggering context was cancelled."""


__all__ = ["EmptyResult", "StaleRequest", "SyncError", "TransportError"]
