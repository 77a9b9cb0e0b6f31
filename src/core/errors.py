"""Error taxonomy for the synchronization engine.

None of these are fatal: fetch and send failures are reported to the caller
with a readable message, subscription failures only move the connection state.
"""

from __future__ import annotations

from typing import Optional


class BackendError(RuntimeError):
    """Raised by backend adapters with a user-facing message."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SyncError(Exception):
    """Base class for recoverable engine errors."""


class FetchFailed(SyncError):
    """Snapshot load failed; the store was left untouched."""


class SubscribeFailed(SyncError):
    """The live feed could not be established."""


class StreamError(SyncError):
    """An established live feed terminated with an error."""


class SendFailed(SyncError):
    """An outgoing message was rolled back.

    ``text`` is the input exactly as the user typed it, so it can be restored
    into the composer for a retry.
    """

    def __init__(self, message: str, text: str) -> None:
        super().__init__(message)
        self.text = text
