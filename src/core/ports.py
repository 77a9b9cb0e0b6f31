"""Ports (interfaces) used by the synchronization core.

Ports define the minimal contracts for the backend and identity adapters so
that the core can be reused with different servers.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional, Protocol

from core.models import Identity, Message


class LiveFeed(Protocol):
    """A push stream of newly created messages for one room.

    Iteration raises when the stream terminates with an error. ``cancel`` must
    be idempotent and release the underlying transport.
    """

    def __aiter__(self) -> AsyncIterator[Message]:
        ...

    async def cancel(self) -> None:
        ...


class MessageBackendPort(Protocol):
    """Backend operations required by the room writers."""

    async def fetch_messages(self, room_id: str) -> list[Message]:
        """Return the room history sorted oldest-first."""
        ...

    async def subscribe(self, room_id: str) -> LiveFeed:
        """Return once the subscription has been acknowledged."""
        ...

    async def create_message(self, room_id: str, body: str) -> Message:
        ...


class IdentityPort(Protocol):
    def current_identity(self) -> Optional[Identity]:
        ...
