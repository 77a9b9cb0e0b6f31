"""Core domain models.

These types are shared across the core and adapters to avoid tight
coupling to any backend-specific record shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class MessageState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class ConnectionState(str, Enum):
    """Health of a room's live feed, shown as a status indicator."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class Identity:
    """The signed-in sender, read at send time."""

    id: str
    nickname: Optional[str] = None


@dataclass(frozen=True)
class Message:
    """A chat message as shown in a room view.

    ``body`` is already-encoded markup. ``created_at`` is only used for display;
    ordering is decided by the store.
    """

    id: str
    room_id: str
    sender_id: str
    sender_nickname: Optional[str]
    body: str
    created_at: datetime
    state: MessageState = MessageState.CONFIRMED

    @property
    def display_name(self) -> str:
        return self.sender_nickname or self.sender_id

    @property
    def is_pending(self) -> bool:
        return self.state is MessageState.PENDING

    def confirmed(self) -> "Message":
        return replace(self, state=MessageState.CONFIRMED)
