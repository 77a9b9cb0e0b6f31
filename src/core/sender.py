"""Optimistic send pipeline (core domain).

The pipeline enforces a strict order:
1) Reject blank input without a request
2) Encode the typed markup
3) Build a provisional message with a reserved-prefix id
4) Prepend it so the view updates immediately
5) Create the message on the backend
6) Success: swap the provisional entry for the confirmed record
7) Failure: roll the provisional entry back and hand the text back;
   cancellation rolls back too, then propagates

Steps 6 and 7 are single store calls, so a live-feed event that lands while
the request is in flight cannot interleave with them.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from datetime import datetime, timezone
from typing import Optional

from core.errors import SendFailed
from core.markup import encode
from core.models import Message, MessageState
from core.ports import IdentityPort, MessageBackendPort
from core.store import MessageStore

LOGGER = logging.getLogger(__name__)

# Process-wide so two rooms never hand out the same provisional id.
_SEQUENCE = itertools.count(1)


def new_provisional_id(prefix: str) -> str:
    return f"{prefix}{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S%f')}_{next(_SEQUENCE)}"


class OptimisticSender:
    """Send messages for one room with immediate local feedback."""

    def __init__(
        self,
        room_id: str,
        backend: MessageBackendPort,
        identity: IdentityPort,
        store: MessageStore,
        provisional_prefix: str = "temp_",
    ) -> None:
        self._room_id = room_id
        self._backend = backend
        self._identity = identity
        self._store = store
        self._prefix = provisional_prefix

    def is_provisional(self, message_id: str) -> bool:
        return message_id.startswith(self._prefix)

    async def send(self, text: str) -> Optional[Message]:
        """Send typed text and return the confirmed message.

        Returns None for blank input. Raises SendFailed, carrying ``text``
        unchanged, when the backend rejects the message.
        """

        content = text.strip()
        if not content:
            return None

        sender = self._identity.current_identity()
        if sender is None:
            raise SendFailed("You must be logged in to send messages.", text)

        provisional = Message(
            id=new_provisional_id(self._prefix),
            room_id=self._room_id,
            sender_id=sender.id,
            sender_nickname=sender.nickname,
            body=encode(content),
            created_at=datetime.now(timezone.utc),
            state=MessageState.PENDING,
        )
        self._store.prepend(provisional)

        try:
            confirmed = await self._backend.create_message(self._room_id, provisional.body)
        except asyncio.CancelledError:
            self._store.remove_by_id(provisional.id)
            LOGGER.info("Send cancelled for room %s", self._room_id)
            raise
        except Exception as exc:
            self._store.remove_by_id(provisional.id)
            LOGGER.warning("Send failed for room %s: %s", self._room_id, exc)
            raise SendFailed(f"Failed to send: {exc}", text) from exc

        # The live feed may have delivered this id already; the store drops
        # the provisional entry in that case.
        confirmed = confirmed.confirmed()
        self._store.replace_by_id(provisional.id, confirmed)
        LOGGER.info("Message %s confirmed in room %s", confirmed.id, self._room_id)
        return confirmed
