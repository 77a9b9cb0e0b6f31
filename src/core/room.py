"""Room session: the owned, explicitly scoped state for one open room.

A session is created when a room is opened and closed when it is left. It
owns the store plus the three writers (snapshot loader, live feed, sender) so
nothing outlives the room.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.config import SyncConfig
from core.errors import FetchFailed
from core.models import ConnectionState, Message
from core.ports import IdentityPort, MessageBackendPort
from core.sender import OptimisticSender
from core.snapshot import SnapshotLoader
from core.store import MessageStore
from core.subscription import StateListener, SubscriptionManager

LOGGER = logging.getLogger(__name__)


class RoomSession:
    """Wire the store and its writers for one room."""

    def __init__(
        self,
        room_id: str,
        backend: MessageBackendPort,
        identity: IdentityPort,
        config: Optional[SyncConfig] = None,
        on_connection_change: Optional[StateListener] = None,
    ) -> None:
        config = config or SyncConfig()
        self.room_id = room_id
        self.store = MessageStore()
        self.snapshot = SnapshotLoader(room_id, backend, self.store)
        self.subscription = SubscriptionManager(
            room_id,
            backend,
            self.store,
            reconnect_delay=config.reconnect_delay,
            on_state_change=on_connection_change,
        )
        self.sender = OptimisticSender(
            room_id,
            backend,
            identity,
            self.store,
            provisional_prefix=config.provisional_prefix,
        )
        self._closed = False

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.store.view_for_room(self.room_id)

    @property
    def connection_state(self) -> ConnectionState:
        return self.subscription.state

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> Optional[FetchFailed]:
        """Start the live feed and seed the store from history."""

        LOGGER.info("Opening room %s", self.room_id)
        self.subscription.start()
        return await self.snapshot.load()

    async def resume(self) -> Optional[FetchFailed]:
        """Catch up after the app regained focus or on manual reload."""

        if self._closed:
            return None
        LOGGER.info("Resuming room %s", self.room_id)
        await self.subscription.restart()
        return await self.snapshot.load()

    async def send(self, text: str) -> Optional[Message]:
        """Send through the optimistic pipeline; a closed room sends nothing."""

        if self._closed:
            LOGGER.warning("Ignoring send on closed room %s", self.room_id)
            return None
        return await self.sender.send(text)

    async def close(self) -> None:
        """Stop the live feed and discard the store. Idempotent."""

        if self._closed:
            return
        self._closed = True
        await self.subscription.stop()
        self.store.dispose()
        LOGGER.info("Closed room %s", self.room_id)

    async def __aenter__(self) -> "RoomSession":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
