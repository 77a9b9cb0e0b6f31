"""Live feed lifecycle and connection-state machine for one room.

State machine:
- CONNECTING: subscribe request in flight (initial state)
- CONNECTED: subscription acknowledged, events are flowing
- DISCONNECTED: subscribe failed, the stream errored, or it ended

A DISCONNECTED manager goes back to CONNECTING after a fixed delay. There is
no backoff or jitter; the retry interval is constant.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from core.errors import StreamError, SubscribeFailed
from core.models import ConnectionState, Message
from core.ports import LiveFeed, MessageBackendPort
from core.store import MessageStore

LOGGER = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState], None]


class SubscriptionManager:
    """Own exactly one live feed and its consumer task for a room."""

    def __init__(
        self,
        room_id: str,
        backend: MessageBackendPort,
        store: MessageStore,
        reconnect_delay: float = 5.0,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self._room_id = room_id
        self._backend = backend
        self._store = store
        self._reconnect_delay = reconnect_delay
        self._on_state_change = on_state_change
        self._state = ConnectionState.CONNECTING
        self._task: Optional[asyncio.Task] = None
        self._feed: Optional[LiveFeed] = None
        self.last_error: Optional[Exception] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start a fresh consumer task from CONNECTING.

        Any previous task is cancelled first so listeners never accumulate.
        Must be called from a running event loop.
        """

        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(
            self._run(previous), name=f"live-feed:{self._room_id}"
        )

    async def restart(self) -> None:
        """Tear down completely, then start again (room re-entry, app focus)."""

        await self.stop()
        self.start()

    async def stop(self) -> None:
        """Cancel the consumer task and release the feed. Idempotent."""

        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            # wait() never raises the task's own CancelledError, only one
            # aimed at the caller.
            await asyncio.wait({task})
        if task is not None and not task.cancelled() and task.exception() is not None:
            LOGGER.error("Live feed task for room %s failed", self._room_id, exc_info=task.exception())
        await self._release_feed()

    async def _run(self, previous: Optional[asyncio.Task]) -> None:
        if previous is not None:
            # Let a cancelled predecessor release its feed before we open ours.
            await asyncio.gather(previous, return_exceptions=True)
            await self._release_feed()

        while True:
            self._set_state(ConnectionState.CONNECTING)
            try:
                feed = await self._backend.subscribe(self._room_id)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.last_error = SubscribeFailed(str(exc))
                LOGGER.warning("Subscribe failed for room %s: %s", self._room_id, exc)
                await self._disconnect_and_wait()
                continue

            self._feed = feed
            self._set_state(ConnectionState.CONNECTED)
            LOGGER.info("Live feed connected for room %s", self._room_id)
            try:
                async for message in feed:
                    self._handle(message)
                LOGGER.info("Live feed for room %s ended", self._room_id)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.last_error = StreamError(str(exc))
                LOGGER.warning("Live feed error for room %s: %s", self._room_id, exc)
            finally:
                await self._release_feed()

            await self._disconnect_and_wait()

    def _handle(self, message: Message) -> None:
        # The server scopes the subscription already; re-check anyway.
        if message.room_id != self._room_id:
            LOGGER.debug("Dropping event for room %s on %s feed", message.room_id, self._room_id)
            return
        if not self._store.prepend(message):
            LOGGER.debug("Duplicate message %s ignored", message.id)

    async def _disconnect_and_wait(self) -> None:
        self._set_state(ConnectionState.DISCONNECTED)
        await asyncio.sleep(self._reconnect_delay)

    async def _release_feed(self) -> None:
        feed = self._feed
        self._feed = None
        if feed is None:
            return
        try:
            await feed.cancel()
        except Exception:
            LOGGER.exception("Failed to cancel live feed for room %s", self._room_id)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._state = state
        LOGGER.debug("Room %s connection state: %s", self._room_id, state.value)
        if self._on_state_change is not None:
            self._on_state_change(state)
