"""Historical snapshot loading for one room."""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import FetchFailed
from core.ports import MessageBackendPort
from core.store import MessageStore

LOGGER = logging.getLogger(__name__)


class SnapshotLoader:
    """Fetch a room's full history and seed the store with it.

    Runs on room open, when the app regains focus, and on manual reload. A
    failed fetch keeps whatever the store already shows.
    """

    def __init__(self, room_id: str, backend: MessageBackendPort, store: MessageStore) -> None:
        self._room_id = room_id
        self._backend = backend
        self._store = store
        self.loading = False

    async def load(self) -> Optional[FetchFailed]:
        """Replace the store with the fetched history.

        Errors are logged and returned rather than raised; the caller decides
        how to offer a retry.
        """

        self.loading = True
        try:
            messages = await self._backend.fetch_messages(self._room_id)
        except Exception as exc:
            LOGGER.warning("Snapshot fetch failed for room %s: %s", self._room_id, exc)
            return FetchFailed(f"Failed to fetch messages: {exc}")
        finally:
            self.loading = False

        if not self._store.replace_all(messages):
            LOGGER.debug("Snapshot for room %s arrived after the store was disposed", self._room_id)
            return None

        LOGGER.info("Loaded %s messages for room %s", len(messages), self._room_id)
        return None
