"""Per-room message store (core domain).

The store keeps one newest-first sequence and is the single source of truth
for the message view. Every mutation is a single synchronous call, so under
asyncio no other writer can interleave with it.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from core.models import Message

LOGGER = logging.getLogger(__name__)

Listener = Callable[[], None]


class MessageStore:
    """Ordered, id-deduplicated collection of messages.

    New entries always go to the head. The order is never re-sorted by
    timestamp; only ``replace_all`` installs a whole sequence at once.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._listeners: list[Listener] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return self._index_of(message_id) is not None

    def messages(self) -> tuple[Message, ...]:
        """Return the full newest-first sequence."""

        return tuple(self._messages)

    def view_for_room(self, room_id: str) -> tuple[Message, ...]:
        """Return the newest-first sequence for exactly one room.

        Filtering keeps stale entries from another room out of a freshly
        opened view.
        """

        return tuple(message for message in self._messages if message.room_id == room_id)

    def replace_all(self, messages: Iterable[Message]) -> bool:
        """Install a snapshot fetched oldest-first.

        The input is reversed so the newest message ends up first. If the
        backend repeats an id, the newest occurrence wins.
        """

        if self._disposed:
            return False

        installed: list[Message] = []
        seen: set[str] = set()
        for message in reversed(list(messages)):
            if message.id in seen:
                continue
            seen.add(message.id)
            installed.append(message)

        self._messages = installed
        self._notify()
        return True

    def prepend(self, message: Message) -> bool:
        """Insert at the head unless an entry already has this id."""

        if self._disposed:
            return False
        if self._index_of(message.id) is not None:
            return False

        self._messages.insert(0, message)
        self._notify()
        return True

    def replace_by_id(self, old_id: str, new_message: Message) -> bool:
        """Swap a provisional entry for its confirmed counterpart.

        When the confirmed id already arrived (typically through the live
        feed), the old entry is dropped instead of creating a duplicate.
        Returns whether the store changed.
        """

        if self._disposed:
            return False

        old_index = self._index_of(old_id)
        if new_message.id != old_id and self._index_of(new_message.id) is not None:
            if old_index is None:
                return False
            del self._messages[old_index]
            self._notify()
            return True

        if old_index is None:
            LOGGER.debug("No entry %s to replace with %s", old_id, new_message.id)
            return False

        self._messages[old_index] = new_message
        self._notify()
        return True

    def remove_by_id(self, message_id: str) -> bool:
        if self._disposed:
            return False

        index = self._index_of(message_id)
        if index is None:
            return False

        del self._messages[index]
        self._notify()
        return True

    def add_listener(self, listener: Listener) -> None:
        """Register a callback fired after every effective mutation."""

        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def dispose(self) -> None:
        """Discard all state; later mutations become no-ops."""

        self._disposed = True
        self._messages = []
        self._listeners = []

    def _index_of(self, message_id: object) -> Optional[int]:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                return index
        return None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                LOGGER.exception("Store listener failed")
