"""Hand-written fake ports shared by the engine tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from core.errors import BackendError
from core.models import Identity, Message, MessageState

_END = object()


def make_message(
    message_id: str,
    room_id: str = "r1",
    body: str = "hello",
    state: MessageState = MessageState.CONFIRMED,
) -> Message:
    return Message(
        id=message_id,
        room_id=room_id,
        sender_id="u1",
        sender_nickname="owl",
        body=body,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        state=state,
    )


class FakeFeed:
    """Live feed driven by a queue; push messages, errors, or end()."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self.cancel_calls = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_calls > 0

    def push(self, item: Union[Message, Exception]) -> None:
        self._queue.put_nowait(item)

    def end(self) -> None:
        self._queue.put_nowait(_END)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def cancel(self) -> None:
        self.cancel_calls += 1
        self._queue.put_nowait(_END)


class FakeBackend:
    """Backend fake with scripted subscribe outcomes and controllable sends."""

    def __init__(
        self,
        history: Optional[list[Message]] = None,
        subscribe_outcomes: Optional[list[Union[FakeFeed, Exception]]] = None,
    ) -> None:
        self.history = history or []
        self.fetch_error: Optional[Exception] = None
        self.fetch_gate: Optional[asyncio.Event] = None
        self.fetch_calls = 0
        self.subscribe_outcomes = list(subscribe_outcomes or [])
        self.subscribe_times: list[float] = []
        self.feeds: list[FakeFeed] = []
        self.created: list[tuple[str, str]] = []
        self.create_gate: Optional[asyncio.Event] = None
        self.create_error: Optional[Exception] = None
        self.confirmed_id = "server1"

    async def fetch_messages(self, room_id: str) -> list[Message]:
        self.fetch_calls += 1
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.history)

    async def subscribe(self, room_id: str) -> FakeFeed:
        self.subscribe_times.append(asyncio.get_running_loop().time())
        outcome = self.subscribe_outcomes.pop(0) if self.subscribe_outcomes else FakeFeed()
        if isinstance(outcome, Exception):
            raise outcome
        self.feeds.append(outcome)
        return outcome

    async def create_message(self, room_id: str, body: str) -> Message:
        self.created.append((room_id, body))
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        return make_message(self.confirmed_id, room_id=room_id, body=body)


class FakeIdentity:
    def __init__(self, identity: Optional[Identity] = Identity(id="u1", nickname="owl")) -> None:
        self.identity = identity

    def current_identity(self) -> Optional[Identity]:
        return self.identity


async def wait_for(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


def offline() -> BackendError:
    return BackendError("Network error. Please check your internet connection.")
