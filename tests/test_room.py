from __future__ import annotations

import asyncio

from core.config import SyncConfig
from core.errors import FetchFailed
from core.models import ConnectionState
from core.room import RoomSession
from fakes import FakeBackend, FakeFeed, FakeIdentity, make_message, offline, wait_for

CONFIG = SyncConfig(reconnect_delay=0.05)


def test_open_seeds_history_and_connects() -> None:
    async def scenario():
        states: list[ConnectionState] = []
        backend = FakeBackend(history=[make_message("a"), make_message("b"), make_message("x", room_id="r2")])
        session = RoomSession("r1", backend, FakeIdentity(), CONFIG, on_connection_change=states.append)
        error = await session.open()
        await wait_for(lambda: session.connection_state is ConnectionState.CONNECTED)
        messages = session.messages
        await session.close()
        return error, messages, states

    error, messages, states = asyncio.run(scenario())
    assert error is None
    assert [m.id for m in messages] == ["b", "a"]
    assert states == [ConnectionState.CONNECTED]


def test_open_reports_fetch_failure_but_still_subscribes() -> None:
    async def scenario():
        backend = FakeBackend()
        backend.fetch_error = offline()
        session = RoomSession("r1", backend, FakeIdentity(), CONFIG)
        error = await session.open()
        await wait_for(lambda: session.connection_state is ConnectionState.CONNECTED)
        await session.close()
        return error

    assert isinstance(asyncio.run(scenario()), FetchFailed)


def test_live_feed_delivery_before_send_response_is_reconciled() -> None:
    async def scenario():
        feed = FakeFeed()
        backend = FakeBackend(subscribe_outcomes=[feed])
        backend.create_gate = asyncio.Event()
        session = RoomSession("r1", backend, FakeIdentity(), CONFIG)
        await session.open()
        await wait_for(lambda: session.connection_state is ConnectionState.CONNECTED)

        send = asyncio.create_task(session.send("hello"))
        await wait_for(lambda: len(session.messages) == 1)
        provisional_id = session.messages[0].id

        feed.push(make_message("server1"))
        await wait_for(lambda: len(session.messages) == 2)
        backend.create_gate.set()
        await send

        ids = [m.id for m in session.messages]
        await session.close()
        return ids, provisional_id

    ids, provisional_id = asyncio.run(scenario())
    assert ids == ["server1"]
    assert provisional_id not in ids


def test_close_stops_feed_and_ignores_late_results() -> None:
    async def scenario():
        feed = FakeFeed()
        backend = FakeBackend(history=[make_message("a")], subscribe_outcomes=[feed])
        session = RoomSession("r1", backend, FakeIdentity(), CONFIG)
        await session.open()
        await wait_for(lambda: session.connection_state is ConnectionState.CONNECTED)

        backend.fetch_gate = asyncio.Event()
        backend.create_gate = asyncio.Event()
        late_load = asyncio.create_task(session.snapshot.load())
        late_send = asyncio.create_task(session.send("bye"))
        await asyncio.sleep(0)

        await session.close()
        await session.close()
        backend.fetch_gate.set()
        backend.create_gate.set()
        await late_load
        await late_send
        return session, feed

    session, feed = asyncio.run(scenario())
    assert session.closed
    assert feed.cancel_calls == 1
    assert session.messages == ()
    assert not session.subscription.running


def test_resume_reloads_and_resubscribes() -> None:
    async def scenario():
        first = FakeFeed()
        backend = FakeBackend(history=[make_message("a")], subscribe_outcomes=[first])
        session = RoomSession("r1", backend, FakeIdentity(), CONFIG)
        await session.open()
        await wait_for(lambda: session.connection_state is ConnectionState.CONNECTED)

        backend.history = [make_message("a"), make_message("missed")]
        await session.resume()
        await wait_for(lambda: len(backend.feeds) == 2 and session.connection_state is ConnectionState.CONNECTED)
        ids = [m.id for m in session.messages]
        await session.close()
        return ids, first, backend

    ids, first, backend = asyncio.run(scenario())
    assert ids == ["missed", "a"]
    assert first.cancelled
    assert backend.fetch_calls == 2


def test_session_as_async_context_manager() -> None:
    async def scenario():
        backend = FakeBackend(history=[make_message("a")])
        async with RoomSession("r1", backend, FakeIdentity(), CONFIG) as session:
            messages = session.messages
        return session, messages

    session, messages = asyncio.run(scenario())
    assert [m.id for m in messages] == ["a"]
    assert session.closed


def test_send_after_close_makes_no_request() -> None:
    async def scenario():
        backend = FakeBackend()
        session = RoomSession("r1", backend, FakeIdentity(), CONFIG)
        await session.open()
        await session.close()
        return await session.send("too late"), backend

    result, backend = asyncio.run(scenario())
    assert result is None
    assert backend.created == []
