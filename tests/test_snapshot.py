from __future__ import annotations

import asyncio

from core.errors import BackendError, FetchFailed
from core.snapshot import SnapshotLoader
from core.store import MessageStore
from fakes import FakeBackend, make_message


def test_load_installs_history_newest_first() -> None:
    backend = FakeBackend(history=[make_message("oldest"), make_message("mid"), make_message("newest")])
    store = MessageStore()
    loader = SnapshotLoader("r1", backend, store)

    error = asyncio.run(loader.load())

    assert error is None
    assert [m.id for m in store.view_for_room("r1")] == ["newest", "mid", "oldest"]
    assert not loader.loading


def test_load_failure_leaves_store_untouched() -> None:
    backend = FakeBackend()
    backend.fetch_error = BackendError("Server error (500). Please try again later.", 500)
    store = MessageStore()
    store.prepend(make_message("kept"))
    loader = SnapshotLoader("r1", backend, store)

    error = asyncio.run(loader.load())

    assert isinstance(error, FetchFailed)
    assert "Server error" in str(error)
    assert [m.id for m in store.messages()] == ["kept"]
    assert not loader.loading


def test_load_after_dispose_does_not_mutate() -> None:
    async def scenario() -> MessageStore:
        backend = FakeBackend(history=[make_message("a")])
        backend.fetch_gate = asyncio.Event()
        store = MessageStore()
        loader = SnapshotLoader("r1", backend, store)
        task = asyncio.create_task(loader.load())
        await asyncio.sleep(0)
        assert loader.loading
        store.dispose()
        backend.fetch_gate.set()
        assert await task is None
        return store

    store = asyncio.run(scenario())
    assert store.messages() == ()
