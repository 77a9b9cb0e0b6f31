from __future__ import annotations

from adapters.sqlite_auth_store import SQLiteAuthStore


def _store(tmp_path) -> SQLiteAuthStore:
    store = SQLiteAuthStore(str(tmp_path / "auth.db"))
    store.init_db()
    return store


def test_load_returns_none_when_empty(tmp_path) -> None:
    assert _store(tmp_path).load() is None


def test_save_and_load_session(tmp_path) -> None:
    store = _store(tmp_path)
    store.save("token-1", {"id": "u1", "nickname": "owl"})
    store.save("token-2", {"id": "u1", "nickname": "owl2"})
    assert store.load() == ("token-2", {"id": "u1", "nickname": "owl2"})


def test_clear_and_empty_token_forget_session(tmp_path) -> None:
    store = _store(tmp_path)
    store.save("token-1", {"id": "u1"})
    store.clear()
    assert store.load() is None

    store.save("token-1", {"id": "u1"})
    store.save("", {})
    assert store.load() is None
