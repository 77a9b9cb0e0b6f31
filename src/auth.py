"""Interactive login and auth persistence for owlsync."""

from __future__ import annotations

import logging
import os
from getpass import getpass

from dotenv import load_dotenv

from adapters.pocketbase_backend import PocketBaseBackend
from adapters.sqlite_auth_store import SQLiteAuthStore
from core.errors import BackendError
from frontend.validators import validate_nickname, validate_password

LOGGER = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


def _prompt_nickname() -> str:
    while True:
        nickname = input("Nickname: ").strip()
        error = validate_nickname(nickname)
        if error is None:
            return nickname
        print(error)


def _prompt_password() -> str:
    while True:
        password = getpass("Password: ")
        error = validate_password(password)
        if error is None:
            return password
        print(error)


def _credentials_from_env() -> tuple[str, str] | None:
    load_dotenv()
    nickname = (os.getenv("OWLSYNC_NICKNAME") or "").strip()
    password = os.getenv("OWLSYNC_PASSWORD") or ""
    if not nickname or not password:
        return None
    for error in (validate_nickname(nickname), validate_password(password)):
        if error:
            raise RuntimeError(f"Invalid credentials in environment: {error}")
    return nickname, password


def restore_session(backend: PocketBaseBackend, auth_store: SQLiteAuthStore) -> bool:
    """Load a persisted token into the backend, if there is one."""

    saved = auth_store.load()
    if saved is None:
        return False
    token, record = saved
    backend.restore(token, record)
    LOGGER.info("Restored session for %s", record.get("nickname") or record.get("id"))
    return True


async def authorize(backend: PocketBaseBackend, auth_store: SQLiteAuthStore, force: bool = False) -> None:
    """Make sure the backend is signed in, prompting when needed."""

    if not force and restore_session(backend, auth_store):
        return

    env_credentials = _credentials_from_env()
    if env_credentials is not None:
        await backend.auth_with_password(*env_credentials)
        auth_store.save(backend.token or "", backend.auth_record or {})
        return

    for attempt in range(1, MAX_ATTEMPTS + 1):
        nickname = _prompt_nickname()
        password = _prompt_password()
        try:
            await backend.auth_with_password(nickname, password)
        except BackendError as exc:
            print(str(exc))
            LOGGER.warning("Login attempt %s failed: %s", attempt, exc)
            continue
        auth_store.save(backend.token or "", backend.auth_record or {})
        return

    raise SystemExit("Login failed.")


async def register(backend: PocketBaseBackend, auth_store: SQLiteAuthStore) -> None:
    """Create an account, then sign in with it and save the session."""

    for attempt in range(1, MAX_ATTEMPTS + 1):
        nickname = _prompt_nickname()
        password = _prompt_password()
        try:
            await backend.signup(nickname, password)
        except BackendError as exc:
            print(str(exc))
            LOGGER.warning("Signup attempt %s failed: %s", attempt, exc)
            continue
        await backend.auth_with_password(nickname, password)
        auth_store.save(backend.token or "", backend.auth_record or {})
        return

    raise SystemExit("Signup failed.")
