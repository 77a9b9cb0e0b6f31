"""Application entry point for the owlsync chat client."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.sqlite_auth_store import SQLiteAuthStore
from auth import authorize, register, restore_session
from client import build_backend
from core.config import SyncConfig
from core.errors import BackendError

NAME = "OWLSYNC"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    # Console output would draw over the chat screen, so it is off by default.
    if config.get("console", False):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/owlsync.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _auth_store() -> SQLiteAuthStore:
    store = SQLiteAuthStore(settings.AUTH_DB_PATH)
    store.init_db()
    return store


def _login(force: bool = False) -> None:
    auth_store = _auth_store()

    async def _run_login() -> None:
        backend = build_backend()
        try:
            await authorize(backend, auth_store, force=force)
            identity = backend.current_identity()
            if identity is not None:
                print(f"Logged in as {identity.nickname or identity.id}")
        finally:
            await backend.aclose()

    asyncio.run(_run_login())


def _signup() -> None:
    auth_store = _auth_store()

    async def _run_signup() -> None:
        backend = build_backend()
        try:
            await register(backend, auth_store)
            identity = backend.current_identity()
            if identity is not None:
                print(f"Account created. Logged in as {identity.nickname or identity.id}")
        finally:
            await backend.aclose()

    asyncio.run(_run_signup())


def _logout() -> None:
    _auth_store().clear()
    print("Logged out.")


def _list_rooms() -> None:
    auth_store = _auth_store()

    async def _run_rooms() -> None:
        backend = build_backend()
        try:
            restore_session(backend, auth_store)
            rooms = await backend.list_rooms()
        except BackendError as exc:
            print(f"Failed to fetch rooms: {exc}")
            return
        finally:
            await backend.aclose()

        if not rooms:
            print("No rooms yet.")
            return
        for index, room in enumerate(rooms, start=1):
            lock = " [locked]" if room.get("is_password_protected") else ""
            print(f"{index}. {room.get('name', 'Unnamed Room')}{lock} | {room.get('id')}")

    asyncio.run(_run_rooms())


def _chat(room_id: str) -> None:
    logger = logging.getLogger(__name__)

    # Log in on a short-lived client first; the chat screen runs its own event
    # loop and gets a fresh client restored from the saved session.
    _login()

    backend = build_backend()
    if not restore_session(backend, _auth_store()):
        raise RuntimeError("No saved session after login")

    sync_config = SyncConfig(
        reconnect_delay=settings.RECONNECT_DELAY,
        provisional_prefix=settings.PROVISIONAL_PREFIX,
    )
    logger.info("Opening chat for room %s", room_id)

    from frontend.app import ChatApp

    ChatApp(room_id, backend, backend, sync_config=sync_config).run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="owlsync")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Open the chat screen for a room")
    chat_parser.add_argument("room_id", help="Room id, see `owlsync rooms`")
    subparsers.add_parser("rooms", help="List rooms and their ids")
    subparsers.add_parser("signup", help="Create an account and log in")
    subparsers.add_parser("login", help="Log in and save the session")
    subparsers.add_parser("logout", help="Forget the saved session")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return

    _print_banner()
    _configure_logging()

    if args.command == "chat":
        _chat(args.room_id)
    elif args.command == "rooms":
        _list_rooms()
    elif args.command == "signup":
        _signup()
    elif args.command == "login":
        _login(force=True)
    elif args.command == "logout":
        _logout()


if __name__ == "__main__":
    main()
