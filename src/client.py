"""PocketBase backend factory for owlsync.

We explicitly build the HTTP client here so it is obvious where the backend
URL comes from and when the connection pool is created.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

import settings
from adapters.pocketbase_backend import PocketBaseBackend


def build_backend() -> PocketBaseBackend:
    """Create a PocketBase backend from config.json and the environment.

    OWLSYNC_URL (read via python-dotenv) overrides the configured URL so a
    private server address can stay out of the repo.
    """

    load_dotenv()

    base_url = os.getenv("OWLSYNC_URL") or settings.BACKEND_URL
    if not base_url:
        raise RuntimeError("Missing backend URL: set OWLSYNC_URL or backend.url in config.json")

    logging.getLogger(__name__).info("Initializing PocketBase backend at %s", base_url)

    return PocketBaseBackend(
        base_url,
        timeout=settings.BACKEND_TIMEOUT,
        users_collection=settings.USERS_COLLECTION,
        messages_collection=settings.MESSAGES_COLLECTION,
        rooms_collection=settings.ROOMS_COLLECTION,
    )
