"""Static configuration for owlsync.

All user-editable settings (backend, sync timing, auth storage, logging) live
in a single JSON file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Backend, sync and logging settings are loaded from config.json.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Backend location and collection names. OWLSYNC_URL in the environment
# overrides the URL (see client.py).
_backend = _CONFIG.get("backend", {})
BACKEND_URL = _backend.get("url", "http://127.0.0.1:8090")
BACKEND_TIMEOUT = float(_backend.get("timeout_seconds", 10))
_collections = _backend.get("collections", {})
USERS_COLLECTION = _collections.get("users", "Users")
MESSAGES_COLLECTION = _collections.get("messages", "Messages")
ROOMS_COLLECTION = _collections.get("rooms", "Rooms")

# Live feed recovery and provisional ids.
# - RECONNECT_DELAY: fixed wait before resubscribing, no backoff
# - PROVISIONAL_PREFIX: marks locally created ids; backend ids never use it
_sync = _CONFIG.get("sync", {})
RECONNECT_DELAY = float(_sync.get("reconnect_delay_seconds", 5))
PROVISIONAL_PREFIX = _sync.get("provisional_prefix", "temp_")

# Where to store the persisted auth token.
_auth = _CONFIG.get("auth", {})
AUTH_DB_PATH = _resolve_path(_auth.get("db_path", "owlsync.db"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
