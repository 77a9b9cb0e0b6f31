"""PocketBase-to-core message mapping adapter.

This keeps PocketBase record shapes out of the core.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from core.models import Identity, Message, MessageState


def parse_timestamp(raw: Any) -> datetime:
    """Parse PocketBase's "2024-01-01 12:00:00.123Z" format.

    Missing or malformed values fall back to now, since timestamps are only
    shown, never used for ordering.
    """

    if not isinstance(raw, str) or not raw.strip():
        return datetime.now(timezone.utc)
    value = raw.strip().replace(" ", "T", 1)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _expanded_sender(record: dict[str, Any]) -> dict[str, Any]:
    expand = record.get("expand")
    if not isinstance(expand, dict):
        return {}
    sender = expand.get("Sender")
    return sender if isinstance(sender, dict) else {}


def message_from_record(record: dict[str, Any]) -> Message:
    """Build a confirmed core Message from a Messages record."""

    sender = _expanded_sender(record)
    sender_id = str(record.get("Sender") or sender.get("id") or "")
    nickname: Optional[str] = sender.get("nickname") or None

    return Message(
        id=str(record["id"]),
        room_id=str(record.get("Room") or ""),
        sender_id=sender_id,
        sender_nickname=str(nickname) if nickname else None,
        body=str(record.get("content") or ""),
        created_at=parse_timestamp(record.get("created")),
        state=MessageState.CONFIRMED,
    )


def identity_from_record(record: Optional[dict[str, Any]]) -> Optional[Identity]:
    """Build the sender identity from a Users auth record."""

    if not record or not record.get("id"):
        return None
    nickname = record.get("nickname")
    return Identity(id=str(record["id"]), nickname=str(nickname) if nickname else None)
