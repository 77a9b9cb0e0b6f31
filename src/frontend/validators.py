"""Validation helpers for login input."""

from __future__ import annotations

import re
from typing import Optional

_NICKNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_nickname(nickname: str) -> Optional[str]:
    """Return an error message, or None when the nickname is acceptable."""

    if not nickname:
        return "Nickname cannot be empty"
    if len(nickname) < 3:
        return "Nickname must be at least 3 characters"
    if len(nickname) > 20:
        return "Nickname must be less than 20 characters"
    if " " in nickname:
        return "Nickname cannot contain spaces"
    if not _NICKNAME_PATTERN.match(nickname):
        return "Nickname can only contain letters, numbers, underscores, and hyphens"
    return None


def validate_password(password: str) -> Optional[str]:
    if not password:
        return "Password cannot be empty"
    if len(password) < 6:
        return "Password must be at least 6 characters"
    return None
