"""Rendering helpers that turn stored messages into Rich text."""

from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from typing import Optional

from rich.text import Text

from core.models import Message

_TAG = re.compile(r"<(/?)(strong|em|u)>|<br>")

_TAG_STYLES = {
    "strong": "bold",
    "em": "italic",
    "u": "underline",
}


def markup_to_text(body: str) -> Text:
    """Convert encoded message markup into a styled Text.

    Only the tags the encoder produces are understood; anything else is shown
    literally. Unclosed tags style the rest of the body.
    """

    text = Text()
    open_tags: list[str] = []
    position = 0

    def _append(chunk: str) -> None:
        if not chunk:
            return
        style = " ".join(_TAG_STYLES[tag] for tag in open_tags)
        text.append(html.unescape(chunk), style=style or None)

    for match in _TAG.finditer(body):
        _append(body[position : match.start()])
        position = match.end()
        closing, tag = match.group(1), match.group(2)
        if tag is None:
            text.append("\n")
        elif closing:
            if tag in open_tags:
                # Remove the innermost matching tag.
                index = len(open_tags) - 1 - open_tags[::-1].index(tag)
                del open_tags[index]
        else:
            open_tags.append(tag)
    _append(body[position:])
    return text


def relative_time(created_at: datetime, now: Optional[datetime] = None) -> str:
    """Format a timestamp as "now", "5m ago", "3h ago", "2d ago" or a date."""

    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    seconds = (now - created_at).total_seconds()
    minutes = int(seconds // 60)
    if minutes < 1:
        return "now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return created_at.astimezone().strftime("%Y-%m-%d")


def render_message(message: Message, current_user_id: Optional[str], now: Optional[datetime] = None) -> Text:
    """Render one message line: header (sender, time) then the body."""

    is_me = current_user_id is not None and message.sender_id == current_user_id
    sender = "You" if is_me else message.display_name
    status = "sending..." if message.is_pending else relative_time(message.created_at, now)

    header = Text.assemble(
        (sender, "bold cyan" if is_me else "bold"),
        ("  ", ""),
        (status, "dim"),
    )
    body = markup_to_text(message.body)
    if message.is_pending:
        body.stylize("dim")
    return Text.assemble(header, "\n", body)
