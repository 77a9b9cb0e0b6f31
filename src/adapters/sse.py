"""Server-sent events parsing for the realtime adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Optional


@dataclass(frozen=True)
class SSEEvent:
    event: str
    data: str
    id: Optional[str] = None


async def iter_sse_events(lines: AsyncIterable[str]) -> AsyncIterator[SSEEvent]:
    """Yield events from a stream of decoded text lines.

    Comment lines (":") are skipped, multiple ``data:`` lines are joined with
    newlines, and an event is dispatched on each blank line.
    """

    event_name = "message"
    event_id: Optional[str] = None
    data_lines: list[str] = []

    async for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            if data_lines:
                yield SSEEvent(event=event_name, data="\n".join(data_lines), id=event_id)
            event_name = "message"
            event_id = None
            data_lines = []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)
        elif field == "id":
            event_id = value

    if data_lines:
        yield SSEEvent(event=event_name, data="\n".join(data_lines), id=event_id)
