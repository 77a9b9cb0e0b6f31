"""Lightweight markup encoder (core domain).

Turns the sigils users type in the composer into the small inline markup the
message view understands. Encoding happens once, before a message is stored
or sent.
"""

from __future__ import annotations

import html
import re

LINE_BREAK = "<br>"

# Strong must run before single emphasis so "**x**" is never read as two
# "*"-pairs.
_STRONG = re.compile(r"\*\*(.*?)\*\*")
_UNDERLINE = re.compile(r"__(.*?)__")
_EMPHASIS = re.compile(r"(?<!\*)\*((?!\*).+?)(?<!\*)\*(?!\*)")


def encode(text: str) -> str:
    """Return safe display markup for typed text.

    Rules, in order:
    - ``**text**`` becomes ``<strong>text</strong>``
    - ``__text__`` becomes ``<u>text</u>``
    - ``*text*`` becomes ``<em>text</em>`` when not touching another ``*``
    - newlines become ``<br>``

    Unbalanced sigils are left as typed. HTML in the input is escaped first.
    """

    encoded = html.escape(text, quote=False)
    encoded = _STRONG.sub(r"<strong>\1</strong>", encoded)
    encoded = _UNDERLINE.sub(r"<u>\1</u>", encoded)
    encoded = _EMPHASIS.sub(r"<em>\1</em>", encoded)
    encoded = encoded.replace("\r\n", "\n").replace("\n", LINE_BREAK)
    return encoded
