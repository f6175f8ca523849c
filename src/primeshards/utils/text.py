"""Text helpers for turning item bodies into short display strings."""

from __future__ import annotations

import re

from primeshards.config import DEFAULT_SNIPPET_CHARS
from primeshards.models import UNTITLED

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")

# Only the entities the forum export actually emits; &amp; goes last so
# "&amp;lt;" decodes to the literal "&lt;".
_ENTITIES = (
    ("&quot;", '"'),
    ("&#x27;", "'"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
)


def strip_html(html: str) -> str:
    """Replace tags with spaces and decode the common entities."""
    text = _TAG_RE.sub(" ", html)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def collapse_whitespace(text: str) -> str:
    return _SPACE_RE.sub(" ", text).strip()


def make_snippet(html: str | None, *, max_chars: int = DEFAULT_SNIPPET_CHARS) -> str:
    """Readable, truncated snippet of an HTML body.

    Falls back to the untitled placeholder when nothing readable remains.
    """
    if not html:
        return UNTITLED
    text = collapse_whitespace(strip_html(html))
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text or UNTITLED


def display_title(title: str | None, text: str | None, *, max_chars: int = DEFAULT_SNIPPET_CHARS) -> str:
    """Title if present, otherwise a snippet of the body."""
    if title:
        return title
    if text:
        return make_snippet(text, max_chars=max_chars)
    return UNTITLED
