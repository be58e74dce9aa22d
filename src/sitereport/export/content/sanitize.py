"""
Module: export.content.sanitize

Purpose:
    Make free text safe for the page. Every user-supplied string that
    reaches a content block passes through ``safe_text``.

Key Functions:
    - safe_text(): Coerce, reject accidental object coercions, strip markup

Dependencies:
    - html (std): Entity decoding
    - re (std)

Used By:
    - export.content.builders: All block fields
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

COERCION_PLACEHOLDER = "[Event]"

_EVENT_MARKER = "[object Event]"
_DEFAULT_REPR = re.compile(r"<[\w.]+ object at 0x[0-9a-fA-F]+>")
_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"[ \t\r\f\v]+")


def safe_text(value: Any) -> str:
    """
    Convert a value to display-safe plain text.

    Rules:
    1. None -> ""
    2. Event objects and strings produced by stringifying an object by
       mistake ("[object Event]", "<foo.Bar object at 0x...>") are
       replaced with a placeholder and logged.
    3. Markup tags are stripped and entities decoded, so text is always
       drawn as literal glyphs and never interpreted.

    Args:
        value: Any value from report input

    Returns:
        Sanitized single-paragraph-friendly string

    Example:
        >>> safe_text("<b>Culvert</b> &amp; ditch")
        'Culvert & ditch'
        >>> safe_text(None)
        ''
    """
    if value is None:
        return ""

    if _is_event_like(value):
        logger.warning("Event object detected in text - replacing with safe value")
        return COERCION_PLACEHOLDER

    try:
        text = value if isinstance(value, str) else str(value)
    except Exception as e:
        logger.warning(f"Error converting value to safe string: {e}")
        return ""

    if _EVENT_MARKER in text or _DEFAULT_REPR.search(text):
        logger.warning("Stringified object detected in text - replacing with safe value")
        return COERCION_PLACEHOLDER

    return _strip_markup(text)


def truncate(text: str, limit: int) -> str:
    """Truncate to ``limit`` characters (no ellipsis)."""
    return text[:limit]


def _is_event_like(value: Any) -> bool:
    if isinstance(value, (str, int, float, bool)):
        return False
    return type(value).__name__.endswith("Event")


def _strip_markup(text: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = _TAG.sub("", text)
    text = html.unescape(text)
    return _WHITESPACE.sub(" ", text).strip()
