"""
Plain-text sanitization for user-submitted fields.

Complaint titles, descriptions and admin notes are rendered by clients that
cannot be trusted to escape them, so HTML is stripped before storage.
"""

import html
from typing import Optional

import bleach


def sanitize_plain_text(content: Optional[str]) -> Optional[str]:
    """
    Strip all HTML tags and surrounding whitespace.

    bleach escapes `&`, `<` and `>` in the text it keeps; those are turned
    back into the characters the user typed, so stored text and its length
    match the input minus markup.

    Args:
        content: Raw content from user input

    Returns:
        Plain text with all HTML removed, or None if input is None

    Examples:
        >>> sanitize_plain_text('<script>alert(1)</script>Title')
        'alert(1)Title'
        >>> sanitize_plain_text('  <b>Bold</b> text ')
        'Bold text'
    """
    if content is None:
        return None

    return html.unescape(bleach.clean(content, tags=[], strip=True)).strip()


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce an uploaded filename to its final path component.

    Browsers on some platforms send full client paths; only the last segment
    is kept, with control characters removed.

    Args:
        filename: Filename as sent by the client

    Returns:
        The bare filename (may be empty)
    """
    if not filename:
        return ""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    return "".join(ch for ch in name if ch.isprintable()).strip()
