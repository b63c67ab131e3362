"""
Repair the quasi-XML of ``.nsipro`` files into well-formed markup.

The NSI software writes something that looks like XML but is not: tag names
contain spaces, scalar values usually have no end tag, some tags may appear
with no value at all, and the ``ug text`` value can be split over two lines.
:py:func:`normalize` rewrites the text so a standard XML parser accepts it.
The rewrite rules are applied to the whole document in a fixed order, since
each rule assumes the previous ones have already run.
"""

import logging
import re
from collections.abc import Iterable

from nsipro.config import settings

_logger = logging.getLogger(__name__)

PIXELS_CONTINUATION_PATTERN = re.compile(
    r"\s+(\(\S+\s+pixels\))[ \t\r]*$", re.MULTILINE
)
"""A ``(<number> pixels)`` fragment at the end of a line, and the whitespace before it."""

LINE_BREAK_PATTERN = re.compile(r"[ \t]*\r?\n\s*")
"""A line break with any trailing whitespace before it and indentation after it."""

TAG_PATTERN = re.compile(r"<[^<>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")

OPEN_TAG_PATTERN = re.compile(r"^<(?P<tag>[^>]+)>(?P<value>[^<]+)$")
"""A line holding an opening tag followed by a value, with no end tag."""


def fold_continuation_lines(text: str) -> str:
    """Join ``(<number> pixels)`` fragments onto the end of the previous line."""
    return PIXELS_CONTINUATION_PATTERN.sub(r" \1", text)


def split_lines(text: str) -> list[str]:
    """Split ``text`` into lines, dropping surrounding whitespace and blank lines."""
    return LINE_BREAK_PATTERN.split(text.lstrip("\ufeff").strip())


def squeeze_tag_whitespace(line: str) -> str:
    """Replace whitespace inside every ``<...>`` on ``line`` with underscores."""
    return TAG_PATTERN.sub(lambda m: WHITESPACE_PATTERN.sub("_", m.group(0)), line)


def close_single_line_tag(line: str) -> str:
    """
    Add the missing end tag to a ``<tag>value`` line.

    Examples
    --------
    >>> close_single_line_tag("<Part_name>ABC123")
    '<Part_name>ABC123</Part_name>'
    >>> close_single_line_tag("<Setup>")
    '<Setup>'
    """
    return OPEN_TAG_PATTERN.sub(r"<\g<tag>>\g<value></\g<tag>>", line)


def complete_null_value_tag(line: str, null_value_tags: Iterable[str]) -> str:
    """Turn a bare ``<tag>`` line into ``<tag></tag>`` if ``tag`` may have no value."""
    for tag in null_value_tags:
        if line == f"<{tag}>":
            return f"<{tag}></{tag}>"
    return line


def normalize(text: str, null_value_tags: Iterable[str] | None = None) -> str:
    """
    Convert the contents of a ``.nsipro`` file into well-formed markup.

    The rules are, in order:

    1. fold a ``(<number> pixels)`` fragment written on its own line back
       onto the previous line
    2. split into lines, discarding whitespace around line breaks
    3. replace whitespace inside tags with underscores
       (``<Part name>`` becomes ``<Part_name>``)
    4. close single-line tags (``<tag>value`` becomes ``<tag>value</tag>``)
    5. complete tags that may have no value (``<fixturing>`` becomes
       ``<fixturing></fixturing>``)

    Lines that match none of the rules are passed through unchanged. This
    function does not check the result: markup that is still malformed is
    reported by the tree builder.

    Parameters
    ----------
    text
        Contents of a ``.nsipro`` file
    null_value_tags
        Tags that may appear with no value; defaults to
        ``settings.NSIPRO_NULL_VALUE_TAGS``

    Returns
    -------
    str
        The repaired markup, one element per line
    """
    if null_value_tags is None:
        null_value_tags = settings.NSIPRO_NULL_VALUE_TAGS
    null_value_tags = tuple(null_value_tags)

    text = fold_continuation_lines(text)
    lines = split_lines(text)
    lines = [squeeze_tag_whitespace(line) for line in lines]
    lines = [close_single_line_tag(line) for line in lines]
    lines = [complete_null_value_tag(line, null_value_tags) for line in lines]

    _logger.debug("Normalized %d lines", len(lines))
    return "\n".join(lines)
