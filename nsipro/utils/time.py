"""Time and date utilities for nsipro."""

from collections.abc import Iterable
from datetime import datetime

from nsipro.config import settings


def parse_timestamp(value, formats: Iterable[str] | None = None):
    """
    Parse a timestamp string written by the NSI software.

    Each format is tried in order and the first successful match wins. The
    resulting :py:class:`~datetime.datetime` is naive, since the NSI software
    does not record a timezone. Parsing is best-effort: anything that does not
    match (including values that are not strings) is returned unchanged.

    Parameters
    ----------
    value
        The value to parse
    formats
        strptime formats to try; defaults to ``settings.NSIPRO_DATETIME_FORMATS``

    Returns
    -------
    datetime.datetime or object
        The parsed timestamp, or ``value`` itself if no format matched

    Examples
    --------
    >>> parse_timestamp("14-Jan-21 10:00:00 AM")
    datetime.datetime(2021, 1, 14, 10, 0)
    >>> parse_timestamp("not a date")
    'not a date'
    """
    if not isinstance(value, str):
        return value
    if formats is None:
        formats = settings.NSIPRO_DATETIME_FORMATS

    text = value.strip()
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)  # noqa: DTZ007
        except ValueError:
            continue

    return value
