"""Flatten parsed records into single-row mappings for tabular export."""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Dict, List

from nsipro.config import settings
from nsipro.utils.dicts import flatten_dict

_logger = logging.getLogger(__name__)


def _tabular_value(value):
    # lists become index-keyed mappings so every element gets its own column
    if isinstance(value, dict):
        return {str(k): _tabular_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return {str(i): _tabular_value(v) for i, v in enumerate(value)}
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def tabulate_record(record: Dict[str, Any], separator: str | None = None) -> Dict[str, Any]:
    """
    Flatten a record into one table row.

    Nested keys are joined with ``separator``, list elements get their index
    as a key segment, and timestamps are rendered as ISO-8601 strings.

    Parameters
    ----------
    record
        A record returned by :py:func:`nsipro.extractors.assemble`
    separator
        String placed between key segments; defaults to
        ``settings.NSIPRO_TABULATE_SEPARATOR``

    Returns
    -------
    dict
        Mapping of column name to scalar value

    Examples
    --------
    >>> tabulate_record({"Setup": {"kV": 90}, "Comments": ["a", "b"]})
    {'Setup.kV': 90, 'Comments.0': 'a', 'Comments.1': 'b'}
    """
    if separator is None:
        separator = settings.NSIPRO_TABULATE_SEPARATOR
    return flatten_dict(_tabular_value(record), separator=separator)


def tabulate_records(
    records: Iterable[Dict[str, Any]], separator: str | None = None
) -> List[Dict[str, Any]]:
    """Flatten each of ``records`` with :py:func:`tabulate_record`."""
    rows = [tabulate_record(record, separator) for record in records]
    _logger.debug("Tabulated %d record(s)", len(rows))
    return rows
