"""Write tabulated rows to CSV and full records to JSON."""

import csv
import json
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

_logger = logging.getLogger(__name__)


def _columns(rows: Iterable[Dict[str, Any]]) -> List[str]:
    """Union of the keys of ``rows``, in the order they are first seen."""
    columns: Dict[str, None] = {}
    for row in rows:
        columns.update(dict.fromkeys(row))
    return list(columns)


def write_csv(rows: Sequence[Dict[str, Any]], path) -> Path:
    """
    Write table rows to a CSV file.

    Files do not all record the same fields, so the header is the union of
    every row's columns in first-seen order; a row without a column leaves
    that cell empty.

    Parameters
    ----------
    rows
        Rows produced by :py:func:`nsipro.exporters.tabulate.tabulate_records`
    path : str or pathlib.Path
        Output file; overwritten if it exists

    Returns
    -------
    pathlib.Path
        The path that was written
    """
    path = Path(path)
    columns = _columns(rows)
    with path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=columns, restval="")
        writer.writeheader()
        writer.writerows(rows)

    _logger.info("Wrote %d row(s) and %d column(s) to %s", len(rows), len(columns), path)
    return path


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def write_json(records: Sequence[Dict[str, Any]], path) -> Path:
    """
    Write full records to a JSON file as a list.

    Timestamps are written as ISO-8601 strings.

    Parameters
    ----------
    records
        Records returned by :py:func:`nsipro.extractors.assemble`
    path : str or pathlib.Path
        Output file; overwritten if it exists

    Returns
    -------
    pathlib.Path
        The path that was written
    """
    path = Path(path)
    path.write_text(
        json.dumps(list(records), indent=2, default=_json_default) + "\n",
        encoding="utf-8",
    )
    _logger.info("Wrote %d record(s) to %s", len(records), path)
    return path
