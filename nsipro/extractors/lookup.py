"""
Find values in a parsed tree without knowing where they are.

The ``.nsipro`` format has no fixed schema: depending on the software version
the same field can sit at a different depth, appear more than once, or use a
differently-cased tag name. :py:func:`lookup` searches the whole tree for a
key and reports what it found, leaving it to the caller to decide what to do
when the same key holds different values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from nsipro.utils.dicts import try_getting_dict_value

_logger = logging.getLogger(__name__)

__all__ = [
    "LookupAmbiguity",
    "as_list",
    "first_value",
    "get_path",
    "iter_matches",
    "lookup",
    "lookup_first",
]


class LookupAmbiguity(list):
    """
    Every value found for a key that holds more than one distinct value.

    This is a plain list (in document order) with a distinct type, so callers
    can tell "the key is ambiguous" apart from "the key holds a single value".
    """


def _iter_key_values(key: str, node) -> Iterator[Any]:
    if isinstance(node, dict):
        for k, v in node.items():
            if k == key:
                yield v
            yield from _iter_key_values(key, v)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_key_values(key, item)


def iter_matches(key: str, tree) -> Iterator[Any]:
    """
    Yield every value stored under ``key`` anywhere in ``tree``.

    The tree is walked depth-first in document order. A value that is a list
    (a tag repeated at one level) contributes each of its items separately.
    """
    for value in _iter_key_values(key, tree):
        if isinstance(value, list):
            yield from value
        else:
            yield value


def _distinct(values: list) -> list:
    # Values may be unhashable (dicts, lists), so compare by equality;
    # True == 1 in Python but they are different values here
    unique: list = []
    for value in values:
        if not any(
            value == u and isinstance(value, bool) == isinstance(u, bool)
            for u in unique
        ):
            unique.append(value)
    return unique


def lookup(key: str, tree):
    """
    Search the whole tree for ``key``.

    Parameters
    ----------
    key
        The tag name to search for (exact, case-sensitive match)
    tree
        A parsed tree

    Returns
    -------
    object, LookupAmbiguity or None
        ``None`` if the key does not occur; the value itself if every
        occurrence holds the same value; otherwise a :py:class:`LookupAmbiguity`
        with all occurrences in document order

    Examples
    --------
    >>> lookup("kV", {"a": {"kV": 90}, "b": {"kV": 90}})
    90
    >>> lookup("kV", {"a": {"kV": 90}, "b": {"kV": 120}})
    [90, 120]
    >>> lookup("kV", {"a": 1}) is None
    True
    """
    values = list(iter_matches(key, tree))
    _logger.debug("Searching for '%s': %d match(es)", key, len(values))

    if not values:
        return None
    unique_values = _distinct(values)
    if len(unique_values) == 1:
        return unique_values[0]
    return LookupAmbiguity(values)


def lookup_first(keys: Iterable[str], tree):
    """
    Return the result of :py:func:`lookup` for the first of ``keys`` that occurs.

    Parameters
    ----------
    keys
        Candidate tag names, in order of preference
    tree
        A parsed tree

    Returns
    -------
    object, LookupAmbiguity or None
        The lookup result for the first key found, or ``None``
    """
    for key in keys:
        value = lookup(key, tree)
        if value is not None:
            return value
    return None


def first_value(value, name: str | None = None):
    """
    Resolve a possibly ambiguous lookup result to its first value.

    Parameters
    ----------
    value
        A result of :py:func:`lookup`
    name
        Name of the field, used in the log message

    Returns
    -------
    object or None
        ``value`` itself, or its first item if it is a list of candidates
        (a :py:class:`LookupAmbiguity` or a repeated tag)
    """
    if isinstance(value, list):
        if not value:
            return None
        distinct_count = len(_distinct(value))
        if distinct_count > 1:
            _logger.warning(
                "Found %d different values for %s; using the first (%r)",
                distinct_count,
                name or "field",
                value[0],
            )
        return value[0]
    return value


def as_list(value) -> list:
    """
    Normalize a value that may be a single item or several into a list.

    ``None`` becomes an empty list, a list (or ambiguity) is copied, and any
    other value is wrapped in a one-element list.
    """
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def get_path(tree, *path: str):
    """
    Get the value at a fixed path of keys, or ``None`` if it does not exist.

    Examples
    --------
    >>> get_path({"Setup": {"kV": 90}}, "Setup", "kV")
    90
    >>> get_path({"Setup": {"kV": 90}}, "Setup", "uA") is None
    True
    """
    return try_getting_dict_value(tree, path)
