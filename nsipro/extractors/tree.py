"""
Build a typed dictionary tree from repaired ``.nsipro`` markup.

The tree follows the layout of the markup: every element becomes a key of
its parent's dictionary, repeated elements become a list, and an element's
attributes are merged into its own dictionary. String leaves are converted to
``int``, ``float``, ``bool`` or :py:class:`~datetime.datetime` where they look
like one, and finally lists holding a single item are replaced by that item.
"""

import logging
import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Dict, List, Union

from lxml import etree

from nsipro.extractors.base import MarkupError
from nsipro.utils.time import parse_timestamp

_logger = logging.getLogger(__name__)

ParseTree = Dict[str, Any]
Value = Union[int, float, bool, datetime, str, ParseTree, List[Any]]

TEXT_KEY = "#text"
"""Key holding the character data of an element that also has children or attributes."""

CONTAINER_TAG = "nsipro_document"
"""Synthetic element wrapped around the markup so fragments with several top-level tags parse."""

XML_DECLARATION_PATTERN = re.compile(r"^\s*<\?xml[^>]*\?>")
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
FLOAT_PATTERN = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")
BOOLEAN_PATTERN = re.compile(r"^(?:true|false)$", re.IGNORECASE)


def coerce_scalar(value: str, formats: Iterable[str] | None = None) -> Value:
    """
    Convert a string leaf to the type it represents.

    Conversions are tried in order: integer or float if the whole string is
    numeric, then ``true``/``false`` (any case) to bool, then each timestamp
    format. A string matching none of them is returned unchanged.

    Parameters
    ----------
    value
        The string from the markup
    formats
        Timestamp formats, see :py:func:`nsipro.utils.time.parse_timestamp`

    Returns
    -------
    int, float, bool, datetime.datetime or str
        The converted value

    Examples
    --------
    >>> coerce_scalar("225")
    225
    >>> coerce_scalar("0.127")
    0.127
    >>> coerce_scalar("True")
    True
    >>> coerce_scalar("14-Jan-21 10:00:00 AM")
    datetime.datetime(2021, 1, 14, 10, 0)
    """
    text = value.strip()
    if INTEGER_PATTERN.match(text):
        try:
            return int(text)
        except ValueError:
            # longer than the interpreter allows converting to int
            _logger.warning("Keeping %d-digit number as text", len(text))
            return value
    if FLOAT_PATTERN.match(text):
        return float(text)
    if BOOLEAN_PATTERN.match(text):
        return text.lower() == "true"
    return parse_timestamp(value, formats)


def _character_data(element) -> str:
    """Concatenate the text directly inside ``element`` (not inside its children)."""
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts)


def _element_to_dict(element, formats) -> ParseTree:
    """
    Convert the attributes and children of ``element`` into a dictionary.

    Every value is collected into a list at this stage, even when the name
    occurs only once; :py:func:`flatten_singletons` collapses them afterwards.
    """
    node: ParseTree = {}
    for name, value in element.attrib.items():
        node.setdefault(name, []).append(coerce_scalar(value, formats))
    for child in element:
        node.setdefault(child.tag, []).append(_element_value(child, formats))
    return node


def _element_value(element, formats) -> Value:
    text = _character_data(element)
    if len(element) == 0 and not element.attrib:
        return coerce_scalar(text, formats)

    node = _element_to_dict(element, formats)
    if text.strip():
        node[TEXT_KEY] = coerce_scalar(text.strip(), formats)
    return node


def flatten_singletons(value: Value) -> Value:
    """
    Replace every list holding a single item by that item, at every level.

    A new tree is built bottom-up; the input is left untouched. Dictionary
    keys are never altered. Applying this function to its own output returns
    an equal tree.

    Parameters
    ----------
    value
        A tree, list or scalar

    Returns
    -------
    Value
        The flattened copy

    Examples
    --------
    >>> flatten_singletons({"a": [{"b": [1]}], "c": [1, 2]})
    {'a': {'b': 1}, 'c': [1, 2]}
    """
    if isinstance(value, dict):
        return {key: flatten_singletons(item) for key, item in value.items()}
    if isinstance(value, list):
        if len(value) == 1:
            return flatten_singletons(value[0])
        return [flatten_singletons(item) for item in value]
    return value


def parse_markup(markup: str, formats: Iterable[str] | None = None) -> ParseTree:
    """
    Parse markup into a dictionary tree without flattening singleton lists.

    Parameters
    ----------
    markup
        Well-formed markup, as returned by
        :py:func:`nsipro.extractors.normalize.normalize`
    formats
        Timestamp formats used for scalar coercion

    Returns
    -------
    dict
        Mapping of each top-level tag to a list of its values

    Raises
    ------
    MarkupError
        If the markup is not well-formed
    """
    body = XML_DECLARATION_PATTERN.sub("", markup, count=1)
    parser = etree.XMLParser(
        remove_comments=True,
        remove_pis=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )
    try:
        root = etree.fromstring(f"<{CONTAINER_TAG}>{body}</{CONTAINER_TAG}>", parser)
    except etree.XMLSyntaxError as e:
        _logger.debug("Markup could not be parsed: %s", e)
        raise MarkupError(str(e)) from e

    if formats is not None:
        formats = tuple(formats)
    return _element_to_dict(root, formats)


def build(markup: str, formats: Iterable[str] | None = None) -> ParseTree:
    """
    Parse markup into a typed tree.

    Parameters
    ----------
    markup
        Well-formed markup
    formats
        Timestamp formats used for scalar coercion; defaults to
        ``settings.NSIPRO_DATETIME_FORMATS``

    Returns
    -------
    dict
        The typed tree, with singleton lists flattened

    Raises
    ------
    MarkupError
        If the markup is not well-formed

    Examples
    --------
    >>> build("<Part_name>ABC123</Part_name>")
    {'Part_name': 'ABC123'}
    """
    return flatten_singletons(parse_markup(markup, formats))
