"""
Extraction pipeline for NSI ``.nsipro`` project files.

A file goes through three stages:

1. :py:mod:`~nsipro.extractors.normalize` repairs the quasi-XML text into
   well-formed markup
2. :py:mod:`~nsipro.extractors.tree` parses the markup into a typed tree
3. :py:mod:`~nsipro.extractors.fields` derives the normalized scan metadata,
   using :py:mod:`~nsipro.extractors.lookup` to find values wherever the
   software version put them

:py:mod:`~nsipro.extractors.record` strings the stages together. Most callers
only need :py:func:`parse_nsipro`:

>>> from nsipro.extractors import parse_nsipro
>>> record = parse_nsipro("scan_0042.nsipro")  # doctest: +SKIP
>>> record["derived_fields"]["scan_type_category"]  # doctest: +SKIP
'VorteX'
"""

import logging
from pathlib import Path

from nsipro.extractors.base import (
    DerivationError,
    ExtractionContext,
    MarkupError,
    NsiproError,
    ParseError,
)
from nsipro.extractors.lookup import LookupAmbiguity, lookup
from nsipro.extractors.normalize import normalize
from nsipro.extractors.record import NsiproExtractor, assemble
from nsipro.extractors.tree import build

_logger = logging.getLogger(__name__)

__all__ = [
    "DerivationError",
    "ExtractionContext",
    "LookupAmbiguity",
    "MarkupError",
    "NsiproError",
    "NsiproExtractor",
    "ParseError",
    "assemble",
    "build",
    "lookup",
    "normalize",
    "parse_nsipro",
]


def parse_nsipro(path, text: str | None = None):
    """
    Parse a single ``.nsipro`` file into a record.

    A path with another extension is still parsed, with a warning.

    Parameters
    ----------
    path : str or pathlib.Path
        Path of the file
    text
        Contents of the file; read from ``path`` if not given.

    Returns
    -------
    dict
        The typed tree of the file with ``derived_fields`` attached

    Raises
    ------
    ParseError
        If the file is not well-formed even after repair
    """
    context = ExtractionContext(file_path=Path(path), text=text)
    extractor = NsiproExtractor()
    if not extractor.supports(context):
        _logger.warning(
            "%s does not have a .nsipro extension; parsing it anyway", path
        )
    return extractor.extract(context)
