"""
Assemble a complete record from the text of a ``.nsipro`` file.

:py:func:`assemble` runs the whole pipeline for one file: the text is
repaired into markup, parsed into a typed tree, and every field derivation in
:py:mod:`nsipro.extractors.fields` is run against the tree. The results are
attached to the tree under ``derived_fields``.

Only a failure to parse the file is fatal. A derivation that fails is logged
and its field is left empty, so one odd value never loses the rest of the
record.
"""

import logging
from pathlib import Path
from typing import Any, Callable

from nsipro.extractors import fields
from nsipro.extractors.base import (
    DerivationError,
    ExtractionContext,
    MarkupError,
    ParseError,
)
from nsipro.extractors.normalize import normalize
from nsipro.extractors.schemas import (
    Detector,
    DerivedFields,
    Dimensions,
    ReportedActual,
    Source,
)
from nsipro.extractors.tree import ParseTree, build

_logger = logging.getLogger(__name__)

DERIVED_FIELDS_KEY = "derived_fields"

# Errors a single field derivation may raise without aborting the record
_RECOVERABLE_ERRORS = (DerivationError, LookupError, TypeError, ValueError)


def _derive(name: str, func: Callable[..., Any], *args, default=None):
    """Call a field derivation, turning a failure into ``default`` plus a warning."""
    try:
        return func(*args)
    except _RECOVERABLE_ERRORS as e:
        _logger.warning("Could not derive %s: %s", name, e)
        return default


def derive_fields(tree: ParseTree, fname=None) -> DerivedFields:
    """
    Run every field derivation against a parsed tree.

    Parameters
    ----------
    tree
        A tree built by :py:func:`nsipro.extractors.tree.build`
    fname
        Path of the source file, recorded as ``nsipro_filepath``

    Returns
    -------
    DerivedFields
        The derived values; fields that could not be derived are ``None``
    """
    acquisition_begin = _derive("acquisition_begin", fields.get_acquisition_begin, tree)
    acquisition_end = _derive("acquisition_end", fields.get_acquisition_end, tree)
    acquisition_duration = _derive(
        "acquisition_duration",
        fields.get_acquisition_duration,
        acquisition_begin,
        acquisition_end,
    )
    scan_type, scan_type_category = _derive(
        "scan_type", fields.get_scan_type, tree, default=(None, None)
    )
    reported_voltage, actual_voltage = _derive(
        "voltage", fields.get_voltage, tree, default=(None, None)
    )
    reported_current, actual_current = _derive(
        "current", fields.get_current, tree, default=(None, None)
    )

    resolution = _derive("dimensions", fields.get_resolution, tree)
    dimensions = Dimensions.from_xyz(resolution) if resolution else None

    return DerivedFields(
        nsipro_filepath=str(fname) if fname is not None else None,
        # Scan duration (acquisition)
        acquisition_begin=acquisition_begin,
        acquisition_end=acquisition_end,
        acquisition_duration=acquisition_duration,
        # Identifiers
        session_name=_derive("session_name", fields.get_session_name, tree),
        uid=_derive("uid", fields.get_uid, tree),
        # High-level scan details
        scan_type=scan_type,
        scan_type_category=scan_type_category,
        acquisition_software_version=_derive(
            "acquisition_software_version",
            fields.get_acquisition_software_version,
            tree,
        ),
        source_to_detector_distance=_derive(
            "source_to_detector_distance",
            fields.get_source_to_detector_distance,
            tree,
        ),
        source_to_table_distance=_derive(
            "source_to_table_distance", fields.get_source_to_table_distance, tree
        ),
        pitch=_derive("pitch", fields.get_pitch, tree),
        estimated_slicethickness=_derive(
            "estimated_slicethickness", fields.get_estimated_slicethickness, tree
        ),
        dimensions=dimensions,
        source=Source(
            voltage=ReportedActual(reported=reported_voltage, actual=actual_voltage),
            current=ReportedActual(reported=reported_current, actual=actual_current),
        ),
        filter=_derive("filter", fields.get_filter, tree),
        detector=Detector(framerate=_derive("framerate", fields.get_framerate, tree)),
        calculated_Ug=_derive("calculated_Ug", fields.get_calculated_Ug, tree),
        zoom_factor=_derive("zoom_factor", fields.get_zoom_factor, tree),
        projections=_derive("projections", fields.get_projection_count, tree),
        # only applies to VorteX scans
        rotations=_derive("rotations", fields.get_rotation_count, tree),
        frames_averaged=_derive("frames_averaged", fields.get_frames_averaged, tree),
        # only applies to VorteX scans
        helical_pitch=_derive("helical_pitch", fields.get_helical_pitch, tree),
        defective_pixels=_derive("defective_pixels", fields.get_defective_pixels, tree),
    )


def assemble(fname, text: str) -> ParseTree:
    """
    Parse the text of a ``.nsipro`` file into a record.

    Parameters
    ----------
    fname
        Path of the file; only used to tag the record with its origin
    text
        Contents of the file

    Returns
    -------
    dict
        The typed tree of the file, with the derived values under
        ``derived_fields``

    Raises
    ------
    ParseError
        If the file could not be parsed. The underlying error (usually a
        :py:class:`~nsipro.extractors.base.MarkupError`) is chained.
    """
    _logger.debug("Parsing %s", fname)
    markup = normalize(text)
    try:
        tree = build(markup)
    except MarkupError as e:
        msg = f"could not parse markup ({e})"
        raise ParseError(fname, msg) from e

    tree[DERIVED_FIELDS_KEY] = derive_fields(tree, fname).to_record()
    return tree


class NsiproExtractor:
    """
    Extractor for NSI efX-CT ``.nsipro`` project files.

    Reads the file named by the context (unless its text is given) and
    returns the assembled record.
    """

    def supports(self, context: ExtractionContext) -> bool:
        """
        Check if this extractor supports the given file.

        Parameters
        ----------
        context
            The extraction context containing file information

        Returns
        -------
        bool
            True if file extension is .nsipro
        """
        extension = Path(context.file_path).suffix.lower().lstrip(".")
        return extension == "nsipro"

    def extract(self, context: ExtractionContext) -> ParseTree:
        """
        Extract the record from a ``.nsipro`` file.

        Parameters
        ----------
        context
            The extraction context containing file information

        Returns
        -------
        dict
            The parsed tree with ``derived_fields`` attached

        Raises
        ------
        ParseError
            If the file could not be parsed
        """
        _logger.debug("Extracting metadata from NSIPRO file: %s", context.file_path)
        return assemble(context.file_path, context.read_text())
