"""
Derive normalized scan metadata from a parsed ``.nsipro`` tree.

Each ``get_*`` function takes the whole tree and returns one value (or
``None`` when the information is not in the file). The functions are
independent of each other and keep no state between calls, so the record
assembler can call them in any order and treat a failure in one as a missing
field.

Different versions of the NSI software store the same information in
different ways, so most functions try several sources: alternative tag
names, alternative places in the tree, and, for older files, values
recovered from the free-text ``Comments`` field.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import PureWindowsPath
from typing import NamedTuple, Tuple

from nsipro.extractors.base import DerivationError
from nsipro.extractors.lookup import (
    as_list,
    first_value,
    get_path,
    lookup,
    lookup_first,
)
from nsipro.extractors.tree import TEXT_KEY
from nsipro.utils.time import parse_timestamp

_logger = logging.getLogger(__name__)

PROJECT_ROOT = "NSI_Reconstruction_Project"
PROJECT_CONFIGURATION = (PROJECT_ROOT, "CT_Project_Configuration")

SCAN_TYPE_CATEGORIES = ("MosaiX", "VorteX")
"""Scan techniques recognized in ``Scan_Type``, checked in order."""

COMMENT_SCAN_TYPE_CATEGORIES = (*SCAN_TYPE_CATEGORIES, "Helical")
"""Scan techniques recognized in the ``Comments`` of older files, checked in order."""

DEFAULT_SCAN_TYPE_CATEGORY = "Standard"

SCAN_COMPLETED_PATTERN = re.compile(
    r"^(?P<scan_type>.*) scan completed (?P<timestamp>.*)$", re.DOTALL
)
"""Comment written by older software versions, e.g. ``VorteX scan completed 14-Jan-21 10:05:00 AM``."""

UG_PIXELS_PATTERN = re.compile(r"\((?P<value>[-+]?(?:\d+\.?\d*|\.\d+))\s+pixels\)")
LEADING_NUMBER_PATTERN = re.compile(
    r"^\s*(?P<value>[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
)
DEFECTIVE_PIXELS_PATTERN = re.compile(r"(?P<count>\d+)\s+defective")


class KeyedField(NamedTuple):
    """A derived field read directly from the first of several candidate tags."""

    name: str
    keys: Tuple[str, ...]


FILTER = KeyedField("filter", ("phys_filter", "filter"))
FRAMERATE = KeyedField("framerate", ("fps", "framerate", "frame_rate"))
PROJECTIONS = KeyedField(
    "projections", ("Number_of_projections", "number_of_projections", "projections")
)
ROTATIONS = KeyedField(
    "rotations", ("Number_of_rotations", "number_of_rotations", "rotations")
)
FRAMES_AVERAGED = KeyedField(
    "frames_averaged", ("frames_averaged", "Frames_averaged", "frames_to_average")
)
HELICAL_PITCH = KeyedField("helical_pitch", ("helical_pitch", "Helical_pitch"))
SOFTWARE_VERSION = KeyedField(
    "acquisition_software_version", ("Acquisition_Software", "acquisition_software")
)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _scalar(value, name: str):
    """Reduce a found value to one scalar; an element with children gives its ``#text``."""
    value = first_value(value, name)
    if isinstance(value, dict):
        value = value.get(TEXT_KEY)
    if value == "" or isinstance(value, (dict, list)):
        return None
    return value


def _get_keyed_field(tree, field: KeyedField):
    return _scalar(lookup_first(field.keys, tree), field.name)


def _single_timestamp(value, name: str):
    """
    Reduce the value(s) found for a timestamp field to one timestamp.

    Identical duplicates collapse to one value. Different timestamps are never
    merged; the first one in document order is used.
    """
    value = first_value(value, name)
    if isinstance(value, (datetime, str)):
        return parse_timestamp(value)
    _logger.warning("%s is not a timestamp: %r", name, value)
    return None


def _technique_configuration(tree):
    subtree = get_path(tree, *PROJECT_CONFIGURATION, "Technique_Configuration")
    if subtree is None:
        subtree = lookup("Technique_Configuration", tree)
    subtree = first_value(subtree, "Technique_Configuration")
    return subtree if isinstance(subtree, dict) else None


def _comment_strings(tree) -> list[str]:
    return [c for c in as_list(lookup("Comments", tree)) if isinstance(c, str)]


def _first_scan_completed_match(tree):
    for comment in _comment_strings(tree):
        m = SCAN_COMPLETED_PATTERN.match(comment.strip())
        if m:
            return m
    return None


def get_session_name(tree) -> str | None:
    """
    Get the session name: the last component of the project folder.

    Newer files store the folder as ``Project_Folder``, older ones as
    ``Project_folder``. Windows path separators are handled.

    Examples
    --------
    >>> get_session_name({"Project_Folder": "D:\\\\Scans\\\\2021\\\\session_01"})
    'session_01'
    """
    folder = _scalar(
        lookup_first(("Project_Folder", "Project_folder"), tree), "project folder"
    )
    if folder is None:
        return None
    folder = str(folder).replace("\\", "/").rstrip("/")
    return PureWindowsPath(folder).name or None


def get_acquisition_begin(tree):
    """
    Get the time the acquisition started.

    Uses ``acquisition_begin`` from the project configuration when present,
    otherwise the file's ``Creation_Date``.

    Returns
    -------
    datetime.datetime, str or None
        The timestamp (or the raw string if it could not be parsed)
    """
    # CT_Project_Configuration is occasionally repeated
    configurations = as_list(get_path(tree, *PROJECT_CONFIGURATION))
    values = [
        v
        for config in configurations
        if isinstance(config, dict)
        for v in as_list(config.get("acquisition_begin"))
    ]
    if values:
        return _single_timestamp(values, "acquisition_begin")
    _logger.debug("No acquisition_begin in project configuration, using Creation_Date")

    value = get_path(tree, PROJECT_ROOT, "Creation_Date")
    if value is None:
        value = lookup("Creation_Date", tree)
    if value is None:
        return None
    return _single_timestamp(value, "Creation_Date")


def get_acquisition_end(tree):
    """
    Get the time the acquisition finished.

    Newer files have an ``acquisition_end`` tag; older ones only mention the
    time in a ``Comments`` entry such as ``Standard scan completed 14-Jan-21
    10:05:00 AM``. The first matching comment is used.
    """
    value = lookup("acquisition_end", tree)
    if value is not None:
        return _single_timestamp(value, "acquisition_end")

    m = _first_scan_completed_match(tree)
    if m is None or not m.group("timestamp"):
        return None
    timestamp = parse_timestamp(m.group("timestamp").strip())
    if not isinstance(timestamp, datetime):
        _logger.warning("Could not parse completion time from comment: %r", m.group(0))
        return None
    return timestamp


def get_acquisition_duration(begin, end) -> float:
    """
    Get the acquisition duration in seconds.

    Parameters
    ----------
    begin, end
        Results of :py:func:`get_acquisition_begin` and
        :py:func:`get_acquisition_end`

    Returns
    -------
    float
        ``end - begin`` in seconds

    Raises
    ------
    DerivationError
        If either endpoint is missing or is not a timestamp
    """
    if not isinstance(begin, datetime) or not isinstance(end, datetime):
        msg = f"Cannot compute acquisition duration from begin={begin!r}, end={end!r}"
        raise DerivationError(msg)
    return (end - begin).total_seconds()


def get_uid(tree) -> str | None:
    """Get the part name entered by the technician."""
    uid = _scalar(lookup("Part_name", tree), "Part_name")
    if uid is None:
        # alternative key sometimes stores the part name
        uid = _scalar(lookup("Part_Name", tree), "Part_Name")
    if uid is None:
        return None
    return str(uid)


def _categorize(scan_type: str, categories) -> str:
    for category in categories:
        if category in scan_type:
            return category
    return DEFAULT_SCAN_TYPE_CATEGORY


def get_scan_type(tree) -> Tuple[str | None, str | None]:
    """
    Get the scan type and its category.

    The category is the first of ``MosaiX``/``VorteX`` contained in the scan
    type (``VorteX continuous`` becomes ``VorteX``), or ``Standard``. Older
    software versions only mention the scan type in ``Comments``, where
    ``Helical`` is also recognized.

    Returns
    -------
    tuple
        ``(scan_type, category)``, or ``(None, None)`` if the file does not
        record the scan type at all
    """
    value = _scalar(lookup("Scan_Type", tree), "Scan_Type")
    if value is not None:
        scan_type = str(value)
        return scan_type, _categorize(scan_type, SCAN_TYPE_CATEGORIES)

    m = _first_scan_completed_match(tree)
    if m is not None and m.group("scan_type"):
        scan_type = m.group("scan_type").strip()
        return scan_type, _categorize(scan_type, COMMENT_SCAN_TYPE_CATEGORIES)

    return None, None


def get_acquisition_software_version(tree):
    """Get the version of the acquisition software."""
    return _get_keyed_field(tree, SOFTWARE_VERSION)


def _get_setup_value(tree, key: str):
    technique = _technique_configuration(tree)
    value = get_path(technique, "Setup", key) if technique is not None else None
    if value is None:
        _logger.info("Could not find %s in Technique_Configuration.Setup", key)
    return _scalar(value, key)


def get_source_to_detector_distance(tree):
    """Get the source to detector distance (SDD)."""
    return _get_setup_value(tree, "source_to_detector_distance")


def get_source_to_table_distance(tree):
    """Get the source to table (object) distance (SOD)."""
    return _get_setup_value(tree, "source_to_table_distance")


def get_pitch(tree):
    """Get the detector pixel pitch from the ``Ug`` settings."""
    technique = _technique_configuration(tree)
    if technique is None:
        return None
    pitch = _scalar(get_path(technique, "Ug", "det_pitch"), "det_pitch")
    if pitch is None:
        _logger.info("Could not find det_pitch in Technique_Configuration.Ug")
    return pitch


def estimate_slicethickness(pitch, source_to_detector_distance, source_to_table_distance):
    """
    Estimate the reconstructed slice thickness.

    The detector pitch is scaled down by the geometric magnification
    ``source_to_detector_distance / source_to_table_distance``.

    Raises
    ------
    DerivationError
        If any of the inputs is missing, zero, or not a number

    Examples
    --------
    >>> estimate_slicethickness(2, 500, 300)
    1.2
    """
    inputs = {
        "pitch": pitch,
        "source_to_detector_distance": source_to_detector_distance,
        "source_to_table_distance": source_to_table_distance,
    }
    unusable = [k for k, v in inputs.items() if not _is_number(v) or not v]
    if unusable:
        msg = f"Cannot estimate slice thickness without {', '.join(unusable)}"
        raise DerivationError(msg)
    return pitch * source_to_table_distance / source_to_detector_distance


def get_estimated_slicethickness(tree) -> float | None:
    """Estimate the slice thickness from the values in ``tree``, or ``None``."""
    try:
        return estimate_slicethickness(
            get_pitch(tree),
            get_source_to_detector_distance(tree),
            get_source_to_table_distance(tree),
        )
    except DerivationError as e:
        _logger.warning("%s", e)
        return None


def get_resolution(tree) -> Tuple[int, int, int] | None:
    """
    Get the reconstructed volume's dimensions.

    Only files with a reconstruction have a ``Volume`` section. Its
    ``resolution`` is written as ``width depth height``.

    Returns
    -------
    tuple of int or None
        ``(width, height, depth)``
    """
    volume = first_value(lookup("Volume", tree), "Volume")
    if not isinstance(volume, dict):
        return None
    resolution = first_value(lookup("resolution", volume), "resolution")
    if not isinstance(resolution, str):
        return None

    parts = resolution.split()
    if len(parts) != 3:  # noqa: PLR2004
        _logger.warning("Unexpected volume resolution: %r", resolution)
        return None
    try:
        width, depth, height = (int(float(p)) for p in parts)
    except ValueError:
        _logger.warning("Unexpected volume resolution: %r", resolution)
        return None
    return width, height, depth


def _reported_and_actual(tree, reported_key: str, actual_key: str):
    reported = _scalar(lookup(reported_key, tree), reported_key)
    actual = _scalar(lookup(actual_key, tree), actual_key)
    return reported, actual


def get_voltage(tree):
    """Get the ``(reported, actual)`` source voltage in kV."""
    return _reported_and_actual(tree, "kV", "actual_kV")


def get_current(tree):
    """Get the ``(reported, actual)`` source current in uA."""
    return _reported_and_actual(tree, "uA", "actual_uA")


def get_filter(tree):
    """Get the physical filter in front of the source."""
    return _get_keyed_field(tree, FILTER)


def get_framerate(tree):
    """Get the detector frame rate."""
    return _get_keyed_field(tree, FRAMERATE)


def get_calculated_Ug(tree):  # noqa: N802
    """
    Get the calculated geometric unsharpness (Ug), in pixels.

    Uses the numeric value of the ``Ug`` element when there is one, otherwise
    the number in the ``(<value> pixels)`` part of ``ug_text``.
    """
    technique = _technique_configuration(tree)
    ug = None
    if technique is not None:
        ug = first_value(get_path(technique, "Ug"), "Ug")
    if ug is None:
        ug = first_value(lookup("Ug", tree), "Ug")

    if _is_number(ug):
        return ug
    if isinstance(ug, dict) and _is_number(ug.get(TEXT_KEY)):
        return ug[TEXT_KEY]

    search_space = ug if isinstance(ug, dict) else tree
    for ug_text in as_list(lookup("ug_text", search_space)):
        if not isinstance(ug_text, str):
            continue
        m = UG_PIXELS_PATTERN.search(ug_text)
        if m:
            return float(m.group("value"))
    return None


def get_zoom_factor(tree) -> float | None:
    """
    Get the zoom factor from ``zoom_factor_text``.

    The text starts with an opening parenthesis, e.g. ``(1.25x)``.
    """
    text = first_value(lookup("zoom_factor_text", tree), "zoom_factor_text")
    if not isinstance(text, str) or not text:
        return None
    m = LEADING_NUMBER_PATTERN.match(text[1:])
    if m is None:
        return None
    return float(m.group("value"))


def get_projection_count(tree):
    """Get the number of projections acquired."""
    return _get_keyed_field(tree, PROJECTIONS)


def get_rotation_count(tree):
    """Get the number of rotations (VorteX scans only)."""
    return _get_keyed_field(tree, ROTATIONS)


def get_frames_averaged(tree):
    """Get the number of frames averaged per projection."""
    return _get_keyed_field(tree, FRAMES_AVERAGED)


def get_helical_pitch(tree):
    """Get the helical pitch (VorteX scans only)."""
    return _get_keyed_field(tree, HELICAL_PITCH)


def get_defective_pixels(tree) -> int | None:
    """
    Get the number of defective detector pixels.

    The count is only written in a ``status`` message such as
    ``1234 defective pixels corrected``; the first such message is used.
    """
    for status in as_list(lookup("status", tree)):
        if not isinstance(status, str):
            continue
        m = DEFECTIVE_PIXELS_PATTERN.search(status)
        if m:
            return int(m.group("count"))
    return None
