"""
Pydantic schemas for the ``derived_fields`` section of a parsed record.

:class:`DerivedFields` is the normalized summary the record assembler
attaches to every parsed tree. Fields the file does not provide are ``None``;
``dimensions`` is left out of the dumped dictionary entirely when the project
has no reconstructed volume.

Examples
--------
>>> from nsipro.extractors.schemas import DerivedFields, Dimensions
>>> fields = DerivedFields(uid="ABC123", dimensions=Dimensions.from_xyz((512, 400, 256)))
>>> record = fields.to_record()
>>> record["dimensions"]["height"]
400
"""

from datetime import datetime
from typing import Any, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

Scalar = Union[bool, int, float, datetime, str]
"""A value copied from the tree as-is. ``bool`` comes first so it is not coerced to ``int``."""


class Dimensions(BaseModel):
    """Size of the reconstructed volume, in voxels."""

    width: int
    height: int
    depth: int
    xyz: Tuple[int, int, int] = Field(
        ..., description="``(width, height, depth)`` as a single value"
    )

    @classmethod
    def from_xyz(cls, xyz: Tuple[int, int, int]) -> "Dimensions":
        """Build from a ``(width, height, depth)`` triplet."""
        width, height, depth = xyz
        return cls(width=width, height=height, depth=depth, xyz=(width, height, depth))


class ReportedActual(BaseModel):
    """A source setting as requested (reported) and as measured (actual)."""

    reported: Scalar | None = None
    actual: Scalar | None = None


class Source(BaseModel):
    """X-ray source settings."""

    voltage: ReportedActual = Field(default_factory=ReportedActual)
    current: ReportedActual = Field(default_factory=ReportedActual)


class Detector(BaseModel):
    """Detector settings."""

    framerate: Scalar | None = None


class DerivedFields(BaseModel):
    """
    Schema for the ``derived_fields`` section of a parsed ``.nsipro`` record.

    Attributes
    ----------
    nsipro_filepath : str or None
        Path of the file the record was parsed from
    acquisition_begin, acquisition_end : datetime.datetime, str or None
        Start and end of the acquisition. A value the parser could not read
        as a timestamp is kept as the original string.
    acquisition_duration : float or None
        ``acquisition_end - acquisition_begin`` in seconds
    session_name : str or None
        Last component of the NSI project folder
    uid : str or None
        Part name entered by the technician
    scan_type, scan_type_category : str or None
        e.g. ``"VorteX continuous"`` and ``"VorteX"``; both ``None`` when the
        file does not record the scan type
    estimated_slicethickness : float or None
        Detector pitch scaled by the geometric magnification
    dimensions : Dimensions or None
        Only set for projects with a reconstructed volume
    """

    model_config = ConfigDict(extra="forbid")

    nsipro_filepath: str | None = None

    acquisition_begin: datetime | str | None = None
    acquisition_end: datetime | str | None = None
    acquisition_duration: float | None = None

    session_name: str | None = None
    uid: str | None = None

    scan_type: str | None = None
    scan_type_category: str | None = None
    acquisition_software_version: Scalar | None = None

    source_to_detector_distance: Scalar | None = None
    source_to_table_distance: Scalar | None = None
    pitch: Scalar | None = None
    estimated_slicethickness: float | None = None

    dimensions: Dimensions | None = None

    source: Source = Field(default_factory=Source)
    filter: Scalar | None = None
    detector: Detector = Field(default_factory=Detector)
    calculated_Ug: Scalar | None = None  # noqa: N815
    zoom_factor: float | None = None
    projections: Scalar | None = None
    rotations: Scalar | None = None
    frames_averaged: Scalar | None = None
    helical_pitch: Scalar | None = None
    defective_pixels: int | None = None

    def to_record(self) -> dict[str, Any]:
        """
        Dump to the dictionary stored under ``derived_fields``.

        Timestamps stay :py:class:`~datetime.datetime` objects; ``dimensions``
        is omitted when there is no reconstructed volume.
        """
        exclude = {"dimensions"} if self.dimensions is None else None
        return self.model_dump(exclude=exclude)
