"""Shared pytest fixtures for the nsipro test suite."""

from pathlib import Path

import pytest

FILES_DIR = Path(__file__).parent / "unit" / "files"


@pytest.fixture
def sample_file() -> Path:
    """A realistic project file written by a recent NSI software version."""
    return FILES_DIR / "sample.nsipro"


@pytest.fixture
def sample_text(sample_file) -> str:
    """Contents of :py:func:`sample_file`."""
    return sample_file.read_text(encoding="utf-8")


@pytest.fixture
def sample_record(sample_file):
    """:py:func:`sample_file` parsed into a record."""
    from nsipro.extractors import parse_nsipro

    return parse_nsipro(sample_file)


@pytest.fixture
def legacy_text() -> str:
    """A project file from an older software version, with no scan type or end tags."""
    return "\n".join(
        [
            "<NSI_Reconstruction_Project>",
            "<Creation_Date>14-Jan-21 10:00:00 AM",
            "<Project_folder>C:\\NSI\\legacy_part",
            "<Part_Name>LEGACY-7",
            "<Comments>Standard scan completed 14-Jan-21 10:05:00 AM",
            "</NSI_Reconstruction_Project>",
        ]
    )
