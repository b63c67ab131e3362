# pylint: disable=C0116
# ruff: noqa: D102

"""Tests for nsipro.extractors.fields."""

import logging
from datetime import datetime

import pytest

from nsipro.extractors import fields
from nsipro.extractors.base import DerivationError
from nsipro.extractors.normalize import normalize
from nsipro.extractors.tree import build


@pytest.fixture
def sample_tree(sample_text):
    return build(normalize(sample_text))


@pytest.fixture
def legacy_tree(legacy_text):
    return build(normalize(legacy_text))


def _tree(text):
    return build(normalize(text))


class TestSampleFile:
    """Every derivation against a file from a recent software version."""

    def test_session_name(self, sample_tree):
        assert fields.get_session_name(sample_tree) == "session_01"

    def test_acquisition_times(self, sample_tree):
        begin = fields.get_acquisition_begin(sample_tree)
        end = fields.get_acquisition_end(sample_tree)
        assert begin == datetime(2021, 1, 14, 10, 0, 0)
        assert end == datetime(2021, 1, 14, 10, 45, 30)
        assert fields.get_acquisition_duration(begin, end) == 2730.0

    def test_uid(self, sample_tree):
        assert fields.get_uid(sample_tree) == "ABC123"

    def test_scan_type(self, sample_tree):
        assert fields.get_scan_type(sample_tree) == ("VorteX continuous", "VorteX")

    def test_software_version(self, sample_tree):
        assert fields.get_acquisition_software_version(sample_tree) == "3.2.1"

    def test_geometry(self, sample_tree):
        assert fields.get_source_to_detector_distance(sample_tree) == 500
        assert fields.get_source_to_table_distance(sample_tree) == 300
        assert fields.get_pitch(sample_tree) == 2
        assert fields.get_estimated_slicethickness(sample_tree) == pytest.approx(1.2)

    def test_resolution(self, sample_tree):
        assert fields.get_resolution(sample_tree) == (512, 400, 256)

    def test_source(self, sample_tree):
        assert fields.get_voltage(sample_tree) == (90, 89.7)
        assert fields.get_current(sample_tree) == (110, None)

    def test_detector(self, sample_tree):
        assert fields.get_filter(sample_tree) == "Cu 0.5mm"
        assert fields.get_framerate(sample_tree) == 12.5
        assert fields.get_frames_averaged(sample_tree) == 4
        assert fields.get_zoom_factor(sample_tree) == 1.25

    def test_calculated_ug(self, sample_tree):
        assert fields.get_calculated_Ug(sample_tree) == pytest.approx(1.52)

    def test_helical(self, sample_tree):
        assert fields.get_projection_count(sample_tree) == 1440
        assert fields.get_rotation_count(sample_tree) == 3
        assert fields.get_helical_pitch(sample_tree) == 0.75

    def test_defective_pixels(self, sample_tree):
        assert fields.get_defective_pixels(sample_tree) == 1234


class TestLegacyFile:
    """Derivations that fall back to the older layout and to Comments."""

    def test_session_name_lowercase_key(self, legacy_tree):
        assert fields.get_session_name(legacy_tree) == "legacy_part"

    def test_uid_alternative_key(self, legacy_tree):
        assert fields.get_uid(legacy_tree) == "LEGACY-7"

    def test_begin_from_creation_date(self, legacy_tree):
        assert fields.get_acquisition_begin(legacy_tree) == datetime(2021, 1, 14, 10, 0)

    def test_end_from_comment(self, legacy_tree):
        assert fields.get_acquisition_end(legacy_tree) == datetime(2021, 1, 14, 10, 5)

    def test_scan_type_from_comment(self, legacy_tree):
        assert fields.get_scan_type(legacy_tree) == ("Standard", "Standard")

    def test_no_volume(self, legacy_tree):
        assert fields.get_resolution(legacy_tree) is None

    def test_no_geometry(self, legacy_tree):
        assert fields.get_pitch(legacy_tree) is None
        assert fields.get_source_to_detector_distance(legacy_tree) is None
        assert fields.get_estimated_slicethickness(legacy_tree) is None


class TestScanType:
    """Tests for get_scan_type."""

    @pytest.mark.parametrize(
        ("scan_type", "category"),
        [
            ("VorteX continuous", "VorteX"),
            ("MosaiX 2x2", "MosaiX"),
            ("Continuous", "Standard"),
        ],
    )
    def test_categories(self, scan_type, category):
        tree = _tree(f"<Scan_Type>{scan_type}")
        assert fields.get_scan_type(tree) == (scan_type, category)

    def test_helical_only_recognized_in_comments(self):
        assert fields.get_scan_type(_tree("<Scan_Type>Helical")) == (
            "Helical",
            "Standard",
        )
        tree = _tree("<Comments>Helical scan completed 14-Jan-21 10:05:00 AM")
        assert fields.get_scan_type(tree) == ("Helical", "Helical")

    def test_first_matching_comment_wins(self):
        tree = _tree(
            "<Comments>operator note\n"
            "<Comments>MosaiX scan completed 14-Jan-21 10:05:00 AM\n"
            "<Comments>VorteX scan completed 14-Jan-21 11:05:00 AM"
        )
        assert fields.get_scan_type(tree) == ("MosaiX", "MosaiX")
        assert fields.get_acquisition_end(tree) == datetime(2021, 1, 14, 10, 5)

    def test_no_evidence(self):
        assert fields.get_scan_type(_tree("<Comments>operator note")) == (None, None)
        assert fields.get_scan_type({}) == (None, None)


class TestTimestamps:
    """Tests for the acquisition time derivations."""

    def test_identical_duplicates(self):
        tree = _tree(
            "<a>\n<Creation_Date>14-Jan-21 10:00:00 AM\n</a>\n"
            "<b>\n<Creation_Date>14-Jan-21 10:00:00 AM\n</b>"
        )
        assert fields.get_acquisition_begin(tree) == datetime(2021, 1, 14, 10, 0)

    def test_distinct_duplicates_use_first(self, caplog):
        tree = _tree(
            "<a>\n<Creation_Date>14-Jan-21 10:00:00 AM\n</a>\n"
            "<b>\n<Creation_Date>15-Jan-21 10:00:00 AM\n</b>"
        )
        with caplog.at_level(logging.WARNING):
            assert fields.get_acquisition_begin(tree) == datetime(2021, 1, 14, 10, 0)
        assert "different values for Creation_Date" in caplog.text

    def test_repeated_project_configuration(self):
        tree = _tree(
            "<NSI_Reconstruction_Project>\n"
            "<Creation_Date>13-Jan-21 10:00:00 AM\n"
            "<CT_Project_Configuration>\n"
            "<acquisition_begin>14-Jan-21 10:00:00 AM\n"
            "</CT_Project_Configuration>\n"
            "<CT_Project_Configuration>\n<Part_name>X\n</CT_Project_Configuration>\n"
            "</NSI_Reconstruction_Project>"
        )
        assert fields.get_acquisition_begin(tree) == datetime(2021, 1, 14, 10, 0)

    def test_unparsed_timestamp_kept_as_string(self):
        tree = _tree("<Creation_Date>sometime last week")
        assert fields.get_acquisition_begin(tree) == "sometime last week"

    def test_unparseable_comment_time(self):
        tree = _tree("<Comments>Standard scan completed yesterday")
        assert fields.get_acquisition_end(tree) is None

    def test_missing(self):
        assert fields.get_acquisition_begin({}) is None
        assert fields.get_acquisition_end({}) is None

    @pytest.mark.parametrize(
        ("begin", "end"),
        [
            (None, datetime(2021, 1, 14)),
            (datetime(2021, 1, 14), None),
            ("14-Jan-21", datetime(2021, 1, 14)),
        ],
    )
    def test_duration_needs_two_timestamps(self, begin, end):
        with pytest.raises(DerivationError):
            fields.get_acquisition_duration(begin, end)


class TestSliceThickness:
    """Tests for the slice thickness estimate."""

    def test_estimate(self):
        assert fields.estimate_slicethickness(2, 500, 300) == pytest.approx(1.2)

    @pytest.mark.parametrize(
        ("pitch", "sdd", "std"),
        [(None, 500, 300), (2, 0, 300), (2, 500, None), ("2", 500, 300), (True, 500, 300)],
    )
    def test_unusable_inputs(self, pitch, sdd, std):
        with pytest.raises(DerivationError):
            fields.estimate_slicethickness(pitch, sdd, std)

    def test_missing_pitch_gives_none(self, caplog):
        tree = _tree(
            "<Technique_Configuration>\n<Setup>\n"
            "<source_to_detector_distance>500\n<source_to_table_distance>300\n"
            "</Setup>\n</Technique_Configuration>"
        )
        with caplog.at_level(logging.WARNING):
            assert fields.get_estimated_slicethickness(tree) is None
        assert "pitch" in caplog.text


class TestOtherFields:
    """Edge cases of the remaining derivations."""

    def test_session_name_trailing_separator(self):
        assert fields.get_session_name({"Project_Folder": "D:\\Scans\\run_3\\"}) == (
            "run_3"
        )

    def test_numeric_uid_is_string(self):
        assert fields.get_uid(_tree("<Part_name>12345")) == "12345"

    def test_empty_filter_is_none(self):
        assert fields.get_filter(_tree("<Setup>\n<phys_filter>\n</Setup>")) is None

    def test_filter_alternative_key(self):
        assert fields.get_filter(_tree("<filter>Al 1mm")) == "Al 1mm"

    def test_numeric_ug(self):
        tree = _tree("<Technique_Configuration>\n<Ug>0.8\n</Technique_Configuration>")
        assert fields.get_calculated_Ug(tree) == 0.8

    def test_ug_text_without_pixels(self):
        assert fields.get_calculated_Ug(_tree("<ug_text>Ug = 0.13 mm")) is None

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("(1.25x)", 1.25), ("(2x)", 2.0), ("(x)", None), ("", None)],
    )
    def test_zoom_factor(self, text, expected):
        assert fields.get_zoom_factor({"zoom_factor_text": text}) == expected

    def test_resolution_wrong_length(self):
        assert fields.get_resolution({"Volume": {"resolution": "512 400"}}) is None

    def test_resolution_not_numeric(self):
        assert fields.get_resolution({"Volume": {"resolution": "a b c"}}) is None

    def test_defective_pixels_single_status(self):
        assert fields.get_defective_pixels({"status": "12 defective pixels"}) == 12

    def test_defective_pixels_no_match(self):
        assert fields.get_defective_pixels({"status": ["calibrated", 5]}) is None
