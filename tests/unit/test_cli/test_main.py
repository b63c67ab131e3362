# pylint: disable=C0116
# ruff: noqa: D102

"""Tests for the ``nsipro`` command line."""

import csv
import json
import logging
import shutil

import pytest
from click.testing import CliRunner

from nsipro.cli.main import _default_output, _get_log_level, main


@pytest.fixture
def project_dir(tmp_path, sample_file):
    """A directory with the sample file, a legacy file and a broken one."""
    project = tmp_path / "ct_projects"
    project.mkdir()
    shutil.copy(sample_file, project / "sample.nsipro")
    nested = project / "2020"
    nested.mkdir()
    (nested / "legacy.nsipro").write_text(
        "<Part_Name>LEGACY-7\n"
        "<Comments>Standard scan completed 14-Jan-21 10:05:00 AM\n",
        encoding="utf-8",
    )
    (nested / "broken.nsipro").write_text("<Setup>\n<kV>90\n", encoding="utf-8")
    return project


@pytest.fixture(autouse=True)
def _reset_logging():
    """Remove the handlers main() installs so tests do not leak into each other."""
    yield
    for handler in logging.root.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            logging.root.removeHandler(handler)
            handler.close()


def _read_csv(path):
    with path.open(newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestHelpers:
    """Tests for the command's helper functions."""

    @pytest.mark.parametrize(
        ("verbose", "level"),
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_get_log_level(self, verbose, level):
        assert _get_log_level(verbose) == level

    def test_default_output(self, tmp_path):
        assert str(_default_output((str(tmp_path / "scans"), "other"))) == "scans.csv"


class TestMain:
    """Tests for running ``nsipro``."""

    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--recursive" in result.output
        assert "--json" in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "nsipro" in result.output

    def test_requires_a_path(self):
        result = CliRunner().invoke(main, [])
        assert result.exit_code != 0

    def test_missing_path(self, tmp_path):
        result = CliRunner().invoke(main, [str(tmp_path / "missing.nsipro")])
        assert result.exit_code != 0

    def test_single_file(self, sample_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["--no-progress", str(sample_file)])

        assert result.exit_code == 0, result.output
        rows = _read_csv(tmp_path / "sample.nsipro.csv")
        assert len(rows) == 1
        assert rows[0]["derived_fields.uid"] == "ABC123"
        assert rows[0]["derived_fields.scan_type_category"] == "VorteX"
        assert rows[0]["derived_fields.acquisition_begin"] == "2021-01-14T10:00:00"

    def test_directory_not_recursive(self, project_dir, tmp_path):
        out = tmp_path / "out.csv"
        result = CliRunner().invoke(
            main, ["--no-progress", "-o", str(out), str(project_dir)]
        )

        assert result.exit_code == 0, result.output
        assert [r["derived_fields.uid"] for r in _read_csv(out)] == ["ABC123"]

    def test_recursive_skips_broken_files(self, project_dir, tmp_path):
        out = tmp_path / "out.csv"
        result = CliRunner().invoke(
            main, ["--no-progress", "-r", "-o", str(out), str(project_dir)]
        )

        assert result.exit_code == 0, result.output
        rows = _read_csv(out)
        assert sorted(r["derived_fields.uid"] for r in rows) == ["ABC123", "LEGACY-7"]
        legacy = next(r for r in rows if r["derived_fields.uid"] == "LEGACY-7")
        # columns only the sample file has are left empty
        assert legacy["derived_fields.dimensions.width"] == ""
        assert legacy["derived_fields.acquisition_end"] == "2021-01-14T10:05:00"

    def test_json_output(self, project_dir, tmp_path):
        out = tmp_path / "out.csv"
        result = CliRunner().invoke(
            main, ["--no-progress", "-r", "--json", "-o", str(out), str(project_dir)]
        )

        assert result.exit_code == 0, result.output
        records = json.loads((tmp_path / "out.json").read_text(encoding="utf-8"))
        assert len(records) == 2
        assert "Saved" in result.output

    def test_with_progress_bar(self, sample_file, tmp_path):
        out = tmp_path / "out.csv"
        result = CliRunner().invoke(main, ["-o", str(out), str(sample_file)])
        assert result.exit_code == 0, result.output
        assert out.exists()

    def test_log_dir(self, project_dir, tmp_path, monkeypatch):
        from nsipro.config import settings

        log_dir = tmp_path / "logs"
        monkeypatch.setattr(settings, "NSIPRO_LOG_DIR", log_dir)
        result = CliRunner().invoke(
            main,
            ["--no-progress", "-v", "-r", "-o", str(tmp_path / "out.csv"), str(project_dir)],
        )

        assert result.exit_code == 0, result.output
        assert "broken.nsipro" in (log_dir / "nsipro-parser.err.log").read_text()
        assert "Processing" in (log_dir / "nsipro-parser.log").read_text()

    def test_log_files_closed_after_failure(self, tmp_path, monkeypatch):
        from nsipro.config import settings

        monkeypatch.setattr(settings, "NSIPRO_LOG_DIR", tmp_path / "logs")
        result = CliRunner().invoke(main, [str(tmp_path / "missing.nsipro")])

        assert result.exit_code != 0
        assert not any(
            isinstance(h, logging.FileHandler) for h in logging.root.handlers
        )

    def test_colliding_column_names_skip_only_that_file(
        self, sample_file, tmp_path, caplog
    ):
        project = tmp_path / "scans"
        project.mkdir()
        shutil.copy(sample_file, project / "sample.nsipro")
        # <a><b> and <a.b> both flatten to the column "a.b"
        (project / "collide.nsipro").write_text(
            "<a>\n<b>1\n</a>\n<a.b>2\n", encoding="utf-8"
        )
        out = tmp_path / "out.csv"

        with caplog.at_level(logging.ERROR, logger="nsipro.cli.main"):
            result = CliRunner().invoke(
                main, ["--no-progress", "-o", str(out), str(project)]
            )

        assert result.exit_code == 0, result.output
        assert [r["derived_fields.uid"] for r in _read_csv(out)] == ["ABC123"]
        assert "collide.nsipro" in caplog.text


class TestHandleConfigError:
    """Tests for the handle_config_error context manager."""

    def test_no_error_passes_through(self):
        from nsipro.cli import handle_config_error

        with handle_config_error():
            result = 1 + 1

        assert result == 2

    def test_validation_error_exits(self, capsys, monkeypatch):
        from nsipro.cli import handle_config_error
        from nsipro.config import Settings

        monkeypatch.setenv("NSIPRO_FILE_EXTENSION", "nsipro")
        with pytest.raises(SystemExit) as exc_info, handle_config_error():  # noqa: PT012
            Settings()

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "configuration is invalid" in err
        assert "NSIPRO_FILE_EXTENSION" in err
