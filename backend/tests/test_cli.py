"""Tests for the readiness command-line interface."""

import json
import logging

import pytest

from readiness import observability
from readiness.cli import load_records, main
from readiness.core.exceptions import ImportFormatError

NOW = "2024-03-31T08:00:00"


@pytest.fixture(autouse=True)
def reset_log_handler():
    """Drop the root handler main() installs."""
    yield
    if observability._log_handler is not None:
        logging.getLogger().removeHandler(observability._log_handler)
        observability._log_handler = None


@pytest.fixture
def demo_file(tmp_path):
    path = tmp_path / "health-data.json"
    assert main(["demo", "--days", "30", "--seed", "1", "--now", NOW, "--output", str(path)]) == 0
    return path


class TestLoadRecords:
    """Tests for reading daily JSON files."""

    def test_wrapped(self, tmp_path):
        """The converter's {"daily": [...]} shape."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"daily": [{"date": "2024-01-01", "sleep": 7, "hrv": 50}]}))

        records = load_records(path)

        assert records[0].sleep_hours == 7
        assert records[0].hrv_ms == 50

    def test_bare_list(self, tmp_path):
        """A plain list of records with long-form names."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps([{"date": "2024-01-01", "sleepHours": 7, "restingHrBpm": 55}]))

        assert load_records(path)[0].resting_hr_bpm == 55

    def test_invalid_json(self, tmp_path):
        """Broken JSON is a format error."""
        path = tmp_path / "data.json"
        path.write_text("{daily")

        with pytest.raises(ImportFormatError):
            load_records(path)

    def test_missing(self, tmp_path):
        """An unreadable path is a format error."""
        with pytest.raises(ImportFormatError):
            load_records(tmp_path / "missing.json")


class TestDemoCommand:
    """Tests for ``readiness demo``."""

    def test_stdout(self, capsys):
        """Without --output the series is printed."""
        assert main(["demo", "--days", "10", "--seed", "3", "--now", NOW]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert len(payload["daily"]) == 10
        assert payload["daily"][-1]["date"] == "2024-03-30"

    def test_output_file(self, demo_file):
        """--output writes the daily file."""
        assert len(json.loads(demo_file.read_text())["daily"]) == 30


class TestReportCommand:
    """Tests for ``readiness report``."""

    def test_json(self, demo_file, capsys):
        """JSON output is the serialized report."""
        code = main(["report", str(demo_file), "--mode", "daily", "--now", NOW, "--format", "json"])

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["mode"] == "daily"
        assert report["readiness"] is not None
        assert len(report["series"]) == 30

    def test_text(self, demo_file, capsys):
        """Text output leads with the readiness line and lists insights."""
        assert main(["report", str(demo_file), "--now", NOW, "--days", "14"]) == 0

        out = capsys.readouterr().out
        assert out.startswith("Readiness: ")
        assert "[rolling]" in out
        assert "[takeaway] " in out
        assert "[confidence] Confidence: " in out

    def test_missing_file(self, tmp_path, capsys):
        """Unreadable input exits with status 1."""
        assert main(["report", str(tmp_path / "missing.json")]) == 1
        assert capsys.readouterr().err.startswith("Error: ")

    def test_unsorted_records(self, tmp_path, capsys):
        """Out-of-order records exit with status 1."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"daily": [{"date": "2024-01-02"}, {"date": "2024-01-01"}]}))

        assert main(["report", str(path), "--now", NOW]) == 1
        assert "not after" in capsys.readouterr().err

    def test_invalid_record(self, tmp_path):
        """A record without a valid date fails validation."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"daily": [{"date": "someday"}]}))

        assert main(["report", str(path), "--now", NOW]) == 1

    def test_bad_now(self, demo_file):
        """An unparseable --now is rejected."""
        assert main(["report", str(demo_file), "--now", "tomorrow"]) == 1

    def test_bad_days(self, demo_file):
        """--days must be positive."""
        assert main(["report", str(demo_file), "--now", NOW, "--days", "0"]) == 1


class TestConvertCommand:
    """Tests for ``readiness convert``."""

    def test_convert(self, apple_export, tmp_path, capsys):
        """An export.xml becomes a daily JSON file."""
        output = tmp_path / "health-data.json"

        assert main(["convert", str(apple_export), str(output)]) == 0

        assert len(json.loads(output.read_text())["daily"]) == 2
        assert "Wrote 2 days" in capsys.readouterr().out

    def test_convert_missing(self, tmp_path):
        """A missing export exits with status 1."""
        assert main(["convert", str(tmp_path / "export.xml")]) == 1
