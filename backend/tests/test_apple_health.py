"""Tests for the Apple Health export adapter."""

import io
import json
import zipfile
from datetime import date, datetime, timezone
from xml.etree import ElementTree as ET

import pytest

from readiness.adapters.apple_health import (
    ZIP_MEMBER,
    AppleHealthImporter,
    parse_apple_date,
    parse_export,
    write_export,
)
from readiness.core.exceptions import ImportFormatError
from readiness.models.daily import DailyRecord


@pytest.fixture
def export_zip(tmp_path, apple_export_bytes):
    path = tmp_path / "export.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(ZIP_MEMBER, apple_export_bytes)
    return path


class TestParseAppleDate:
    """Tests for Apple Health timestamps."""

    def test_offset_converted_to_utc(self):
        """Local offsets are normalized to UTC."""
        assert parse_apple_date("2024-01-16 23:30:00 -0800") == datetime(
            2024, 1, 17, 7, 30, tzinfo=timezone.utc
        )

    def test_iso_fallback(self):
        """ISO timestamps without an offset are taken as UTC."""
        assert parse_apple_date("2024-01-16T08:00:00") == datetime(
            2024, 1, 16, 8, 0, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_unparseable(self, value):
        """Missing or garbage values are None."""
        assert parse_apple_date(value) is None


class TestParseExport:
    """Tests for daily aggregation of an export."""

    def test_daily_values(self, apple_export, metrics):
        """Sums, means and sleep stages for one day."""
        records = parse_export(apple_export, metrics)
        day = records[0]

        assert day.date == date(2024, 1, 15)
        assert day.steps == 3500
        assert day.hrv_ms == 56
        assert day.resting_hr_bpm == 58
        assert day.weight == pytest.approx(80.3)
        assert day.active_minutes == 30
        assert day.sleep_hours == pytest.approx(5.5)

    def test_days_sorted_and_unknown_types_dropped(self, apple_export, metrics):
        """A day with only unrecognized records is omitted."""
        records = parse_export(apple_export, metrics)

        assert [r.date for r in records] == [date(2024, 1, 15), date(2024, 1, 17)]

    def test_bucketed_by_utc_day(self, apple_export, metrics):
        """A late-evening local sample lands on the next UTC day."""
        late = parse_export(apple_export, metrics)[-1]

        assert late.steps == 200
        assert late.hrv_ms is None
        assert late.sleep_hours is None

    def test_zip_archive(self, export_zip, metrics):
        """The export zip is read through its inner export.xml."""
        assert len(parse_export(export_zip, metrics)) == 2

    def test_file_object(self, apple_export_bytes, metrics):
        """A binary stream can be parsed directly."""
        records = AppleHealthImporter(metrics).parse(io.BytesIO(apple_export_bytes))

        assert records[0].steps == 3500

    def test_import_metrics(self, apple_export, metrics):
        """Successful imports count days."""
        parse_export(apple_export, metrics)
        text = metrics.render_prometheus()

        assert 'readiness_imports_total{source="apple_health",status="success"} 1' in text
        assert 'readiness_import_days_total{source="apple_health"} 2' in text


class TestParseErrors:
    """Tests for unreadable exports."""

    def test_missing_file(self, tmp_path, metrics):
        """A missing path is a format error."""
        with pytest.raises(ImportFormatError, match="not found"):
            parse_export(tmp_path / "nope.xml", metrics)

    def test_malformed_xml(self, tmp_path, metrics):
        """Truncated XML is a format error and counted as failed."""
        path = tmp_path / "broken.xml"
        path.write_bytes(b"<HealthData><Record type=")

        with pytest.raises(ImportFormatError, match="Malformed"):
            parse_export(path, metrics)
        assert 'status="error"} 1' in metrics.render_prometheus()

    def test_zip_without_export(self, tmp_path, metrics):
        """A zip without the export member is rejected."""
        path = tmp_path / "other.zip"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("readme.txt", "hello")

        with pytest.raises(ImportFormatError, match=ZIP_MEMBER):
            parse_export(path, metrics)


class TestWriteExport:
    """Tests for writing the daily JSON file."""

    def test_writes_daily_wrapper(self, tmp_path):
        """Output uses the importer field names and omits missing metrics."""
        records = [DailyRecord(date=date(2024, 1, 15), sleep=7.5, hrv=55, restingHR=58)]
        path = write_export(records, tmp_path / "health-data.json")
        payload = json.loads(path.read_text())

        assert payload == {
            "daily": [{"date": "2024-01-15", "sleep": 7.5, "hrv": 55.0, "restingHR": 58.0}]
        }

    def test_output_loads_back(self, apple_export, tmp_path, metrics):
        """Converted output validates as daily records again."""
        records = parse_export(apple_export, metrics)
        path = write_export(records, tmp_path / "out.json")
        payload = json.loads(path.read_text())

        assert [DailyRecord.model_validate(d) for d in payload["daily"]] == records


class TestStreaming:
    """Tests for memory behaviour while streaming."""

    def test_root_released_as_records_finish(self, apple_export_bytes, metrics, monkeypatch):
        """Finished records are detached from the root element."""
        real_iterparse = ET.iterparse
        seen = {}

        def tracking_iterparse(source, events=None):
            for event, elem in real_iterparse(source, events=events):
                seen.setdefault("root", elem)
                if event == "end" and elem.tag == "Record":
                    seen["max_children"] = max(seen.get("max_children", 0), len(seen["root"]))
                yield event, elem

        monkeypatch.setattr(ET, "iterparse", tracking_iterparse)
        records = AppleHealthImporter(metrics).parse(io.BytesIO(apple_export_bytes))

        assert len(records) == 2
        assert seen["max_children"] <= 2
        assert len(seen["root"]) == 0

    def test_nested_metadata(self, metrics):
        """Records with child elements still yield their own attributes."""
        xml = b"""<HealthData>
 <Record type="HKQuantityTypeIdentifierHeartRateVariabilitySDNN" value="48"
   startDate="2024-01-15 06:00:00 +0000" endDate="2024-01-15 06:01:00 +0000">
  <MetadataEntry key="HKMetadataKeyHeartRateMotionContext" value="0"/>
  <HeartRateVariabilityMetadataList/>
 </Record>
 <Record type="HKQuantityTypeIdentifierRestingHeartRate" value="57"
   startDate="2024-01-15 07:00:00 +0000" endDate="2024-01-15 07:00:00 +0000"/>
</HealthData>
"""
        day = AppleHealthImporter(metrics).parse(io.BytesIO(xml))[0]

        assert day.hrv_ms == 48
        assert day.resting_hr_bpm == 57
