"""Tests for CSV and telematics-record loading."""

import json
import logging
from datetime import UTC, datetime

import pytest

from fleet_timeline.csv_io import (
    load_daily_first_segments,
    load_jobs,
    load_punch_events,
    load_segment_records_json,
    load_segments,
    load_technician_config,
    segment_from_record,
    technician_config_from_dict,
)
from fleet_timeline.events import ClockIn, MealStart
from fleet_timeline.timeutils import TimestampError

SEGMENT_HEADER = "start_time,start_lat,start_lon,end_time,end_lat,end_lon,end_address\n"

RECORD = {
    "StartDateUtc": "2025-12-10T13:09:55",
    "EndDateUtc": "2025-12-10T13:40:12",
    "IsComplete": True,
    "StartLocation": {"Latitude": 36.0669, "Longitude": -79.8640, "AddressLine1": "100 Shop Rd"},
    "EndLocation": {
        "Latitude": 36.1102,
        "Longitude": -79.8260,
        "AddressLine1": "5 Oak St",
        "Locality": "Greensboro",
        "AdministrativeArea": "NC",
    },
    "DistanceTraveled": 4.2,
    "MaxSpeed": 47,
    "IdleTime": 120,
}


def _write(tmp_path, name, text):
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


class TestLoadSegments:
    """Tests for the segments CSV loader."""

    def test_parses_rows(self, tmp_path):
        p = _write(
            tmp_path,
            "segments.csv",
            SEGMENT_HEADER
            + "2025-12-10T13:30:00,36.0669,-79.8640,2025-12-10T14:05:00,36.1102,-79.8260,5 Oak St\n"
            + "2025-12-10T15:00:00,36.1102,-79.8260,,,,\n",
        )
        segments, summary = load_segments(p)

        assert summary.rows_parsed == 2
        assert segments[0].start_time == datetime(2025, 12, 10, 13, 30, tzinfo=UTC)
        assert segments[0].end_location.address == "5 Oak St"
        assert segments[1].end_time is None
        assert segments[1].end_location is None
        assert not segments[1].has_end

    def test_malformed_rows_are_skipped(self, tmp_path, caplog):
        p = _write(
            tmp_path,
            "segments.csv",
            SEGMENT_HEADER
            + "2025-12-10T13:30:00,abc,-79.8640,,,,\n"
            + "2025-12-10T15:00:00,36.1102,-79.8260,,,,\n",
        )
        with caplog.at_level(logging.WARNING):
            segments, summary = load_segments(p)

        assert len(segments) == 1
        assert summary.rows_skipped == 1
        assert "Skipped 1 malformed segment rows" in caplog.text

    def test_bad_timestamp_is_fatal(self, tmp_path):
        p = _write(tmp_path, "segments.csv", SEGMENT_HEADER + "yesterday-ish,36.0669,-79.8640,,,,\n")
        with pytest.raises(TimestampError):
            load_segments(p)

    def test_missing_column(self, tmp_path):
        p = _write(tmp_path, "segments.csv", "start_time,start_lat\n2025-12-10T13:30:00,36.0\n")
        with pytest.raises(KeyError, match="start_lon"):
            load_segments(p)


class TestOtherLoaders:
    """Tests for jobs, punches, daily starts and technician config."""

    def test_jobs(self, tmp_path):
        p = _write(
            tmp_path,
            "jobs.csv",
            "job_id,job_number,scheduled_start,latitude,longitude,customer_name,is_first_job\n"
            "J1,1001,2025-12-10T14:00:00,36.1102,-79.8260,Harper,1\n"
            "J2,1002,,,,Lakeside,0\n",
        )
        jobs, _ = load_jobs(p)

        assert jobs[0].is_first_job
        assert jobs[0].scheduled_start == datetime(2025, 12, 10, 14, tzinfo=UTC)
        assert jobs[1].scheduled_start is None
        assert not jobs[1].has_site

    def test_punches(self, tmp_path):
        p = _write(
            tmp_path,
            "punches.csv",
            "punch_time,punch_type,id\n"
            "2025-12-10T13:00:00,ClockIn,p1\n"
            "2025-12-10T17:00:00,MealStart,p2\n"
            "2025-12-10T17:30:00,Coffee,p3\n",
        )
        events, summary = load_punch_events(p)

        assert [type(e) for e in events] == [ClockIn, MealStart]
        assert events[0].punch_id == "p1"
        assert summary.rows_skipped == 1

    def test_daily_first_segments(self, tmp_path):
        p = _write(tmp_path, "days.csv", "date,latitude,longitude,address\n2025-12-10,36.15,-79.9,12 Elm St\n")
        days, _ = load_daily_first_segments(p)
        assert days[0].day.isoformat() == "2025-12-10"
        assert days[0].address == "12 Elm St"

    def test_technician_config(self, tmp_path):
        data = {
            "takes_truck_home": True,
            "home": {"latitude": 36.15, "longitude": -79.9},
            "custom_locations": [
                {
                    "location_id": 7,
                    "name": "Ferguson",
                    "category": "supply_house",
                    "latitude": 36.09,
                    "longitude": -79.81,
                    "polygon": [[36.0, -79.0], [36.0, -78.0], [37.0, -78.0]],
                }
            ],
        }
        tech = load_technician_config(_write(tmp_path, "tech.json", json.dumps(data)))

        assert tech.takes_truck_home
        assert tech.home.address == "Home"
        loc = tech.custom_locations[0]
        assert loc.location_id == "7"
        assert loc.radius_feet == 300.0
        assert loc.polygon == ((36.0, -79.0), (36.0, -78.0), (37.0, -78.0))
        assert loc.boundary_type == "polygon"

    @pytest.mark.parametrize(
        ("entry", "expected"),
        [
            ({}, "circle"),
            ({"boundary_type": "polygon", "polygon": [[36.0, -79.0], [36.1, -79.1]]}, "polygon"),
            ({"boundary_type": "circle", "polygon": [[36.0, -79.0], [36.0, -78.0], [37.0, -78.0]]}, "circle"),
        ],
    )
    def test_boundary_type(self, entry, expected):
        base = {"name": "Shell", "latitude": 36.09, "longitude": -79.81}
        tech = technician_config_from_dict({"custom_locations": [base | entry]})
        assert tech.custom_locations[0].boundary_type == expected

    def test_unknown_boundary_type(self):
        entry = {"name": "Shell", "latitude": 36.09, "longitude": -79.81, "boundary_type": "hexagon"}
        with pytest.raises(ValueError, match="hexagon"):
            technician_config_from_dict({"custom_locations": [entry]})


class TestTelematicsRecords:
    """Tests for raw API segment records."""

    def test_record_without_zone_is_utc(self):
        seg = segment_from_record(RECORD)
        assert seg.start_time == datetime(2025, 12, 10, 13, 9, 55, tzinfo=UTC)
        assert seg.end_location.address == "5 Oak St, Greensboro, NC"
        assert seg.start_location.address == "100 Shop Rd"
        assert seg.distance_miles == 4.2
        assert seg.idle_seconds == 120.0

    def test_incomplete_record(self):
        seg = segment_from_record({**RECORD, "EndDateUtc": None, "EndLocation": None, "IsComplete": False})
        assert not seg.is_complete
        assert not seg.has_end

    def test_load_json_response(self, tmp_path):
        p = _write(tmp_path, "segments.json", json.dumps({"Segments": [RECORD, RECORD]}))
        assert len(load_segment_records_json(p)) == 2
        bare = _write(tmp_path, "bare.json", json.dumps([RECORD]))
        assert len(load_segment_records_json(bare)) == 1
