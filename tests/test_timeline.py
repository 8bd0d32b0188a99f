"""Tests for day timeline reconstruction, end to end."""

import json
from dataclasses import replace
from datetime import date

import pytest

from fleet_timeline.events import ArrivedJob, ArrivedOffice, ArrivedUnknown, ClockIn, MealEnd, MealStart
from fleet_timeline.models import CustomLocation, HomeLocation, Job, TechnicianConfig
from fleet_timeline.timeline import build_day_report, build_day_timeline, merge_external_events

DAY = date(2025, 12, 10)


def kinds(timeline):
    return [e.kind for e in timeline.events]


@pytest.fixture
def workday(segment, at, office, site_a, site_c, unknown_spot):
    """Office -> J1 (5 min late) -> unknown stop -> J2 (early) -> office."""
    return [
        segment(at(13, 30), office, at(14, 5), site_a),
        segment(at(15), site_a, at(15, 20), unknown_spot),
        segment(at(15, 30), unknown_spot, at(15, 50), site_c),
        segment(at(17), site_c, at(17, 30), office),
    ]


class TestBuildDayTimeline:
    """Tests for the segment walk."""

    def test_full_day(self, workday, two_jobs):
        tl = build_day_timeline(DAY, "t1", "Sam", workday, two_jobs, TechnicianConfig())

        assert kinds(tl) == [
            "left_office",
            "arrived_job",
            "left_job",
            "arrived_unknown",
            "left_unknown",
            "arrived_job",
            "left_job",
            "arrived_office",
        ]
        first = tl.events[1]
        assert isinstance(first, ArrivedJob)
        assert first.job_number == "1001"
        assert first.travel_minutes == 35
        assert first.duration_minutes == 55
        assert first.variance_minutes == 5
        assert first.is_late
        assert first.is_first_job

        second = tl.events[5]
        assert second.variance_minutes == -70
        assert not second.is_late
        assert not second.is_first_job

        assert tl.day_of_week == "Wednesday"
        assert tl.total_jobs == 2
        assert tl.total_office_visits == 1
        assert tl.total_drive_minutes == 105
        assert tl.first_job_on_time is False
        assert tl.first_job_variance == 5

    def test_events_are_time_ordered(self, workday, two_jobs):
        tl = build_day_timeline(DAY, "t1", "Sam", list(reversed(workday)), two_jobs, TechnicianConfig())
        stamps = [e.timestamp for e in tl.events]
        assert stamps == sorted(stamps)

    def test_last_stop_has_no_departure(self, workday, two_jobs):
        tl = build_day_timeline(DAY, "t1", "Sam", workday, two_jobs, TechnicianConfig())
        last = tl.events[-1]
        assert isinstance(last, ArrivedOffice)
        assert last.travel_minutes == 30
        assert last.duration_minutes is None

    @pytest.mark.parametrize(("pause", "kept"), [(1, False), (2, True)])
    def test_short_unknown_stops_are_dropped(self, segment, at, office, site_a, unknown_spot, pause, kept):
        segs = [
            segment(at(13), office, at(13, 20), unknown_spot),
            segment(at(13, 20 + pause), unknown_spot, at(13, 45), site_a),
        ]
        tl = build_day_timeline(DAY, "t1", "", segs, [], TechnicianConfig())
        assert any(isinstance(e, ArrivedUnknown) for e in tl.events) is kept
        assert ("left_unknown" in kinds(tl)) is kept

    def test_overlapping_segments_never_go_backwards(self, segment, at, office, site_a, site_c, two_jobs):
        """The next trip starts before the previous one ends."""
        segs = [
            segment(at(13), office, at(14, 5), site_a),
            segment(at(14), site_a, at(14, 3), site_c),
        ]
        tl = build_day_timeline(DAY, "t1", "", segs, two_jobs, TechnicianConfig())

        assert kinds(tl) == ["left_office", "arrived_job", "left_job", "arrived_job"]
        arrived, left, next_arrival = tl.events[1:]
        assert left.timestamp == arrived.timestamp == at(14, 5)
        assert arrived.duration_minutes == 0
        assert next_arrival.travel_minutes == 0
        assert tl.total_drive_minutes == 65

    @pytest.mark.parametrize("flagged", [True, False])
    def test_return_visit_to_first_job_is_not_first(self, segment, at, office, site_a, site_c, two_jobs, flagged):
        """Only the first arrival at the first job carries the flag, flagged or inferred."""
        jobs = [replace(two_jobs[0], is_first_job=flagged), two_jobs[1]]
        segs = [
            segment(at(13, 30), office, at(14, 5), site_a),
            segment(at(15), site_a, at(15, 50), site_c),
            segment(at(17), site_c, at(17, 30), site_a),
        ]
        tl = build_day_timeline(DAY, "t1", "", segs, jobs, TechnicianConfig())

        j1_arrivals = [e for e in tl.events if isinstance(e, ArrivedJob) and e.job_id == "J1"]
        assert [e.is_first_job for e in j1_arrivals] == [True, False]
        assert tl.first_job_variance == 5

    def test_unscheduled_first_job_flagged_once(self, segment, at, office, site_a, site_c):
        jobs = [Job("J1", latitude=site_a[0], longitude=site_a[1])]
        segs = [
            segment(at(13, 30), office, at(14, 5), site_a),
            segment(at(15), site_a, at(15, 50), site_c),
            segment(at(16), site_c, at(16, 30), site_a),
        ]
        tl = build_day_timeline(DAY, "t1", "", segs, jobs, TechnicianConfig())

        assert [e.is_first_job for e in tl.events if isinstance(e, ArrivedJob)] == [True, False]
        assert tl.first_job_on_time is None
        assert tl.first_job_variance is None

    def test_empty_day(self, two_jobs):
        tl = build_day_timeline(DAY, "t1", "Sam", [], two_jobs, TechnicianConfig())
        assert tl.events == ()
        assert tl.total_jobs == 2
        assert tl.total_drive_minutes == 0
        assert tl.first_job_on_time is None
        assert tl.first_job_variance is None

    def test_segment_without_end_counts_toward_next_travel(self, segment, at, office, site_a, two_jobs):
        segs = [segment(at(13, 30), office), segment(at(13, 50), office, at(14, 5), site_a)]
        tl = build_day_timeline(DAY, "t1", "", segs, two_jobs, TechnicianConfig())
        assert kinds(tl) == ["left_office", "arrived_job"]
        assert tl.events[1].travel_minutes == 35

    def test_unnecessary_office_stop(self, segment, at, office, site_a, home, two_jobs):
        segs = [segment(at(11), home, at(11, 20), office), segment(at(11, 40), office, at(12, 10), site_a)]
        tech = TechnicianConfig(takes_truck_home=True, home=HomeLocation(*home, address="12 Elm St"))

        tl = build_day_timeline(DAY, "t1", "", segs, two_jobs, tech)

        assert kinds(tl) == ["left_home", "arrived_office", "left_office", "arrived_job"]
        assert tl.events[0].address == "12 Elm St"
        assert tl.events[1].is_unnecessary
        assert tl.events[3].variance_minutes == -110
        assert tl.first_job_on_time is True

    def test_round_trip_from_home(self, segment, at, home, site_a, two_jobs):
        segs = [segment(at(13), home, at(13, 40), site_a), segment(at(16), site_a, at(16, 45), home)]
        take_home = TechnicianConfig(takes_truck_home=True, home=HomeLocation(*home))

        assert kinds(build_day_timeline(DAY, "t1", "", segs, two_jobs, take_home)) == [
            "left_home",
            "arrived_job",
            "left_job",
            "arrived_home",
        ]
        # Without a take-home truck the same coordinates are just unknown.
        assert kinds(build_day_timeline(DAY, "t1", "", segs, two_jobs, TechnicianConfig())) == [
            "arrived_job",
            "left_job",
        ]

    def test_custom_location_stop(self, workday, two_jobs, unknown_spot):
        loc = CustomLocation("c1", "Ferguson", "supply_house", *unknown_spot)
        tl = build_day_timeline(DAY, "t1", "", workday, two_jobs, TechnicianConfig(custom_locations=(loc,)))
        assert "arrived_custom" in kinds(tl)
        assert "left_custom" in kinds(tl)
        assert tl.events[3].location_name == "Ferguson"
        assert tl.events[3].category == "supply_house"

    def test_to_dict_is_json_serializable(self, workday, two_jobs):
        tl = build_day_timeline(DAY, "t1", "Sam", workday, two_jobs, TechnicianConfig())
        data = json.loads(json.dumps(tl.to_dict()))
        assert data["date"] == "2025-12-10"
        assert data["events"][1]["type"] == "arrived_job"
        assert data["events"][1]["timestamp"] == "2025-12-10T14:05:00+00:00"


class TestMergeExternalEvents:
    """Tests for interleaving punch events."""

    def test_stable_merge(self, workday, two_jobs, at):
        tl = build_day_timeline(DAY, "t1", "", workday, two_jobs, TechnicianConfig())
        merged = merge_external_events(tl, [ClockIn(timestamp=at(13, 30), punch_id="p1")])
        assert kinds(merged)[:2] == ["left_office", "clock_in"]
        assert len(merged.events) == len(tl.events) + 1


class TestBuildDayReport:
    """Tests for the combined report."""

    def test_transit_without_meal_is_high(self, workday, two_jobs):
        report = build_day_report(DAY, "t1", "", workday, two_jobs, TechnicianConfig(), estimate=lambda *_: 10.0)
        transit = report.timeline.events[5].transit
        assert transit.elapsed_minutes == 50
        assert transit.expected_drive_minutes == 10
        assert transit.excess_minutes == 40
        assert transit.is_suspicious
        assert transit.severity == "high"
        # First arrival has no preceding job departure.
        assert report.timeline.events[1].transit is None

    def test_meal_break_is_subtracted(self, workday, two_jobs, at):
        punches = [MealStart(timestamp=at(15, 20)), MealEnd(timestamp=at(15, 45))]
        report = build_day_report(
            DAY, "t1", "", workday, two_jobs, TechnicianConfig(), external_events=punches, estimate=lambda *_: 10.0
        )
        arrival = next(e for e in report.timeline.events if isinstance(e, ArrivedJob) and e.job_id == "J2")
        assert arrival.transit.meal_break_minutes == 25
        assert arrival.transit.on_clock_transit_minutes == 25
        assert arrival.transit.excess_minutes == 15
        assert arrival.transit.severity == "low"

    def test_office_visits_included(self, workday, two_jobs):
        report = build_day_report(DAY, "t1", "", workday, two_jobs, TechnicianConfig())
        assert [v.visit_type for v in report.office_visits] == ["morning_departure", "end_of_day"]
