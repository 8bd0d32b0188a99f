"""Shared fixtures: a fixed office, nearby sites and a segment factory."""

from datetime import UTC, datetime

import pytest

from fleet_timeline.config import DEFAULT_CONFIG
from fleet_timeline.models import Job, SegmentLocation, VehicleSegment

OFFICE = (DEFAULT_CONFIG.office.latitude, DEFAULT_CONFIG.office.longitude)
SITE_A = (36.1102, -79.8260)
SITE_C = (36.0480, -79.7905)
UNKNOWN_SPOT = (36.0921, -79.8120)
HOME = (36.1500, -79.9000)


def utc(hour, minute=0, day=10, month=12):
    """2025 timestamp in UTC (December is EST, UTC-5)."""
    return datetime(2025, month, day, hour, minute, tzinfo=UTC)


@pytest.fixture
def at():
    """Factory for UTC timestamps on 2025-12-10."""
    return utc


@pytest.fixture
def segment():
    """Factory: segment(start, origin, end, destination); end/destination may be None."""

    def make(start, origin, end=None, destination=None):
        return VehicleSegment(
            start_time=start,
            end_time=end,
            start_location=SegmentLocation(*origin),
            end_location=SegmentLocation(*destination) if destination is not None else None,
        )

    return make


@pytest.fixture
def office():
    return OFFICE


@pytest.fixture
def site_a():
    return SITE_A


@pytest.fixture
def site_c():
    return SITE_C


@pytest.fixture
def unknown_spot():
    return UNKNOWN_SPOT


@pytest.fixture
def home():
    return HOME


@pytest.fixture
def two_jobs():
    """J1 at site A at 9:00 local, J2 at site C at noon local."""
    return [
        Job(
            job_id="J1",
            job_number="1001",
            scheduled_start=utc(14),
            latitude=SITE_A[0],
            longitude=SITE_A[1],
            customer_name="Harper Residence",
        ),
        Job(
            job_id="J2",
            job_number="1002",
            scheduled_start=utc(17),
            latitude=SITE_C[0],
            longitude=SITE_C[1],
            customer_name="Lakeside Dental",
        ),
    ]
