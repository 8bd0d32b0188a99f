"""Build a technician's daily timeline from vehicle segments and scheduled jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Iterable, Sequence

from fleet_timeline.classify import Classification, classify_location
from fleet_timeline.config import DEFAULT_CONFIG, EngineConfig
from fleet_timeline.events import (
    ArrivedCustom,
    ArrivedHome,
    ArrivedJob,
    ArrivedOffice,
    ArrivedUnknown,
    DayTimeline,
    LeftCustom,
    LeftHome,
    LeftJob,
    LeftOffice,
    LeftUnknown,
    TimelineEvent,
)
from fleet_timeline.lateness import evaluate_arrival, find_first_job
from fleet_timeline.matching import match_jobs_to_segments
from fleet_timeline.models import (
    CustomLocation,
    Job,
    OfficeVisit,
    SegmentLocation,
    TechnicianConfig,
    VehicleSegment,
    sort_usable_segments,
)
from fleet_timeline.office_visits import detect_office_visits
from fleet_timeline.timeutils import day_of_week, minutes_between
from fleet_timeline.transit import DriveEstimator, annotate_transit

logger = logging.getLogger(__name__)


def _where(location: SegmentLocation, address: str | None = None) -> dict[str, Any]:
    return {
        "latitude": location.latitude,
        "longitude": location.longitude,
        "address": address or location.address,
    }


def _left_event(cls: Classification, tech: TechnicianConfig, location: SegmentLocation, at: datetime) -> TimelineEvent:
    match cls:
        case Classification(location_type="job", job=Job() as job):
            return LeftJob(
                timestamp=at,
                job_id=job.job_id,
                job_number=job.job_number,
                customer_name=job.customer_name,
                **_where(location, job.address),
            )
        case Classification(location_type="office"):
            return LeftOffice(timestamp=at, **_where(location))
        case Classification(location_type="custom", custom_location=CustomLocation() as loc):
            return LeftCustom(
                timestamp=at,
                location_id=loc.location_id,
                location_name=loc.name,
                category=loc.category,
                **_where(location, loc.address),
            )
        case Classification(location_type="home"):
            return LeftHome(timestamp=at, **_where(location, tech.home.address if tech.home else None))
        case _:
            return LeftUnknown(timestamp=at, **_where(location))


@dataclass(slots=True)
class _DayState:
    """Running totals threaded through the segment walk."""

    total_drive_minutes: int = 0
    total_office_visits: int = 0
    first_job_processed: bool = False
    first_job_on_time: bool | None = None
    first_job_variance: int | None = None


def build_day_timeline(
    day: date,
    technician_id: str,
    technician_name: str,
    segments: Sequence[VehicleSegment],
    jobs: Sequence[Job],
    tech: TechnicianConfig,
    config: EngineConfig = DEFAULT_CONFIG,
) -> DayTimeline:
    """Reconstruct one technician-day as an ordered list of events.

    The first segment's start produces ``left_home`` or ``left_office`` (other
    origins produce nothing). Every segment end that classifies as a job,
    office, custom location or home produces an arrival, followed by a
    departure at the next segment's start when there is a next segment.
    Unknown stops shorter than ``config.unknown_stop_min_minutes`` are
    dropped. A segment without an end contributes no stop; its driving time
    is counted toward the next stop's travel minutes.

    Args:
        day: Calendar day being reconstructed.
        technician_id: Technician identifier.
        technician_name: Display name.
        segments: The day's vehicle segments in any order.
        jobs: The day's scheduled jobs.
        tech: Technician configuration.
        config: Engine configuration.

    Returns:
        DayTimeline. With no usable segments the event list is empty and the
        lateness fields are None.
    """

    ordered = sort_usable_segments(segments)
    if len(ordered) < len(segments):
        logger.debug("Dropped %d segments without start time/location", len(segments) - len(ordered))

    state = _DayState()
    events: list[TimelineEvent] = []

    if not ordered:
        logger.info("No GPS data for %s on %s", technician_name or technician_id, day)
        return _finish(day, technician_id, technician_name, events, jobs, state)

    matches = match_jobs_to_segments(ordered, jobs, config.arrival_radius_feet)
    first_job = find_first_job(jobs)
    first_job_scheduled = first_job.scheduled_start if first_job is not None else None

    # Usable segments always carry a start time and location.
    starts: list[tuple[datetime, SegmentLocation]] = [(s.start_time, s.start_location) for s in ordered]  # type: ignore[misc]

    day_start, start = starts[0]
    start_cls = classify_location(start.latitude, start.longitude, tech, None, config)
    if start_cls.location_type == "home":
        events.append(LeftHome(timestamp=day_start, **_where(start, tech.home.address if tech.home else None)))
    elif start_cls.location_type == "office":
        events.append(LeftOffice(timestamp=day_start, **_where(start)))

    previous_departure: datetime | None = day_start
    for i, seg in enumerate(ordered):
        arrival = seg.end_time
        end = seg.end_location
        if arrival is None or end is None:
            continue

        matched = matches.get(i)
        cls = classify_location(end.latitude, end.longitude, tech, matched, config)

        travel: int | None = None
        if previous_departure is not None:
            travel = minutes_between(previous_departure, arrival)
            if travel > 0:
                state.total_drive_minutes += travel
            travel = max(0, travel)

        duration: int | None = None
        departure: datetime | None = None
        if i + 1 < len(starts):
            departure = starts[i + 1][0]
            duration = max(0, minutes_between(arrival, departure))
            # Overlapping segments: never leave before arriving.
            departure = max(departure, arrival)
        previous_departure = departure

        arrived = _arrival_event(
            cls,
            tech,
            end,
            arrival,
            travel,
            duration,
            state,
            events,
            first_job,
            first_job_scheduled,
            config,
        )
        if arrived is None:
            continue
        events.append(arrived)
        if departure is not None:
            events.append(_left_event(cls, tech, end, departure))

    return _finish(day, technician_id, technician_name, events, jobs, state)


def _arrival_event(
    cls: Classification,
    tech: TechnicianConfig,
    end: SegmentLocation,
    arrival: datetime,
    travel: int | None,
    duration: int | None,
    state: _DayState,
    events: list[TimelineEvent],
    first_job: Job | None,
    first_job_scheduled: datetime | None,
    config: EngineConfig,
) -> TimelineEvent | None:
    common: dict[str, Any] = {"timestamp": arrival, "travel_minutes": travel, "duration_minutes": duration}
    match cls:
        case Classification(location_type="job", job=Job() as job):
            # Only the first arrival at the first job counts; return visits do not.
            is_first = not state.first_job_processed and first_job is not None and job.job_id == first_job.job_id
            variance: int | None = None
            is_late = False
            if job.scheduled_start is not None:
                evaluation = evaluate_arrival(arrival, job.scheduled_start)
                variance = evaluation.variance_minutes
                is_late = evaluation.is_late
            if is_first:
                state.first_job_processed = True
                if variance is not None:
                    state.first_job_on_time = not is_late
                    state.first_job_variance = variance
            return ArrivedJob(
                job_id=job.job_id,
                job_number=job.job_number,
                customer_name=job.customer_name,
                scheduled_time=job.scheduled_start,
                variance_minutes=variance,
                is_late=is_late,
                is_first_job=is_first,
                **common,
                **_where(end, job.address),
            )
        case Classification(location_type="office"):
            state.total_office_visits += 1
            # A take-home truck that left home and stopped at the office before
            # the first job made a trip it did not need.
            unnecessary = (
                tech.takes_truck_home
                and tech.home is not None
                and first_job_scheduled is not None
                and arrival < first_job_scheduled
                and bool(events)
                and isinstance(events[0], LeftHome)
            )
            return ArrivedOffice(is_unnecessary=unnecessary, **common, **_where(end))
        case Classification(location_type="custom", custom_location=CustomLocation() as loc):
            return ArrivedCustom(
                location_id=loc.location_id,
                location_name=loc.name,
                category=loc.category,
                **common,
                **_where(end, loc.address),
            )
        case Classification(location_type="home"):
            return ArrivedHome(**common, **_where(end, tech.home.address if tech.home else None))
        case _:
            if duration is None or duration < config.unknown_stop_min_minutes:
                return None
            return ArrivedUnknown(**common, **_where(end))


def _finish(
    day: date,
    technician_id: str,
    technician_name: str,
    events: list[TimelineEvent],
    jobs: Sequence[Job],
    state: _DayState,
) -> DayTimeline:
    return DayTimeline(
        technician_id=technician_id,
        technician_name=technician_name,
        day=day,
        day_of_week=day_of_week(day),
        events=tuple(events),
        total_jobs=len(jobs),
        total_office_visits=state.total_office_visits,
        total_drive_minutes=state.total_drive_minutes,
        first_job_on_time=state.first_job_on_time,
        first_job_variance=state.first_job_variance,
    )


def merge_external_events(timeline: DayTimeline, external: Iterable[TimelineEvent]) -> DayTimeline:
    """Interleave pre-built events (punches, corrections) by timestamp.

    The sort is stable, so on equal timestamps GPS events stay ahead of the
    merged ones and merged events keep their given order.
    """

    merged = sorted((*timeline.events, *external), key=lambda e: e.timestamp)
    return replace(timeline, events=tuple(merged))


@dataclass(frozen=True, slots=True)
class DayReport:
    """A timeline together with its office-visit summary."""

    timeline: DayTimeline
    office_visits: tuple[OfficeVisit, ...]


def build_day_report(
    day: date,
    technician_id: str,
    technician_name: str,
    segments: Sequence[VehicleSegment],
    jobs: Sequence[Job],
    tech: TechnicianConfig,
    external_events: Iterable[TimelineEvent] = (),
    estimate: DriveEstimator | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> DayReport:
    """Timeline + merged punch events + transit analysis + office visits."""

    timeline = build_day_timeline(day, technician_id, technician_name, segments, jobs, tech, config)
    timeline = merge_external_events(timeline, external_events)
    annotated = annotate_transit(timeline.events, estimate=estimate, config=config)
    timeline = replace(timeline, events=annotated)

    first_job = find_first_job(jobs)
    visits = detect_office_visits(
        segments,
        first_job.scheduled_start if first_job is not None else None,
        tech,
        config,
    )
    return DayReport(timeline=timeline, office_visits=tuple(visits))
