"""Office visit detection, consolidation and classification."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Iterable, Sequence

from fleet_timeline.classify import is_near_home, is_near_office
from fleet_timeline.config import DEFAULT_CONFIG, EngineConfig
from fleet_timeline.models import OfficeVisit, OfficeVisitType, TechnicianConfig, VehicleSegment, sort_usable_segments
from fleet_timeline.timeutils import format_local, local_hour, minutes_between

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RawOfficeStop:
    """An office stop before consolidation."""

    arrival_time: datetime
    departure_time: datetime | None


def _collect_raw_visits(segments: Sequence[VehicleSegment], config: EngineConfig) -> tuple[list[RawOfficeStop], bool]:
    """Raw office stops in time order, plus whether the day started at the office."""

    raw: list[RawOfficeStop] = []
    first = segments[0]
    start = first.start_location
    starts_at_office = start is not None and is_near_office(start.latitude, start.longitude, config.office)
    if starts_at_office:
        # Overnight at the office: the real arrival is unknown, use the departure.
        raw.append(RawOfficeStop(arrival_time=first.start_time, departure_time=first.start_time))  # type: ignore[arg-type]

    for i, seg in enumerate(segments):
        if not seg.has_end:
            continue
        end = seg.end_location
        if not is_near_office(end.latitude, end.longitude, config.office):  # type: ignore[union-attr]
            continue
        departure = segments[i + 1].start_time if i + 1 < len(segments) else None
        raw.append(RawOfficeStop(arrival_time=seg.end_time, departure_time=departure))  # type: ignore[arg-type]
    return raw, starts_at_office


def consolidate_visits(raw: Iterable[RawOfficeStop], window: timedelta) -> list[RawOfficeStop]:
    """Merge a visit into the previous one when it starts within ``window`` of
    the previous visit's departure (or arrival, if the departure is unknown)."""

    merged: list[RawOfficeStop] = []
    for visit in raw:
        if merged:
            last = merged[-1]
            last_departure = last.departure_time or last.arrival_time
            if visit.arrival_time - last_departure <= window:
                last.departure_time = visit.departure_time
                continue
        merged.append(RawOfficeStop(visit.arrival_time, visit.departure_time))
    return merged


def is_end_of_day(arrival: datetime, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    """Whether an arrival is at or after the office's end-of-day hour."""

    if config.end_of_day_utc_offset_hours is not None:
        return arrival.astimezone(UTC).hour >= config.end_of_day_hour + config.end_of_day_utc_offset_hours
    return local_hour(arrival, config.office.tz_name) >= config.end_of_day_hour


def detect_office_visits(
    segments: Sequence[VehicleSegment],
    first_job_scheduled_time: datetime | None = None,
    tech: TechnicianConfig | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[OfficeVisit]:
    """Detect and classify the day's office visits.

    Classification:
      - the synthetic "day started at the office" visit is a morning departure;
      - a visit arriving before the first job's scheduled time is a morning
        departure, unless the truck started the day at the technician's home,
        in which case it is an unnecessary mid-day visit;
      - arriving at or after the end-of-day hour, or the last visit with no
        known departure, is end of day;
      - everything else is a mid-day visit.

    Args:
        segments: One day's segments (any order).
        first_job_scheduled_time: Scheduled start of the day's first job.
        tech: Technician configuration, used for the home-start check.
        config: Engine configuration.

    Returns:
        Consolidated visits in time order.
    """

    ordered = sort_usable_segments(segments)
    if not ordered:
        return []

    raw, starts_at_office = _collect_raw_visits(ordered, config)
    consolidated = consolidate_visits(raw, timedelta(minutes=config.consolidation_window_minutes))
    if len(consolidated) < len(raw):
        logger.debug("Consolidated %d raw office stops into %d visits", len(raw), len(consolidated))

    started_from_home = False
    start = ordered[0].start_location
    if tech is not None and tech.takes_truck_home and start is not None:
        started_from_home = is_near_home(start.latitude, start.longitude, tech.home, config.home_radius_feet)

    visits: list[OfficeVisit] = []
    last_index = len(consolidated) - 1
    for i, v in enumerate(consolidated):
        duration = None
        if v.departure_time is not None:
            duration = max(0, minutes_between(v.arrival_time, v.departure_time))

        synthetic = i == 0 and starts_at_office
        unnecessary = False
        visit_type: OfficeVisitType
        if synthetic:
            visit_type = "morning_departure"
        elif first_job_scheduled_time is not None and v.arrival_time < first_job_scheduled_time:
            if started_from_home:
                visit_type = "mid_day_visit"
                unnecessary = True
            else:
                visit_type = "morning_departure"
        elif is_end_of_day(v.arrival_time, config):
            visit_type = "end_of_day"
        elif i == last_index and v.departure_time is None:
            visit_type = "end_of_day"
        else:
            visit_type = "mid_day_visit"

        visits.append(
            OfficeVisit(
                arrival_time=None if synthetic else v.arrival_time,
                departure_time=v.departure_time,
                duration_minutes=duration,
                visit_type=visit_type,
                is_unnecessary=unnecessary,
            )
        )
    return visits


def _format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def write_office_visits_csv(visits: Sequence[OfficeVisit], out_path: str | Path, tz_name: str) -> None:
    """Write office visits to CSV (local times in ``tz_name``)."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "visit_type",
                "arrival_time",
                "departure_time",
                "duration_minutes",
                "duration_hhmm",
                "is_unnecessary",
            ],
        )
        w.writeheader()
        for v in visits:
            w.writerow(
                {
                    "visit_type": v.visit_type,
                    "arrival_time": format_local(v.arrival_time, tz_name),
                    "departure_time": format_local(v.departure_time, tz_name),
                    "duration_minutes": "" if v.duration_minutes is None else v.duration_minutes,
                    "duration_hhmm": "" if v.duration_minutes is None else _format_hhmm(v.duration_minutes),
                    "is_unnecessary": int(v.is_unnecessary),
                }
            )


@dataclass(frozen=True, slots=True)
class OfficeVisitsTotal:
    """Office time summary."""

    visits: int
    mid_day_visits: int
    unnecessary_visits: int
    total_minutes: int

    @property
    def total_hhmm(self) -> str:
        return _format_hhmm(self.total_minutes)


def sum_office_visits(visits: Iterable[OfficeVisit]) -> OfficeVisitsTotal:
    """Count visits and sum known durations."""

    count = mid_day = unnecessary = total = 0
    for v in visits:
        count += 1
        if v.visit_type == "mid_day_visit":
            mid_day += 1
        if v.is_unnecessary:
            unnecessary += 1
        total += v.duration_minutes or 0
    return OfficeVisitsTotal(visits=count, mid_day_visits=mid_day, unnecessary_visits=unnecessary, total_minutes=total)
