"""Input loading: CSV exports and upstream telematics records."""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TypeVar

from fleet_timeline.events import ClockIn, ClockOut, MealEnd, MealStart, TimelineEvent
from fleet_timeline.models import (
    CustomLocation,
    DailyFirstSegment,
    HomeLocation,
    Job,
    SegmentLocation,
    TechnicianConfig,
    VehicleSegment,
)
from fleet_timeline.timeutils import TimestampError, parse_optional_timestamp, parse_utc_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")

PUNCH_TYPES: dict[str, type] = {
    "ClockIn": ClockIn,
    "ClockOut": ClockOut,
    "MealStart": MealStart,
    "MealEnd": MealEnd,
}


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _opt_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value.strip())


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "y")


def format_address(line1: str | None, locality: str | None = None, area: str | None = None) -> str:
    """Join address parts, skipping blanks."""

    return ", ".join(p for p in (line1, locality, area) if p)


def _location_from_record(loc: Mapping[str, Any] | None) -> SegmentLocation | None:
    if not loc or loc.get("Latitude") is None or loc.get("Longitude") is None:
        return None
    return SegmentLocation(
        latitude=float(loc["Latitude"]),
        longitude=float(loc["Longitude"]),
        address=format_address(loc.get("AddressLine1"), loc.get("Locality"), loc.get("AdministrativeArea")),
    )


def segment_from_record(rec: Mapping[str, Any]) -> VehicleSegment:
    """Convert one telematics API segment record.

    Expected keys (observed): StartDateUtc, EndDateUtc, IsComplete,
    StartLocation / EndLocation (Latitude, Longitude, AddressLine1, Locality,
    AdministrativeArea), DistanceTraveled, MaxSpeed, IdleTime. Timestamps come
    without a UTC marker and are parsed as UTC.

    Raises:
        TimestampError: If a present timestamp cannot be parsed.
    """

    return VehicleSegment(
        start_time=parse_optional_timestamp(rec.get("StartDateUtc")),
        end_time=parse_optional_timestamp(rec.get("EndDateUtc")),
        start_location=_location_from_record(rec.get("StartLocation")),
        end_location=_location_from_record(rec.get("EndLocation")),
        is_complete=bool(rec.get("IsComplete", True)),
        distance_miles=float(rec.get("DistanceTraveled") or 0.0),
        max_speed_mph=float(rec.get("MaxSpeed") or 0.0),
        idle_seconds=float(rec.get("IdleTime") or 0.0),
    )


def load_segment_records_json(path: str | Path) -> list[VehicleSegment]:
    """Load a saved API response: either ``{"Segments": [...]}`` or a bare list."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    records = payload.get("Segments", []) if isinstance(payload, dict) else payload
    return [segment_from_record(r) for r in records]


def _segment_from_row(row: Mapping[str, str]) -> VehicleSegment:
    start_lat = _opt_float(row["start_lat"])
    start_lon = _opt_float(row["start_lon"])
    end_lat = _opt_float(row.get("end_lat"))
    end_lon = _opt_float(row.get("end_lon"))
    start = None
    if start_lat is not None and start_lon is not None:
        start = SegmentLocation(start_lat, start_lon, row.get("start_address", "") or "")
    end = None
    if end_lat is not None and end_lon is not None:
        end = SegmentLocation(end_lat, end_lon, row.get("end_address", "") or "")
    return VehicleSegment(
        start_time=parse_optional_timestamp(row["start_time"]),
        end_time=parse_optional_timestamp(row.get("end_time")),
        start_location=start,
        end_location=end,
        is_complete=_flag(row.get("is_complete", "1") or "1"),
        distance_miles=_opt_float(row.get("distance_miles")) or 0.0,
    )


def _job_from_row(row: Mapping[str, str]) -> Job:
    return Job(
        job_id=row["job_id"],
        job_number=row.get("job_number", "") or "",
        scheduled_start=parse_optional_timestamp(row.get("scheduled_start")),
        latitude=_opt_float(row.get("latitude")),
        longitude=_opt_float(row.get("longitude")),
        address=row.get("address", "") or "",
        customer_name=row.get("customer_name", "") or "",
        is_first_job=_flag(row.get("is_first_job")),
    )


def _first_segment_from_row(row: Mapping[str, str]) -> DailyFirstSegment:
    return DailyFirstSegment(
        day=date.fromisoformat(row["date"].strip()),
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        address=row.get("address", "") or "",
    )


def _punch_from_row(row: Mapping[str, str]) -> TimelineEvent:
    punch_type = row["punch_type"].strip()
    cls = PUNCH_TYPES.get(punch_type)
    if cls is None:
        raise ValueError(f"Unknown punch type: {punch_type!r}")
    return cls(
        timestamp=parse_utc_timestamp(row["punch_time"]),
        latitude=_opt_float(row.get("latitude")),
        longitude=_opt_float(row.get("longitude")),
        address=row.get("address", "") or "",
        punch_id=row.get("id", "") or "",
        origin=row.get("origin", "") or "",
    )


def _load_rows(csv_path: str | Path, parse: Callable[[Mapping[str, str]], T], what: str) -> tuple[list[T], CsvSummary]:
    """Parse every row; malformed rows are skipped, bad timestamps are fatal.

    Raises:
        KeyError: If a required column is missing.
        TimestampError: If a timestamp cannot be parsed.
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[T] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        for row in reader:
            rows_total += 1
            try:
                parsed.append(parse(row))
            except KeyError as exc:
                raise KeyError(f"{p} is missing required column {exc}. Columns: {list(fieldnames)}") from exc
            except TimestampError:
                raise
            except (ValueError, TypeError):
                continue

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("Skipped %s malformed %s rows in %s", summary.rows_skipped, what, p)
    return parsed, summary


def load_segments(csv_path: str | Path) -> tuple[list[VehicleSegment], CsvSummary]:
    """Load segments from CSV.

    Columns: start_time, start_lat, start_lon (required); end_time, end_lat,
    end_lon, start_address, end_address, is_complete, distance_miles.
    """

    return _load_rows(csv_path, _segment_from_row, "segment")


def load_jobs(csv_path: str | Path) -> tuple[list[Job], CsvSummary]:
    """Load jobs from CSV.

    Columns: job_id (required); job_number, scheduled_start, latitude,
    longitude, address, customer_name, is_first_job.
    """

    return _load_rows(csv_path, _job_from_row, "job")


def load_daily_first_segments(csv_path: str | Path) -> tuple[list[DailyFirstSegment], CsvSummary]:
    """Load per-day start points. Columns: date, latitude, longitude, address."""

    return _load_rows(csv_path, _first_segment_from_row, "daily start")


def load_punch_events(csv_path: str | Path) -> tuple[list[TimelineEvent], CsvSummary]:
    """Load punches as timeline events.

    Columns: punch_time, punch_type (ClockIn, ClockOut, MealStart, MealEnd);
    optional id, origin, latitude, longitude, address.
    """

    return _load_rows(csv_path, _punch_from_row, "punch")


def _custom_location_from_dict(c: Mapping[str, Any]) -> CustomLocation:
    polygon = tuple((float(a), float(b)) for a, b in c.get("polygon") or ())
    boundary_type = c.get("boundary_type") or ("polygon" if polygon else "circle")
    if boundary_type not in ("circle", "polygon"):
        raise ValueError(f"Unknown boundary_type for custom location {c.get('name')!r}: {boundary_type!r}")
    return CustomLocation(
        location_id=str(c.get("location_id", "")),
        name=c["name"],
        category=c.get("category") or "other",
        latitude=float(c["latitude"]),
        longitude=float(c["longitude"]),
        boundary_type=boundary_type,
        radius_feet=float(c.get("radius_feet", 300.0)),
        polygon=polygon,
        address=c.get("address") or "",
    )


def technician_config_from_dict(data: Mapping[str, Any]) -> TechnicianConfig:
    """Build TechnicianConfig from a JSON-style mapping.

    Example::

        {"takes_truck_home": true,
         "home": {"latitude": 36.1, "longitude": -79.8, "address": "12 Elm St"},
         "custom_locations": [{"location_id": "1", "name": "Ferguson",
                               "category": "supply_house", "latitude": 36.0,
                               "longitude": -79.9, "boundary_type": "circle",
                               "radius_feet": 300}]}

    ``boundary_type`` defaults to "polygon" when a polygon is given, else
    "circle".

    Raises:
        ValueError: If a boundary_type is neither "circle" nor "polygon".
    """

    home = None
    if data.get("home"):
        h = data["home"]
        home = HomeLocation(float(h["latitude"]), float(h["longitude"]), h.get("address") or "Home")
    locations = tuple(_custom_location_from_dict(c) for c in data.get("custom_locations") or ())
    return TechnicianConfig(
        takes_truck_home=bool(data.get("takes_truck_home", False)),
        home=home,
        custom_locations=locations,
    )


def load_technician_config(path: str | Path) -> TechnicianConfig:
    """Load TechnicianConfig from a JSON file."""

    return technician_config_from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
