"""Data models for vehicle segments, jobs, technician settings and summaries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Final, Iterable, Literal

LocationCategory = Literal["gas_station", "supply_house", "restaurant", "parts_store", "other"]
LOCATION_CATEGORIES: Final[tuple[str, ...]] = ("gas_station", "supply_house", "restaurant", "parts_store", "other")

OfficeVisitType = Literal["morning_departure", "mid_day_visit", "end_of_day"]
Confidence = Literal["high", "medium", "low"]
BoundaryType = Literal["circle", "polygon"]


@dataclass(frozen=True, slots=True)
class SegmentLocation:
    """One end of a vehicle trip."""

    latitude: float
    longitude: float
    address: str = ""


@dataclass(frozen=True, slots=True)
class VehicleSegment:
    """One continuous drive reported by the telematics provider.

    Attributes:
        start_time: Ignition-on / trip start, aware UTC datetime.
        end_time: Trip end (vehicle parked). None while the trip is unfinished.
        start_location: Where the trip started.
        end_location: Where the vehicle parked. None while unfinished.
        is_complete: Provider's completeness flag.
        distance_miles: Trip distance as reported by the provider.
        max_speed_mph: Peak speed during the trip.
        idle_seconds: Engine idle time during the trip.
    """

    start_time: datetime | None
    end_time: datetime | None
    start_location: SegmentLocation | None
    end_location: SegmentLocation | None
    is_complete: bool = True
    distance_miles: float = 0.0
    max_speed_mph: float = 0.0
    idle_seconds: float = 0.0

    @property
    def is_usable(self) -> bool:
        """Segments need a start time and start location to be placed on a timeline."""

        return self.start_time is not None and self.start_location is not None

    @property
    def has_end(self) -> bool:
        return self.end_time is not None and self.end_location is not None


@dataclass(frozen=True, slots=True)
class Job:
    """A scheduled appointment at a customer site."""

    job_id: str
    job_number: str = ""
    scheduled_start: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None
    address: str = ""
    customer_name: str = ""
    is_first_job: bool = False

    @property
    def has_site(self) -> bool:
        """Jobs without a geocoded site can never be matched to a GPS stop."""

        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True, slots=True)
class CustomLocation:
    """A labeled geofence (supply house, gas station, ...).

    ``boundary_type`` decides which shape is used. A polygon boundary with
    fewer than three vertices contains nothing; the circle is not a fallback.
    """

    location_id: str
    name: str
    category: str
    latitude: float
    longitude: float
    boundary_type: BoundaryType = "circle"
    radius_feet: float = 300.0
    polygon: tuple[tuple[float, float], ...] = ()
    address: str = ""


@dataclass(frozen=True, slots=True)
class HomeLocation:
    """A human-confirmed home coordinate."""

    latitude: float
    longitude: float
    address: str = "Home"


@dataclass(frozen=True, slots=True)
class TechnicianConfig:
    """Per-technician settings used for classification."""

    takes_truck_home: bool = False
    home: HomeLocation | None = None
    custom_locations: tuple[CustomLocation, ...] = ()


@dataclass(frozen=True, slots=True)
class OfficeVisit:
    """A consolidated stay at the office geofence.

    Note:
        arrival_time is None for the synthetic "truck was already at the office
        when the day started" visit; departure_time is None when the vehicle
        was still there at the end of the data.
    """

    arrival_time: datetime | None
    departure_time: datetime | None
    duration_minutes: int | None
    visit_type: OfficeVisitType
    is_unnecessary: bool = False


@dataclass(frozen=True, slots=True)
class DailyFirstSegment:
    """Where the vehicle first moved from on a given day."""

    day: date
    latitude: float
    longitude: float
    address: str = ""


@dataclass(frozen=True, slots=True)
class HomeLocationSuggestion:
    """Advisory home location inferred from daily starting points."""

    latitude: float
    longitude: float
    address: str
    confidence: Confidence
    days_detected: int
    total_days_analyzed: int

    @property
    def message(self) -> str:
        lead = {"high": "Very likely", "medium": "Likely", "low": "Possibly"}[self.confidence]
        return (
            f"{lead} home location. Truck started here on {self.days_detected} "
            f"of {self.total_days_analyzed} work days."
        )


def sort_usable_segments(segments: Iterable[VehicleSegment]) -> list[VehicleSegment]:
    """Drop segments without a start time/location and sort by start time."""

    usable = [s for s in segments if s.is_usable]
    usable.sort(key=lambda s: s.start_time)  # type: ignore[arg-type,return-value]
    return usable
