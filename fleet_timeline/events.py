"""Timeline events (one dataclass per kind) and the day timeline value.

Every event class carries a ``kind`` class attribute equal to its wire name
(``left_home``, ``arrived_job``, ...). ``TimelineEvent`` is the union of all
kinds, so ``match`` statements over class patterns can be checked for
exhaustiveness.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, ClassVar, Literal, Union


@dataclass(frozen=True, slots=True, kw_only=True)
class _Event:
    kind: ClassVar[str] = ""

    timestamp: datetime
    latitude: float | None = None
    longitude: float | None = None
    address: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class _Arrival(_Event):
    # Minutes since the previous departure, and minutes until the next one.
    travel_minutes: int | None = None
    duration_minutes: int | None = None


@dataclass(frozen=True, slots=True)
class TransitAnalysis:
    """Expected vs. actual on-the-clock transit between two jobs."""

    from_job_number: str
    to_job_number: str
    expected_drive_minutes: int
    elapsed_minutes: int
    meal_break_minutes: int
    on_clock_transit_minutes: int
    excess_minutes: int
    is_suspicious: bool
    severity: Literal["high", "low"] | None = None


# GPS-derived kinds


@dataclass(frozen=True, slots=True, kw_only=True)
class LeftHome(_Event):
    kind: ClassVar[str] = "left_home"


@dataclass(frozen=True, slots=True, kw_only=True)
class ArrivedHome(_Arrival):
    kind: ClassVar[str] = "arrived_home"


@dataclass(frozen=True, slots=True, kw_only=True)
class LeftOffice(_Event):
    kind: ClassVar[str] = "left_office"


@dataclass(frozen=True, slots=True, kw_only=True)
class ArrivedOffice(_Arrival):
    kind: ClassVar[str] = "arrived_office"

    is_unnecessary: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class ArrivedJob(_Arrival):
    kind: ClassVar[str] = "arrived_job"

    job_id: str
    job_number: str = ""
    customer_name: str = ""
    scheduled_time: datetime | None = None
    variance_minutes: int | None = None
    is_late: bool = False
    is_first_job: bool = False
    transit: TransitAnalysis | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class LeftJob(_Event):
    kind: ClassVar[str] = "left_job"

    job_id: str
    job_number: str = ""
    customer_name: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class ArrivedUnknown(_Arrival):
    kind: ClassVar[str] = "arrived_unknown"


@dataclass(frozen=True, slots=True, kw_only=True)
class LeftUnknown(_Event):
    kind: ClassVar[str] = "left_unknown"


@dataclass(frozen=True, slots=True, kw_only=True)
class ArrivedCustom(_Arrival):
    kind: ClassVar[str] = "arrived_custom"

    location_id: str = ""
    location_name: str = ""
    category: str = "other"


@dataclass(frozen=True, slots=True, kw_only=True)
class LeftCustom(_Event):
    kind: ClassVar[str] = "left_custom"

    location_id: str = ""
    location_name: str = ""
    category: str = "other"


# Externally built kinds (punch data, corrections). The builder never creates
# these; they are merged into the stream by timestamp.


@dataclass(frozen=True, slots=True, kw_only=True)
class _Punch(_Event):
    punch_id: str = ""
    origin: str = ""
    is_violation: bool = False
    violation_reason: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class ClockIn(_Punch):
    kind: ClassVar[str] = "clock_in"


@dataclass(frozen=True, slots=True, kw_only=True)
class ClockOut(_Punch):
    kind: ClassVar[str] = "clock_out"


@dataclass(frozen=True, slots=True, kw_only=True)
class MealStart(_Punch):
    kind: ClassVar[str] = "meal_start"


@dataclass(frozen=True, slots=True, kw_only=True)
class MealEnd(_Punch):
    kind: ClassVar[str] = "meal_end"


@dataclass(frozen=True, slots=True, kw_only=True)
class MissingClockOut(_Event):
    kind: ClassVar[str] = "missing_clock_out"

    note: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class OvernightAtOffice(_Event):
    kind: ClassVar[str] = "overnight_at_office"


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposedPunch(_Event):
    kind: ClassVar[str] = "proposed_punch"

    proposed_punch_id: str = ""
    punch_type: str = ""
    note: str = ""
    status: str = "pending"


TimelineEvent = Union[
    LeftHome,
    ArrivedHome,
    LeftOffice,
    ArrivedOffice,
    ArrivedJob,
    LeftJob,
    ArrivedUnknown,
    LeftUnknown,
    ArrivedCustom,
    LeftCustom,
    ClockIn,
    ClockOut,
    MealStart,
    MealEnd,
    MissingClockOut,
    OvernightAtOffice,
    ProposedPunch,
]

EVENT_TYPES: dict[str, type] = {
    cls.kind: cls
    for cls in (
        LeftHome,
        ArrivedHome,
        LeftOffice,
        ArrivedOffice,
        ArrivedJob,
        LeftJob,
        ArrivedUnknown,
        LeftUnknown,
        ArrivedCustom,
        LeftCustom,
        ClockIn,
        ClockOut,
        MealStart,
        MealEnd,
        MissingClockOut,
        OvernightAtOffice,
        ProposedPunch,
    )
}

EXTERNAL_EVENT_TYPES: tuple[type, ...] = (
    ClockIn,
    ClockOut,
    MealStart,
    MealEnd,
    MissingClockOut,
    OvernightAtOffice,
    ProposedPunch,
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def event_to_dict(event: TimelineEvent) -> dict[str, Any]:
    """Flatten an event into a JSON-friendly dict with a ``type`` tag."""

    return {"type": event.kind, **_jsonable(asdict(event))}


@dataclass(frozen=True, slots=True)
class DayTimeline:
    """One technician-day of reconstructed activity."""

    technician_id: str
    technician_name: str
    day: date
    day_of_week: str
    events: tuple[TimelineEvent, ...]
    total_jobs: int
    total_office_visits: int
    total_drive_minutes: int
    first_job_on_time: bool | None
    first_job_variance: int | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "technician_id": self.technician_id,
            "technician_name": self.technician_name,
            "date": self.day.isoformat(),
            "day_of_week": self.day_of_week,
            "events": [event_to_dict(e) for e in self.events],
            "total_jobs": self.total_jobs,
            "total_office_visits": self.total_office_visits,
            "total_drive_minutes": self.total_drive_minutes,
            "first_job_on_time": self.first_job_on_time,
            "first_job_variance": self.first_job_variance,
        }
