"""Transit-time anomaly detection between consecutive jobs."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Iterable, Sequence

from fleet_timeline.config import DEFAULT_CONFIG, EngineConfig
from fleet_timeline.events import ArrivedJob, LeftJob, MealEnd, MealStart, TimelineEvent, TransitAnalysis
from fleet_timeline.geo import distance_feet
from fleet_timeline.timeutils import minutes_between, round_minutes

logger = logging.getLogger(__name__)

FEET_PER_MILE = 5280.0

# (from_lat, from_lon, to_lat, to_lon) -> expected drive minutes
DriveEstimator = Callable[[float, float, float, float], float]

MealBreak = tuple[datetime, datetime]


def estimate_drive_minutes(
    from_lat: float,
    from_lon: float,
    to_lat: float,
    to_lon: float,
    average_speed_mph: float = DEFAULT_CONFIG.average_speed_mph,
) -> float:
    """Straight-line drive time at an assumed average speed."""

    miles = distance_feet(from_lat, from_lon, to_lat, to_lon) / FEET_PER_MILE
    return miles / average_speed_mph * 60.0


def meal_breaks_from_events(events: Iterable[TimelineEvent]) -> list[MealBreak]:
    """Pair meal_start/meal_end punches in time order. Unclosed breaks are ignored."""

    breaks: list[MealBreak] = []
    open_start: datetime | None = None
    for e in sorted(events, key=lambda ev: ev.timestamp):
        if isinstance(e, MealStart):
            open_start = e.timestamp
        elif isinstance(e, MealEnd) and open_start is not None:
            if e.timestamp > open_start:
                breaks.append((open_start, e.timestamp))
            open_start = None
    return breaks


def meal_minutes_within(start: datetime, end: datetime, meal_breaks: Iterable[MealBreak]) -> int:
    """Minutes of meal break overlapping [start, end]."""

    overlap = timedelta(0)
    for m_start, m_end in meal_breaks:
        lo = max(start, m_start)
        hi = min(end, m_end)
        if hi > lo:
            overlap += hi - lo
    return round_minutes(overlap)


def analyze_transit(
    left: LeftJob,
    arrived: ArrivedJob,
    expected_drive_minutes: float,
    meal_breaks: Sequence[MealBreak] = (),
    threshold_minutes: int = DEFAULT_CONFIG.transit_threshold_minutes,
    high_severity_minutes: int = DEFAULT_CONFIG.transit_high_severity_minutes,
) -> TransitAnalysis:
    """Compare expected drive time with actual on-the-clock transit.

    On-clock transit is the time between leaving one job and arriving at the
    next, minus any meal break inside that span. Excess above
    ``threshold_minutes`` is suspicious; ``high_severity_minutes`` or more is
    high severity. This is advisory only.
    """

    elapsed = max(0, minutes_between(left.timestamp, arrived.timestamp))
    meal = meal_minutes_within(left.timestamp, arrived.timestamp, meal_breaks)
    on_clock = max(0, elapsed - meal)
    expected = max(0, round_minutes(timedelta(minutes=expected_drive_minutes)))
    excess = on_clock - expected
    suspicious = excess > threshold_minutes
    severity = None
    if suspicious:
        severity = "high" if excess >= high_severity_minutes else "low"
    return TransitAnalysis(
        from_job_number=left.job_number,
        to_job_number=arrived.job_number,
        expected_drive_minutes=expected,
        elapsed_minutes=elapsed,
        meal_break_minutes=meal,
        on_clock_transit_minutes=on_clock,
        excess_minutes=excess,
        is_suspicious=suspicious,
        severity=severity,
    )


def annotate_transit(
    events: Sequence[TimelineEvent],
    estimate: DriveEstimator | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> tuple[TimelineEvent, ...]:
    """Attach a TransitAnalysis to every arrived_job that follows a left_job.

    Stops in between (unknown stops, the office, meals) stay inside the span;
    they are what the excess measures.

    Args:
        events: Timestamp-ordered events, punch events already merged.
        estimate: Expected drive-time estimator. Defaults to straight-line
            distance at ``config.average_speed_mph``.
        config: Engine configuration (thresholds, speed).

    Returns:
        New event tuple; events are replaced, never mutated.
    """

    estimator = estimate or partial(estimate_drive_minutes, average_speed_mph=config.average_speed_mph)
    meals = meal_breaks_from_events(events)
    out = list(events)
    pending: LeftJob | None = None
    for i, e in enumerate(out):
        if isinstance(e, LeftJob):
            pending = e
        elif isinstance(e, ArrivedJob):
            if pending is not None and None not in (pending.latitude, pending.longitude, e.latitude, e.longitude):
                expected = estimator(pending.latitude, pending.longitude, e.latitude, e.longitude)  # type: ignore[arg-type]
                analysis = analyze_transit(
                    pending,
                    e,
                    expected,
                    meals,
                    config.transit_threshold_minutes,
                    config.transit_high_severity_minutes,
                )
                if analysis.is_suspicious:
                    logger.info(
                        "Transit %s -> %s: %d min over expected (%s)",
                        analysis.from_job_number,
                        analysis.to_job_number,
                        analysis.excess_minutes,
                        analysis.severity,
                    )
                out[i] = replace(e, transit=analysis)
            pending = None
    return tuple(out)
