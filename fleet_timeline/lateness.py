"""Arrival vs. schedule comparison."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from fleet_timeline.models import Job
from fleet_timeline.timeutils import minutes_between


@dataclass(frozen=True, slots=True)
class ArrivalEvaluation:
    """Positive variance means late."""

    variance_minutes: int
    is_late: bool


def evaluate_arrival(arrival_time: datetime, scheduled_time: datetime) -> ArrivalEvaluation:
    """Compare an arrival with its scheduled time.

    Arriving exactly on the minute is on time; one minute after is late.
    """

    variance = minutes_between(scheduled_time, arrival_time)
    return ArrivalEvaluation(variance_minutes=variance, is_late=variance > 0)


def find_first_job(jobs: Sequence[Job]) -> Job | None:
    """The job flagged as first of the day, else the earliest scheduled one.

    When no job has a scheduled time the first job in input order is used.
    """

    if not jobs:
        return None
    for job in jobs:
        if job.is_first_job:
            return job
    scheduled = [j for j in jobs if j.scheduled_start is not None]
    if not scheduled:
        return jobs[0]
    # min() keeps the first of equal keys, so input order breaks ties.
    return min(scheduled, key=lambda j: j.scheduled_start)  # type: ignore[arg-type,return-value]
