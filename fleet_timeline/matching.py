"""Associate vehicle trip segments with scheduled jobs by spatial proximity."""

from __future__ import annotations

import logging
from typing import Sequence

from fleet_timeline.config import ARRIVAL_RADIUS_FEET
from fleet_timeline.geo import distance_feet
from fleet_timeline.models import Job, VehicleSegment

logger = logging.getLogger(__name__)


def match_jobs_to_segments(
    segments: Sequence[VehicleSegment],
    jobs: Sequence[Job],
    radius_feet: float = ARRIVAL_RADIUS_FEET,
) -> dict[int, Job]:
    """Map segment index -> job for segments that end at a job site.

    Jobs are tried in the order given and the first one within the radius
    wins; there is no best-distance tie-break. A job may match several
    segments (return visits), a segment matches at most one job.

    Args:
        segments: The day's segments (indexes refer to this sequence).
        jobs: The day's jobs. Jobs without a geocoded site are ignored.
        radius_feet: Arrival radius.

    Returns:
        Dict of segment index to matched job.
    """

    with_site = [j for j in jobs if j.has_site]
    if len(with_site) < len(jobs):
        logger.debug("%d of %d jobs have no geocoded site and cannot be matched", len(jobs) - len(with_site), len(jobs))

    matches: dict[int, Job] = {}
    for i, seg in enumerate(segments):
        end = seg.end_location
        if end is None:
            continue
        for job in with_site:
            # has_site guarantees both coordinates are set
            if distance_feet(end.latitude, end.longitude, job.latitude, job.longitude) <= radius_feet:  # type: ignore[arg-type]
                matches[i] = job
                break
    return matches
