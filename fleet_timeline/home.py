"""Infer a technician's home from where the truck starts each day."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Sequence

from fleet_timeline.classify import is_near_office
from fleet_timeline.config import DEFAULT_CONFIG, EngineConfig
from fleet_timeline.geo import distance_feet
from fleet_timeline.models import Confidence, DailyFirstSegment, HomeLocationSuggestion, VehicleSegment, sort_usable_segments

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Cluster:
    # The center is the first member and is never recomputed.
    center: DailyFirstSegment
    members: list[DailyFirstSegment] = field(default_factory=list)


def _cluster_starts(starts: Sequence[DailyFirstSegment], radius_feet: float) -> list[_Cluster]:
    """Greedy single-link clustering against fixed first-member centers.

    Deterministic but order dependent: early days seed the centers.
    """

    clusters: list[_Cluster] = []
    for s in starts:
        for c in clusters:
            if distance_feet(s.latitude, s.longitude, c.center.latitude, c.center.longitude) <= radius_feet:
                c.members.append(s)
                break
        else:
            clusters.append(_Cluster(center=s, members=[s]))
    return clusters


def _confidence(days_detected: int, ratio: float) -> Confidence | None:
    if ratio >= 0.8 and days_detected >= 10:
        return "high"
    if ratio >= 0.5 and days_detected >= 5:
        return "medium"
    if days_detected >= 3:
        return "low"
    return None


def detect_home_location(
    daily_first_segments: Sequence[DailyFirstSegment],
    config: EngineConfig = DEFAULT_CONFIG,
) -> HomeLocationSuggestion | None:
    """Suggest a home location from many days of first-segment start points.

    Args:
        daily_first_segments: One entry per day for a single technician.
        config: Engine configuration (office site, cluster radius, minimums).

    Returns:
        HomeLocationSuggestion, or None when there is not enough consistent
        data (callers should report "could not detect", not retry).
    """

    total = len(daily_first_segments)
    if total < config.min_home_days:
        logger.info("Home detection needs %d days of data, got %d", config.min_home_days, total)
        return None

    non_office = [s for s in daily_first_segments if not is_near_office(s.latitude, s.longitude, config.office)]
    if len(non_office) < config.min_home_cluster_days:
        logger.info("Only %d of %d days started away from the office", len(non_office), total)
        return None

    clusters = _cluster_starts(non_office, config.cluster_radius_feet)
    # max() keeps the first cluster among equally large ones.
    best = max(clusters, key=lambda c: len(c.members))
    detected = len(best.members)
    confidence = _confidence(detected, detected / len(non_office))
    if confidence is None:
        return None

    lat = sum(m.latitude for m in best.members) / detected
    lon = sum(m.longitude for m in best.members) / detected

    counts = Counter(m.address for m in best.members if m.address)
    if counts:
        address = counts.most_common(1)[0][0]
    else:
        address = best.center.address or "Unknown Address"

    return HomeLocationSuggestion(
        latitude=lat,
        longitude=lon,
        address=address,
        confidence=confidence,
        days_detected=detected,
        total_days_analyzed=total,
    )


def collect_daily_first_segments(
    segments_by_day: Mapping[date, Sequence[VehicleSegment]],
    skip_weekends: bool = True,
) -> list[DailyFirstSegment]:
    """Build home-detection input: the earliest usable segment's start per day.

    Days without usable segments are skipped, as are Saturdays and Sundays
    unless ``skip_weekends`` is False.
    """

    out: list[DailyFirstSegment] = []
    for day in sorted(segments_by_day):
        if skip_weekends and day.weekday() >= 5:
            continue
        ordered = sort_usable_segments(segments_by_day[day])
        if not ordered:
            continue
        start = ordered[0].start_location
        if start is None:
            continue
        out.append(DailyFirstSegment(day=day, latitude=start.latitude, longitude=start.longitude, address=start.address))
    return out
