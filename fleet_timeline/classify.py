"""Priority-ordered classification of a coordinate against a technician's geofences."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from fleet_timeline.config import DEFAULT_CONFIG, EngineConfig, OfficeSite
from fleet_timeline.geo import point_in_polygon, within_radius
from fleet_timeline.models import CustomLocation, HomeLocation, Job, TechnicianConfig

LocationType = Literal["job", "office", "custom", "home", "unknown"]


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of classifying one stop."""

    location_type: LocationType
    job: Job | None = None
    custom_location: CustomLocation | None = None


def is_near_office(lat: float, lon: float, office: OfficeSite = DEFAULT_CONFIG.office) -> bool:
    return within_radius(lat, lon, office.latitude, office.longitude, office.radius_feet)


def is_near_home(lat: float, lon: float, home: HomeLocation | None, radius_feet: float) -> bool:
    if home is None:
        return False
    return within_radius(lat, lon, home.latitude, home.longitude, radius_feet)


def custom_location_contains(location: CustomLocation, lat: float, lon: float) -> bool:
    """Polygon containment for polygon boundaries, radius check for circles."""

    if location.boundary_type == "polygon":
        return point_in_polygon(lat, lon, location.polygon)
    return within_radius(lat, lon, location.latitude, location.longitude, location.radius_feet)


def find_custom_location(
    lat: float,
    lon: float,
    locations: tuple[CustomLocation, ...] | list[CustomLocation],
) -> CustomLocation | None:
    """First labeled geofence containing the point, in configuration order."""

    for loc in locations:
        if custom_location_contains(loc, lat, lon):
            return loc
    return None


def classify_location(
    lat: float,
    lon: float,
    tech: TechnicianConfig,
    matched_job: Job | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Classification:
    """Classify a coordinate. The first rule that matches wins.

    Order: matched job, office, custom geofence, home (only for technicians
    who take the truck home), unknown. A geofence overlapping a job site must
    not mask the job attribution, and the office outranks everything but jobs.

    Args:
        lat: Latitude of the stop.
        lon: Longitude of the stop.
        tech: Technician configuration.
        matched_job: Job already matched to this stop, if any. Always None
            for segment start points.
        config: Engine configuration (office site, home radius).

    Returns:
        Classification.
    """

    if matched_job is not None:
        return Classification("job", job=matched_job)
    if is_near_office(lat, lon, config.office):
        return Classification("office")
    custom = find_custom_location(lat, lon, tech.custom_locations)
    if custom is not None:
        return Classification("custom", custom_location=custom)
    if tech.takes_truck_home and is_near_home(lat, lon, tech.home, config.home_radius_feet):
        return Classification("home")
    return Classification("unknown")
