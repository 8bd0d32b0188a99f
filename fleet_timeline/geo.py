"""Geospatial utilities (no external dependencies)."""

from __future__ import annotations

import math
from typing import Sequence

EARTH_RADIUS_FEET = 20_902_231.0
FEET_TO_METERS = 0.3048


def distance_feet(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in feet between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in feet.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_FEET * c


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in meters."""

    return distance_feet(lat1, lon1, lat2, lon2) * FEET_TO_METERS


def within_radius(
    lat: float,
    lon: float,
    center_lat: float,
    center_lon: float,
    radius_feet: float,
) -> bool:
    """Check whether a point is inside or on the boundary of a circle geofence."""

    return distance_feet(lat, lon, center_lat, center_lon) <= radius_feet


def point_in_polygon(lat: float, lon: float, vertices: Sequence[tuple[float, float]] | None) -> bool:
    """Ray-casting containment test.

    Args:
        lat: Point latitude.
        lon: Point longitude.
        vertices: Polygon vertices as (lat, lon) pairs. The ring does not need
            to be closed explicitly.

    Returns:
        True if the point is inside. Degenerate polygons (fewer than 3
        vertices) never contain anything.
    """

    if not vertices or len(vertices) < 3:
        return False

    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        yi, xi = vertices[i]
        yj, xj = vertices[j]
        if (yi > lat) != (yj > lat) and lon < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside
