"""Engine configuration: geofence radii, windows and thresholds."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Final

logger = logging.getLogger(__name__)

# GPS drift plus parking offset in front of a customer site.
ARRIVAL_RADIUS_FEET: Final[float] = 300.0
OFFICE_RADIUS_FEET: Final[float] = 500.0
HOME_RADIUS_FEET: Final[float] = 500.0
CLUSTER_RADIUS_FEET: Final[float] = 500.0
CONSOLIDATION_WINDOW_MINUTES: Final[int] = 15
UNKNOWN_STOP_MIN_MINUTES: Final[int] = 2
END_OF_DAY_HOUR: Final[int] = 17

DEFAULT_OFFICE_TZ: Final[str] = "America/New_York"


@dataclass(frozen=True, slots=True)
class OfficeSite:
    """The fixed organizational anchor (shop / office)."""

    latitude: float = 36.06693377330104
    longitude: float = -79.86402542389432
    radius_feet: float = OFFICE_RADIUS_FEET
    tz_name: str = DEFAULT_OFFICE_TZ


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Parameters controlling timeline reconstruction and anomaly detection."""

    office: OfficeSite = OfficeSite()
    arrival_radius_feet: float = ARRIVAL_RADIUS_FEET
    home_radius_feet: float = HOME_RADIUS_FEET
    unknown_stop_min_minutes: int = UNKNOWN_STOP_MIN_MINUTES
    consolidation_window_minutes: int = CONSOLIDATION_WINDOW_MINUTES
    end_of_day_hour: int = END_OF_DAY_HOUR
    # When set, "5 PM local" is computed as UTC hour >= end_of_day_hour + offset
    # (no DST handling). When None, office.tz_name is used.
    end_of_day_utc_offset_hours: int | None = None
    cluster_radius_feet: float = CLUSTER_RADIUS_FEET
    min_home_days: int = 5
    min_home_cluster_days: int = 3
    transit_threshold_minutes: int = 0
    transit_high_severity_minutes: int = 30
    average_speed_mph: float = 30.0


DEFAULT_CONFIG: Final[EngineConfig] = EngineConfig()


def load_config(path: str | Path, base: EngineConfig = DEFAULT_CONFIG) -> EngineConfig:
    """Load config overrides from a TOML file.

    Top-level keys map onto EngineConfig fields; an ``[office]`` table maps
    onto OfficeSite.

    Example::

        arrival_radius_feet = 250
        [office]
        latitude = 36.07
        longitude = -79.86

    Raises:
        ValueError: If the file contains keys that are not config fields.
    """

    p = Path(path)
    with p.open("rb") as f:
        data: dict[str, Any] = tomllib.load(f)

    office_data = data.pop("office", None)
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys in {p}: {', '.join(unknown)}")

    office = base.office
    if office_data is not None:
        office_known = {f.name for f in fields(OfficeSite)}
        bad = sorted(set(office_data) - office_known)
        if bad:
            raise ValueError(f"Unknown [office] keys in {p}: {', '.join(bad)}")
        office = replace(office, **office_data)

    cfg = replace(base, office=office, **data)
    logger.debug("Loaded config from %s: %s", p, cfg)
    return cfg
