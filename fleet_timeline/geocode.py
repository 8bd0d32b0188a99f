"""Address lookups for labeling new custom locations (lat/lon <-> address).

Uses OpenStreetMap Nominatim through the standard library only.

Important:
    - Nominatim allows roughly one request per second; the geocoder sleeps
      between requests to honor ``min_interval_seconds``.
    - Lookups are best-effort: any network or decoding failure yields None
      and is never retried here.
"""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from fleet_timeline.models import CustomLocation

logger = logging.getLogger(__name__)

GeocodeConfidence = Literal["high", "medium", "low"]


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    """A minimal geocoding result."""

    latitude: float
    longitude: float
    display_name: str
    confidence: GeocodeConfidence
    raw: dict[str, Any]


def coord_key(lat: float, lon: float, precision: int = 4) -> str:
    """Stable cache key: "lat,lon" rounded (4 decimals is ~11 m)."""

    return f"{round(lat, precision):.{precision}f},{round(lon, precision):.{precision}f}"


class JsonDiskCache:
    """Key -> result dict, persisted as one JSON file.

    The caller owns the cache and decides when to flush it.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, dict[str, Any]] = {}
        self._loaded = False

    def load(self) -> None:
        """Load cache from disk (no-op if file does not exist)."""

        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        text = self._path.read_text(encoding="utf-8").strip()
        if not text:
            return
        try:
            self._data = json.loads(text)
        except json.JSONDecodeError:
            # Corrupted: keep a backup and start fresh.
            backup = self._path.with_suffix(self._path.suffix + ".broken")
            backup.write_text(text, encoding="utf-8")
            logger.warning("Geocode cache %s is corrupted; moved to %s", self._path, backup)
            self._data = {}

    def get(self, key: str) -> dict[str, Any] | None:
        self.load()
        return self._data.get(key)

    def set(self, key: str, value: dict[str, Any]) -> None:
        self.load()
        self._data[key] = value

    def __len__(self) -> int:
        self.load()
        return len(self._data)

    def flush(self) -> None:
        """Persist cache to disk (write to temp file, then replace)."""

        self.load()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)


@dataclass(frozen=True, slots=True)
class NominatimConfig:
    """Configuration for the Nominatim API."""

    base_url: str = "https://nominatim.openstreetmap.org"
    accept_language: str = "en-US"
    country_codes: str = "us"
    zoom: int = 18
    timeout_seconds: float = 20.0
    min_interval_seconds: float = 1.0
    user_agent: str = "fleet-timeline/0.1.0 (technician-tracking; please set your own UA)"

    def __post_init__(self) -> None:
        if self.min_interval_seconds < 1.0:
            raise ValueError(f"min_interval_seconds must be >= 1.0, got {self.min_interval_seconds}")


def nominatim_get(endpoint: str, params: dict[str, str], cfg: NominatimConfig) -> Any | None:
    """GET a Nominatim endpoint and return decoded JSON, or None on failure.

    No cache and no throttling state; the geocoder class handles both.
    """

    url = f"{cfg.base_url}/{endpoint}?{urllib.parse.urlencode(params)}"
    req = urllib.request.Request(
        url,
        headers={
            "User-Agent": cfg.user_agent,
            "Accept": "application/json",
        },
        method="GET",
    )
    try:
        with urllib.request.urlopen(req, timeout=cfg.timeout_seconds) as resp:  # noqa: S310
            body = resp.read().decode("utf-8", errors="replace")
        return json.loads(body)
    except (urllib.error.URLError, TimeoutError, OSError, json.JSONDecodeError) as exc:
        logger.warning("Nominatim %s request failed: %s", endpoint, exc)
        return None


def _search_confidence(result: dict[str, Any]) -> GeocodeConfidence:
    """House/building level matches are high; city level matches are low."""

    try:
        importance = float(result.get("importance") or 0)
    except (TypeError, ValueError):
        importance = 0.0
    kind = str(result.get("type") or "")
    if kind in ("house", "building", "residential") and importance > 0.3:
        return "high"
    if kind in ("city", "town", "village", "administrative"):
        return "low"
    return "medium"


class NominatimGeocoder:
    """Rate-limited forward/reverse geocoder."""

    def __init__(self, config: NominatimConfig | None = None, cache: JsonDiskCache | None = None) -> None:
        self._cfg = config or NominatimConfig()
        self._cache = cache
        self._last_request_at = 0.0

    def reverse(self, lat: float, lon: float, precision: int = 4) -> GeocodeResult | None:
        """Reverse geocode one coordinate.

        Args:
            lat: Latitude.
            lon: Longitude.
            precision: Rounding precision for the cache key.

        Returns:
            GeocodeResult, or None if the lookup failed.
        """

        key = coord_key(lat, lon, precision)
        raw = self._cache.get(key) if self._cache is not None else None
        if raw is None:
            self._sleep_if_needed()
            raw = nominatim_get(
                "reverse",
                {
                    "format": "jsonv2",
                    "lat": f"{lat:.8f}",
                    "lon": f"{lon:.8f}",
                    "zoom": str(self._cfg.zoom),
                    "addressdetails": "1",
                    "accept-language": self._cfg.accept_language,
                },
                self._cfg,
            )
            if not isinstance(raw, dict) or "error" in raw:
                return None
            if self._cache is not None:
                self._cache.set(key, raw)

        return GeocodeResult(
            latitude=lat,
            longitude=lon,
            display_name=str(raw.get("display_name", "") or ""),
            confidence="high",
            raw=raw,
        )

    def search(self, address: str) -> GeocodeResult | None:
        """Forward geocode an address; None if too short, not found or failed."""

        query = address.strip()
        if len(query) < 5:
            return None
        self._sleep_if_needed()
        results = nominatim_get(
            "search",
            {
                "q": query,
                "format": "json",
                "limit": "5",
                "countrycodes": self._cfg.country_codes,
                "addressdetails": "1",
            },
            self._cfg,
        )
        if not isinstance(results, list) or not results:
            return None
        best = results[0]
        try:
            lat = float(best["lat"])
            lon = float(best["lon"])
        except (KeyError, TypeError, ValueError):
            return None
        return GeocodeResult(
            latitude=lat,
            longitude=lon,
            display_name=str(best.get("display_name", "") or ""),
            confidence=_search_confidence(best),
            raw=best,
        )

    def _sleep_if_needed(self) -> None:
        now = time.time()
        wait = self._cfg.min_interval_seconds - (now - self._last_request_at)
        if wait > 0:
            time.sleep(wait)
        self._last_request_at = time.time()


def label_custom_location(
    geocoder: NominatimGeocoder,
    lat: float,
    lon: float,
    name: str,
    category: str = "other",
    radius_feet: float = 300.0,
) -> CustomLocation:
    """Create a custom location at a GPS stop, with a best-effort address."""

    result = geocoder.reverse(lat, lon)
    return CustomLocation(
        location_id=str(uuid.uuid4()),
        name=name,
        category=category,
        latitude=lat,
        longitude=lon,
        radius_feet=radius_feet,
        address=result.display_name if result is not None else "",
    )
