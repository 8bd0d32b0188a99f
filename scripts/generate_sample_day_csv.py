from __future__ import annotations

import argparse
import csv
import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo


TZ: Final[str] = "America/New_York"
OFFICE: Final[tuple[float, float]] = (36.06693377330104, -79.86402542389432)


@dataclass(frozen=True, slots=True)
class Site:
    job_number: str
    customer: str
    lat: float
    lon: float


def _utc(dt: datetime) -> str:
    # Same shape as the telematics feed: UTC, no zone marker.
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S")


def _jitter(rng: random.Random, lat: float, lon: float) -> tuple[float, float]:
    # ~100 ft of parking offset
    return lat + rng.uniform(-0.0003, 0.0003), lon + rng.uniform(-0.0003, 0.0003)


def generate_day(
    *,
    seed: int,
    day: datetime,
    sites: list[Site],
) -> tuple[list[dict[str, str]], list[dict[str, str]]]:
    """Generate one fake technician-day: office -> jobs (with a detour) -> office."""

    rng = random.Random(seed)
    cur = day.replace(hour=7, minute=30, tzinfo=ZoneInfo(TZ))
    here = OFFICE
    segments: list[dict[str, str]] = []
    jobs: list[dict[str, str]] = []

    stops: list[tuple[float, float, str]] = [(s.lat, s.lon, s.job_number) for s in sites]
    # An unlabeled stop between the first two jobs.
    stops.insert(1, (36.0921, -79.8120, ""))
    stops.append((*OFFICE, ""))

    scheduled = cur + timedelta(minutes=30)
    for lat, lon, job_number in stops:
        drive = timedelta(minutes=rng.uniform(12, 35))
        end = cur + drive
        end_lat, end_lon = _jitter(rng, lat, lon)
        segments.append(
            {
                "start_time": _utc(cur),
                "start_lat": f"{here[0]:.7f}",
                "start_lon": f"{here[1]:.7f}",
                "end_time": _utc(end),
                "end_lat": f"{end_lat:.7f}",
                "end_lon": f"{end_lon:.7f}",
                "is_complete": "1",
                "distance_miles": f"{drive.total_seconds() / 3600 * 30:.1f}",
            }
        )
        if job_number:
            site = next(s for s in sites if s.job_number == job_number)
            jobs.append(
                {
                    "job_id": f"J{job_number}",
                    "job_number": job_number,
                    "scheduled_start": _utc(scheduled),
                    "latitude": f"{site.lat:.7f}",
                    "longitude": f"{site.lon:.7f}",
                    "customer_name": site.customer,
                    "is_first_job": "1" if not jobs else "0",
                }
            )
            scheduled += timedelta(hours=2)
            stay = timedelta(minutes=rng.uniform(45, 100))
        else:
            stay = timedelta(minutes=rng.uniform(5, 25))
        here = (end_lat, end_lon)
        cur = end + stay

    return segments, jobs


def _write(path: Path, rows: list[dict[str, str]], fieldnames: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        w.writerows(rows)


def main() -> int:
    p = argparse.ArgumentParser(description="Generate fake segments.csv / jobs.csv for demo/testing.")
    p.add_argument("--out-dir", type=str, default="sample_data", help="Output directory")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument("--date", type=str, default="2025-12-10", help="Day to generate (YYYY-MM-DD)")
    args = p.parse_args()

    sites = [
        Site("10231", "Harper Residence", 36.1102, -79.8260),
        Site("10244", "Lakeside Dental", 36.0480, -79.7905),
        Site("10259", "Oak Ridge HOA", 36.1730, -79.9890),
    ]
    segments, jobs = generate_day(seed=args.seed, day=datetime.fromisoformat(args.date), sites=sites)

    out_dir = Path(args.out_dir)
    _write(
        out_dir / "segments.csv",
        segments,
        ["start_time", "start_lat", "start_lon", "end_time", "end_lat", "end_lon", "is_complete", "distance_miles"],
    )
    _write(
        out_dir / "jobs.csv",
        jobs,
        ["job_id", "job_number", "scheduled_start", "latitude", "longitude", "customer_name", "is_first_job"],
    )

    print(f"Generated: {out_dir} (segments={len(segments)}, jobs={len(jobs)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
