"""Command-line interface for fleet_timeline.

Run:
    python -m fleet_timeline timeline --date 2025-12-10 --segments segments.csv --jobs jobs.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, replace
from datetime import date

from fleet_timeline.config import DEFAULT_CONFIG, EngineConfig, load_config
from fleet_timeline.csv_io import (
    load_daily_first_segments,
    load_jobs,
    load_punch_events,
    load_segment_records_json,
    load_segments,
    load_technician_config,
)
from fleet_timeline.events import ArrivedCustom, ArrivedJob, ArrivedOffice, LeftCustom, LeftJob, TimelineEvent
from fleet_timeline.home import detect_home_location
from fleet_timeline.models import Job, TechnicianConfig, VehicleSegment
from fleet_timeline.office_visits import sum_office_visits, write_office_visits_csv
from fleet_timeline.timeline import build_day_report
from fleet_timeline.timeutils import format_local, tzinfo_from_name


def _engine_config(args: argparse.Namespace) -> EngineConfig:
    cfg = load_config(args.config) if args.config else DEFAULT_CONFIG
    if args.tz:
        cfg = replace(cfg, office=replace(cfg.office, tz_name=args.tz))
    return cfg


def _load_day_inputs(args: argparse.Namespace) -> tuple[list[VehicleSegment], list[Job], TechnicianConfig]:
    if args.segments_json:
        segments = load_segment_records_json(args.segments_json)
    else:
        segments, _ = load_segments(args.segments)
    jobs: list[Job] = []
    if args.jobs:
        jobs, _ = load_jobs(args.jobs)
    tech = load_technician_config(args.tech) if args.tech else TechnicianConfig()
    return segments, jobs, tech


def _describe(event: TimelineEvent) -> str:
    match event:
        case ArrivedJob():
            text = f"job #{event.job_number} {event.customer_name}".rstrip()
            if event.variance_minutes is not None:
                text += f" ({'late' if event.is_late else 'on time'} {event.variance_minutes:+d} min)"
            if event.is_first_job:
                text += " [first job]"
            if event.transit is not None and event.transit.is_suspicious:
                text += f" [transit +{event.transit.excess_minutes} min, {event.transit.severity}]"
            return text
        case LeftJob():
            return f"job #{event.job_number}"
        case ArrivedCustom() | LeftCustom():
            return f"{event.location_name} ({event.category})"
        case ArrivedOffice():
            return event.address + (" [unnecessary]" if event.is_unnecessary else "")
        case _:
            return event.address


def _cmd_timeline(args: argparse.Namespace) -> int:
    cfg = _engine_config(args)
    segments, jobs, tech = _load_day_inputs(args)
    punches: list[TimelineEvent] = []
    if args.punches:
        punches, _ = load_punch_events(args.punches)

    report = build_day_report(
        date.fromisoformat(args.date),
        args.technician_id,
        args.technician_name,
        segments,
        jobs,
        tech,
        external_events=punches,
        config=cfg,
    )
    tl = report.timeline

    if args.json:
        payload = tl.to_dict() | {"office_visits": [asdict(v) for v in report.office_visits]}
        print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
        return 0

    tz = cfg.office.tz_name
    print(f"### {tl.technician_name or tl.technician_id} - {tl.day_of_week} {tl.day.isoformat()}")
    if not tl.events:
        print("No GPS data for this day.")
        return 0
    for e in tl.events:
        local = e.timestamp.astimezone(tzinfo_from_name(tz)).strftime("%H:%M")
        extra = []
        if getattr(e, "travel_minutes", None):
            extra.append(f"drive {e.travel_minutes} min")
        if getattr(e, "duration_minutes", None) is not None:
            extra.append(f"stayed {e.duration_minutes} min")
        suffix = f"  ({', '.join(extra)})" if extra else ""
        print(f"{local}  {e.kind:<20} {_describe(e)}{suffix}")
    print()

    print("### Summary")
    print(
        f"jobs={tl.total_jobs}, office_visits={tl.total_office_visits}, drive_minutes={tl.total_drive_minutes}, "
        f"first_job_on_time={tl.first_job_on_time}, first_job_variance={tl.first_job_variance}"
    )
    for v in report.office_visits:
        flag = " [unnecessary]" if v.is_unnecessary else ""
        print(
            f"office: {v.visit_type:<18} arrive={format_local(v.arrival_time, tz) or '-'} "
            f"depart={format_local(v.departure_time, tz) or '-'} minutes={v.duration_minutes}{flag}"
        )
    return 0


def _cmd_office_visits(args: argparse.Namespace) -> int:
    cfg = _engine_config(args)
    segments, jobs, tech = _load_day_inputs(args)
    report = build_day_report(date.fromisoformat(args.date), "", "", segments, jobs, tech, config=cfg)
    visits = report.office_visits
    write_office_visits_csv(visits, args.out, cfg.office.tz_name)
    total = sum_office_visits(visits)
    print(
        f"office visits={total.visits} (mid-day={total.mid_day_visits}, unnecessary={total.unnecessary_visits}), "
        f"total={total.total_hhmm}"
    )
    print(f"Exported: {args.out}")
    return 0


def _cmd_detect_home(args: argparse.Namespace) -> int:
    cfg = _engine_config(args)
    days, summary = load_daily_first_segments(args.days)
    suggestion = detect_home_location(days, cfg)
    if suggestion is None:
        print(
            f"Could not detect a consistent home location from {summary.rows_parsed} days. "
            "The truck may park at the office most days."
        )
        return 1
    if args.json:
        print(json.dumps(asdict(suggestion) | {"message": suggestion.message}, ensure_ascii=False, indent=2))
    else:
        print(suggestion.message)
        print(f"lat={suggestion.latitude:.7f}, lon={suggestion.longitude:.7f}, address={suggestion.address!r}")
    return 0


def _cmd_label_location(args: argparse.Namespace) -> int:
    from fleet_timeline.geocode import JsonDiskCache, NominatimConfig, NominatimGeocoder, label_custom_location

    cache = JsonDiskCache(args.geocode_cache)
    geocoder = NominatimGeocoder(
        NominatimConfig(min_interval_seconds=args.geocode_min_interval, user_agent=args.geocode_user_agent),
        cache=cache,
    )
    loc = label_custom_location(geocoder, args.lat, args.lon, args.name, args.category, args.radius_feet)
    cache.flush()
    if not loc.address:
        print("Reverse geocoding failed; location saved without an address.", file=sys.stderr)
    print(json.dumps(asdict(loc), ensure_ascii=False, indent=2))
    return 0


def _min_interval(text: str) -> float:
    # Nominatim usage policy: at most one request per second.
    value = float(text)
    if value < 1.0:
        raise argparse.ArgumentTypeError(f"must be >= 1.0 seconds, got {value}")
    return value


def _add_day_inputs(p: argparse.ArgumentParser) -> None:
    p.add_argument("--date", type=str, required=True, help="Day being reconstructed (YYYY-MM-DD)")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--segments", type=str, help="Segments CSV")
    src.add_argument("--segments-json", type=str, help="Saved telematics API response (JSON)")
    p.add_argument("--jobs", type=str, default=None, help="Jobs CSV")
    p.add_argument("--tech", type=str, default=None, help="Technician config JSON (home, take-home, custom locations)")


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", type=str, default=None, help="Engine config TOML")
    p.add_argument("--tz", type=str, default=None, help="Office time zone (IANA), default America/New_York")


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="fleet_timeline")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_tl = sub.add_parser("timeline", help="Reconstruct one technician-day")
    _add_day_inputs(p_tl)
    _add_common(p_tl)
    p_tl.add_argument("--punches", type=str, default=None, help="Punches CSV to merge into the timeline")
    p_tl.add_argument("--technician-id", type=str, default="", help="Technician identifier")
    p_tl.add_argument("--technician-name", type=str, default="", help="Technician display name")
    p_tl.add_argument("--json", action="store_true", help="Print the timeline as JSON")
    p_tl.set_defaults(func=_cmd_timeline)

    p_ov = sub.add_parser("office-visits", help="Detect office visits and export them to CSV")
    _add_day_inputs(p_ov)
    _add_common(p_ov)
    p_ov.add_argument("--out", type=str, default="office_visits.csv", help="Output CSV path")
    p_ov.set_defaults(func=_cmd_office_visits)

    p_dh = sub.add_parser("detect-home", help="Suggest a home location from daily start points")
    p_dh.add_argument("--days", type=str, required=True, help="CSV with date, latitude, longitude, address")
    _add_common(p_dh)
    p_dh.add_argument("--json", action="store_true", help="Print the suggestion as JSON")
    p_dh.set_defaults(func=_cmd_detect_home)

    p_ll = sub.add_parser("label-location", help="Create a custom location at a GPS stop")
    p_ll.add_argument("--lat", type=float, required=True)
    p_ll.add_argument("--lon", type=float, required=True)
    p_ll.add_argument("--name", type=str, required=True)
    p_ll.add_argument(
        "--category",
        type=str,
        default="other",
        choices=["gas_station", "supply_house", "restaurant", "parts_store", "other"],
    )
    p_ll.add_argument("--radius-feet", type=float, default=300.0)
    p_ll.add_argument("--geocode-cache", type=str, default="geocode_cache.json", help="Reverse geocoding cache file")
    p_ll.add_argument("--geocode-min-interval", type=_min_interval, default=1.0, help="Seconds between requests (>= 1.0)")
    p_ll.add_argument(
        "--geocode-user-agent",
        type=str,
        default="fleet-timeline/0.1.0 (reverse-geocode; set your own UA)",
        help="HTTP User-Agent",
    )
    p_ll.set_defaults(func=_cmd_label_location)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
