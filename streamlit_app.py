from __future__ import annotations

from datetime import date
from pathlib import Path

import streamlit as st

from fleet_timeline.config import DEFAULT_OFFICE_TZ
from fleet_timeline.csv_io import load_jobs, load_punch_events, load_segments, load_technician_config
from fleet_timeline.events import ArrivedJob, TimelineEvent, event_to_dict
from fleet_timeline.models import TechnicianConfig
from fleet_timeline.office_visits import sum_office_visits
from fleet_timeline.timeline import DayReport, build_day_report
from fleet_timeline.timeutils import format_local


def _event_row(e: TimelineEvent, tz_name: str) -> dict[str, object]:
    d = event_to_dict(e)
    row: dict[str, object] = {
        "time": format_local(e.timestamp, tz_name),
        "type": d.pop("type"),
        "address": d.pop("address", ""),
        "travel_min": d.pop("travel_minutes", None),
        "stay_min": d.pop("duration_minutes", None),
    }
    if isinstance(e, ArrivedJob):
        row["job"] = e.job_number
        row["variance_min"] = e.variance_minutes
        if e.transit is not None and e.transit.is_suspicious:
            row["transit_excess_min"] = e.transit.excess_minutes
            row["transit_severity"] = e.transit.severity
    return row


@st.cache_data(show_spinner=False)
def _build(
    day: date,
    segments_csv: str,
    jobs_csv: str,
    tech_json: str,
    punches_csv: str,
    mtimes: tuple[float, ...],
) -> DayReport:
    _ = mtimes  # part of cache key so updated files reload automatically
    segments, _ = load_segments(segments_csv)
    jobs = load_jobs(jobs_csv)[0] if jobs_csv else []
    tech = load_technician_config(tech_json) if tech_json else TechnicianConfig()
    punches = load_punch_events(punches_csv)[0] if punches_csv else []
    return build_day_report(day, "", "", segments, jobs, tech, external_events=punches)


def main() -> None:
    st.set_page_config(page_title="Technician day timeline", layout="wide")
    st.title("Technician day timeline")

    with st.sidebar:
        st.subheader("Inputs")
        tz_name = st.text_input("Office time zone (IANA)", value=DEFAULT_OFFICE_TZ)
        day = st.date_input("Day", value=date.today())
        segments_csv = st.text_input("segments.csv", value="sample_data/segments.csv")
        jobs_csv = st.text_input("jobs.csv (optional)", value="sample_data/jobs.csv")
        tech_json = st.text_input("technician config JSON (optional)", value="")
        punches_csv = st.text_input("punches.csv (optional)", value="")

    paths = [p for p in (segments_csv, jobs_csv, tech_json, punches_csv) if p]
    missing = [p for p in paths if not Path(p).exists()]
    if missing:
        st.error(f"File not found: {', '.join(repr(p) for p in missing)}")
        return

    try:
        report = _build(
            day,
            segments_csv,
            jobs_csv,
            tech_json,
            punches_csv,
            tuple(Path(p).stat().st_mtime for p in paths),
        )
    except (KeyError, ValueError) as exc:
        st.exception(exc)
        return

    tl = report.timeline
    st.subheader(f"{tl.day_of_week} {tl.day.isoformat()}")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Jobs", str(tl.total_jobs))
    c2.metric("Office visits", str(tl.total_office_visits))
    c3.metric("Drive minutes", str(tl.total_drive_minutes))
    if tl.first_job_variance is None:
        c4.metric("First job", "n/a")
    else:
        c4.metric("First job", "on time" if tl.first_job_on_time else "late", f"{tl.first_job_variance:+d} min")

    if not tl.events:
        st.info("No GPS data for this day.")
        return

    for e in tl.events:
        if isinstance(e, ArrivedJob) and e.transit is not None and e.transit.is_suspicious:
            msg = (
                f"Transit to job #{e.transit.to_job_number}: {e.transit.on_clock_transit_minutes} min on the clock, "
                f"{e.transit.expected_drive_minutes} min expected (+{e.transit.excess_minutes})"
            )
            if e.transit.severity == "high":
                st.error(msg)
            else:
                st.warning(msg)

    st.subheader("Events")
    st.dataframe([_event_row(e, tz_name) for e in tl.events], use_container_width=True, height=520)

    st.subheader("Office visits")
    total = sum_office_visits(report.office_visits)
    st.caption(f"{total.visits} visits, {total.unnecessary_visits} unnecessary, {total.total_hhmm} at the office")
    st.dataframe(
        [
            {
                "type": v.visit_type,
                "arrival": format_local(v.arrival_time, tz_name),
                "departure": format_local(v.departure_time, tz_name),
                "minutes": v.duration_minutes,
                "unnecessary": v.is_unnecessary,
            }
            for v in report.office_visits
        ],
        use_container_width=True,
    )


if __name__ == "__main__":
    main()
