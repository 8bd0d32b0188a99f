"""Unit tests for job-to-segment matching."""

from fleet_timeline.matching import match_jobs_to_segments
from fleet_timeline.models import Job


class TestMatchJobsToSegments:
    """Tests for proximity matching of segment ends to job sites."""

    def test_first_job_within_radius_wins(self, segment, at, office, site_a):
        """Input order decides, not the closest site."""
        lat, lon = site_a
        near = Job(job_id="near", latitude=lat + 0.0005, longitude=lon)  # ~180 ft away
        exact = Job(job_id="exact", latitude=lat, longitude=lon)
        segs = [segment(at(13), office, at(13, 30), site_a)]

        matches = match_jobs_to_segments(segs, [near, exact])

        assert matches[0].job_id == "near"

    def test_out_of_radius_not_matched(self, segment, at, office, site_a):
        lat, lon = site_a
        far = Job(job_id="far", latitude=lat + 0.002, longitude=lon)  # ~730 ft away
        assert match_jobs_to_segments([segment(at(13), office, at(13, 30), site_a)], [far]) == {}

    def test_jobs_without_site_are_ignored(self, segment, at, office, site_a):
        segs = [segment(at(13), office, at(13, 30), site_a)]
        assert match_jobs_to_segments(segs, [Job(job_id="nosite")]) == {}

    def test_segment_without_end_is_skipped(self, segment, at, office, two_jobs):
        segs = [segment(at(13), office)]
        assert match_jobs_to_segments(segs, two_jobs) == {}

    def test_job_can_match_several_segments(self, segment, at, office, site_a, two_jobs):
        """Return visits to the same site match the same job again."""
        segs = [
            segment(at(13), office, at(13, 30), site_a),
            segment(at(14), site_a, at(14, 20), office),
            segment(at(15), office, at(15, 30), site_a),
        ]
        matches = match_jobs_to_segments(segs, two_jobs)
        assert sorted(matches) == [0, 2]
        assert {j.job_id for j in matches.values()} == {"J1"}
