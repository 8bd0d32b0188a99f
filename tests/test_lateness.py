"""Unit tests for arrival lateness and first-job selection."""

from fleet_timeline.lateness import evaluate_arrival, find_first_job
from fleet_timeline.models import Job


class TestEvaluateArrival:
    """Tests for arrival vs. schedule comparison."""

    def test_on_the_minute_is_on_time(self, at):
        result = evaluate_arrival(at(14), at(14))
        assert result.variance_minutes == 0
        assert not result.is_late

    def test_one_minute_after_is_late(self, at):
        result = evaluate_arrival(at(14, 1), at(14))
        assert result.variance_minutes == 1
        assert result.is_late

    def test_early_is_negative(self, at):
        result = evaluate_arrival(at(13, 50), at(14))
        assert result.variance_minutes == -10
        assert not result.is_late


class TestFindFirstJob:
    """Tests for first-job selection."""

    def test_flag_wins(self, at):
        jobs = [Job("a", scheduled_start=at(13)), Job("b", scheduled_start=at(15), is_first_job=True)]
        assert find_first_job(jobs).job_id == "b"

    def test_earliest_scheduled(self, at):
        jobs = [Job("a", scheduled_start=at(15)), Job("b"), Job("c", scheduled_start=at(13))]
        assert find_first_job(jobs).job_id == "c"

    def test_tie_keeps_input_order(self, at):
        jobs = [Job("a", scheduled_start=at(13)), Job("b", scheduled_start=at(13))]
        assert find_first_job(jobs).job_id == "a"

    def test_unscheduled_falls_back_to_first(self):
        assert find_first_job([Job("x"), Job("y")]).job_id == "x"

    def test_no_jobs(self):
        assert find_first_job([]) is None
