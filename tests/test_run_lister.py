"""Tests for the run lister, job fetcher and row mapper."""

import pytest

from conftest import FakeActionsFetcher, make_job, make_run
from gha_cost.application.job_fetcher import JobFetcher
from gha_cost.application.row_mapper import to_output_row
from gha_cost.application.run_lister import RunLister
from gha_cost.domain.entities import CSV_COLUMNS
from gha_cost.domain.errors import ConfigError


class TestRunLister:
    @pytest.mark.asyncio
    async def test_paginates_until_exhausted(self, window):
        fetcher = FakeActionsFetcher(runs={"o/a": [make_run(i) for i in range(1, 6)]}, page_size=2)
        runs = await RunLister(fetcher).list_runs("o/a", window, "completed")
        assert [r.run_id for r in runs] == [1, 2, 3, 4, 5]
        assert len([c for c in fetcher.calls if c[0] == "runs"]) == 3

    @pytest.mark.asyncio
    async def test_sorted_and_unique_by_run_id(self, window):
        fetcher = FakeActionsFetcher(runs={"o/a": [make_run(9), make_run(3), make_run(9), make_run(5)]})
        runs = await RunLister(fetcher).list_runs("o/a", window, "completed")
        assert [r.run_id for r in runs] == [3, 5, 9]

    @pytest.mark.asyncio
    async def test_window_is_half_open(self, window):
        fetcher = FakeActionsFetcher(runs={"o/a": [
            make_run(1, created_at="2025-01-06T00:00:00Z"),
            make_run(2, created_at="2025-01-07T00:00:00Z"),
            make_run(3, created_at=None),
        ]})
        runs = await RunLister(fetcher).list_runs("o/a", window, "completed")
        assert [r.run_id for r in runs] == [1, 3]

    @pytest.mark.asyncio
    async def test_failure_yields_nothing(self, window):
        fetcher = FakeActionsFetcher(failing_repos={"o/a"})
        assert await RunLister(fetcher).list_runs("o/a", window, "completed") == []

    @pytest.mark.asyncio
    async def test_failure_on_later_page_drops_partial_result(self, window):
        fetcher = FakeActionsFetcher(
            runs={"o/a": [make_run(i) for i in range(1, 6)]},
            fail_runs_on_page={"o/a": 1},
        )
        assert await RunLister(fetcher).list_runs("o/a", window, "completed") == []

    @pytest.mark.asyncio
    async def test_invalid_status(self, window):
        with pytest.raises(ConfigError):
            await RunLister(FakeActionsFetcher()).list_runs("o/a", window, "queued")


class TestJobFetcher:
    @pytest.mark.asyncio
    async def test_all_pages_in_api_order(self):
        fetcher = FakeActionsFetcher(jobs={7: [make_job(j, 7) for j in (30, 10, 20)]}, page_size=2)
        jobs = await JobFetcher(fetcher).fetch_jobs("o/a", 7)
        assert [j.job_id for j in jobs] == [30, 10, 20]

    @pytest.mark.asyncio
    async def test_failure_is_zero_jobs(self):
        fetcher = FakeActionsFetcher(jobs={7: [make_job(1, 7)]}, failing_runs={7})
        assert await JobFetcher(fetcher).fetch_jobs("o/a", 7) == []


class TestRowMapper:
    def test_joins_run_and_job(self):
        row = to_output_row("o/a", make_run(7), make_job(70, 7, labels=["windows-2022"]))
        assert row.repo == "o/a"
        assert row.run_id == 7
        assert row.job_id == 70
        assert row.runner_os == "windows-2022"
        assert row.duration_sec == 90
        assert len(row.as_record()) == len(CSV_COLUMNS)

    def test_missing_completion_gives_zero(self):
        row = to_output_row("o/a", make_run(7), make_job(70, 7, completed=None, status="in_progress", conclusion=None))
        assert row.duration_sec == 0
        assert row.as_record()[CSV_COLUMNS.index("conclusion")] == ""
        assert row.as_record()[CSV_COLUMNS.index("job_completed_at")] == ""

    def test_no_filtering_on_conclusion(self):
        row = to_output_row("o/a", make_run(7), make_job(70, 7, conclusion="failure"))
        assert row.conclusion == "failure"
