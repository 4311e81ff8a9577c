"""Shared fakes and fixtures for the fetch pipeline tests."""

import asyncio
from datetime import date

import pytest

from gha_cost.domain.entities import Job, OutputRow, TimeWindow, WorkflowRun
from gha_cost.domain.errors import UpstreamError
from gha_cost.domain.interfaces import IActionsFetcher, IJobSink
from gha_cost.domain.rules import derive_runner_os, join_labels


def make_run(run_id, created_at="2025-01-06T10:00:00Z", **overrides):
    fields = dict(
        run_id=run_id,
        run_number=run_id * 10,
        workflow_name="CI",
        workflow_file="ci.yml",
        event="push",
        branch="main",
        run_started_at=created_at,
        created_at=created_at,
    )
    fields.update(overrides)
    return WorkflowRun(**fields)


def make_job(job_id, run_id, labels=("ubuntu-latest",), started="2025-01-06T10:00:00Z",
             completed="2025-01-06T10:01:30Z", **overrides):
    fields = dict(
        job_id=job_id,
        run_id=run_id,
        job_name=f"job-{job_id}",
        runner_label=join_labels(list(labels)),
        runner_os=derive_runner_os(list(labels)),
        runner_group="GitHub Actions",
        status="completed",
        conclusion="success",
        job_started_at=started,
        job_completed_at=completed,
    )
    fields.update(overrides)
    return Job(**fields)


class FakeActionsFetcher(IActionsFetcher):
    """
    In-memory IActionsFetcher. Pages are `page_size` long and the cursor is
    the string offset of the next page.
    """

    def __init__(self, runs=None, jobs=None, page_size=2, failing_repos=(), failing_runs=(),
                 fail_runs_on_page=None, delay=0.0):
        self.runs = runs or {}
        self.jobs = jobs or {}
        self.page_size = page_size
        self.failing_repos = set(failing_repos)
        self.failing_runs = set(failing_runs)
        self.fail_runs_on_page = fail_runs_on_page or {}
        self.delay = delay
        self.calls = []
        self.on_jobs = None

    def _page(self, items, cursor):
        start = int(cursor or 0)
        end = start + self.page_size
        return list(items[start:end]), (str(end) if end < len(items) else None)

    async def fetch_runs_page(self, repo, window, status, cursor=None):
        self.calls.append(("runs", repo, cursor))
        if self.delay:
            await asyncio.sleep(self.delay)
        if repo in self.failing_repos:
            raise UpstreamError(f"listing {repo} failed", status_code=502)
        page_index = int(cursor or 0) // self.page_size
        if self.fail_runs_on_page.get(repo) == page_index:
            raise UpstreamError(f"page {page_index} of {repo} failed", status_code=500)
        return self._page(self.runs.get(repo, []), cursor)

    async def fetch_jobs_page(self, repo, run_id, cursor=None):
        self.calls.append(("jobs", repo, run_id, cursor))
        if self.on_jobs is not None:
            self.on_jobs(repo, run_id)
        if run_id in self.failing_runs:
            raise UpstreamError(f"jobs for run {run_id} failed", status_code=500)
        return self._page(self.jobs.get(run_id, []), cursor)


class MemorySink(IJobSink):
    def __init__(self):
        self.written = {}

    def path_for(self, repo):
        return f"memory://{repo}"

    def write(self, repo, rows: list[OutputRow]):
        self.written[repo] = list(rows)
        return self.path_for(repo)


async def no_sleep(seconds):
    return None


@pytest.fixture
def window():
    return TimeWindow.for_day(date(2025, 1, 6))


@pytest.fixture
def memory_sink():
    return MemorySink()
