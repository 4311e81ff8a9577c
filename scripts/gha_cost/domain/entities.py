from __future__ import annotations
from dataclasses import dataclass, astuple, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum

CSV_COLUMNS = (
    "repo",
    "workflow_name",
    "workflow_file",
    "run_id",
    "run_number",
    "event",
    "branch",
    "run_started_at",
    "job_id",
    "job_name",
    "runner_label",
    "runner_os",
    "runner_group",
    "status",
    "conclusion",
    "job_started_at",
    "job_completed_at",
    "duration_sec",
)


@dataclass(frozen=True)
class TimeWindow:
    """
    Half-open UTC interval [since, until).

    Built once from the resolved --date / --from/--to input and read-only
    for the rest of the invocation.
    """
    since: datetime
    until: datetime

    @classmethod
    def for_day(cls, day: date) -> TimeWindow:
        return cls.for_range(day, day)

    @classmethod
    def for_range(cls, first: date, last: date) -> TimeWindow:
        since = datetime.combine(first, time.min, tzinfo=timezone.utc)
        until = datetime.combine(last + timedelta(days=1), time.min, tzinfo=timezone.utc)
        return cls(since=since, until=until)

    @property
    def label(self) -> str:
        """Output subdirectory name: YYYY-MM-DD or FROM_TO."""
        first = self.since.date()
        last  = (self.until - timedelta(days=1)).date()
        if first == last:
            return first.isoformat()
        return f"{first.isoformat()}_{last.isoformat()}"

    def created_filter(self) -> str:
        return f"{_iso(self.since)}..{_iso(self.until)}"

    def contains(self, ts: datetime) -> bool:
        return self.since <= ts < self.until


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class WorkflowRun:
    """
    One execution of a workflow. Field names are OURS; the translation from
    the API payload happens in the client's anti-corruption layer.
    """
    run_id:         int
    run_number:     int
    workflow_name:  str
    workflow_file:  str
    event:          str
    branch:         str
    run_started_at: str | None
    created_at:     str | None = None


@dataclass(frozen=True)
class Job:
    """One job of a run. job_id is the global identity key."""
    job_id:           int
    run_id:           int
    job_name:         str
    runner_label:     str
    runner_os:        str
    runner_group:     str
    status:           str
    conclusion:       str | None
    job_started_at:   str | None
    job_completed_at: str | None


@dataclass(frozen=True)
class OutputRow:
    """
    Flat projection of one run joined with one of its jobs.
    Field order is the CSV column order.
    """
    repo:             str
    workflow_name:    str
    workflow_file:    str
    run_id:           int
    run_number:       int
    event:            str
    branch:           str
    run_started_at:   str | None
    job_id:           int
    job_name:         str
    runner_label:     str
    runner_os:        str
    runner_group:     str
    status:           str
    conclusion:       str | None
    job_started_at:   str | None
    job_completed_at: str | None
    duration_sec:     int

    def as_record(self) -> list[str]:
        return ["" if value is None else str(value) for value in astuple(self)]


class PipelineState(str, Enum):
    IDLE          = "idle"
    LISTING_RUNS  = "listing_runs"
    FETCHING_JOBS = "fetching_jobs"
    FLUSHING      = "flushing"
    DONE          = "done"
    SKIPPED       = "skipped"
    FAILED        = "failed"
    CANCELLED     = "cancelled"


@dataclass(frozen=True)
class RepoResult:
    """Outcome of one per-repository pipeline."""
    repo:  str
    state: PipelineState
    runs:  int = 0
    jobs:  int = 0
    path:  str | None = None
    error: str | None = None


@dataclass(frozen=True)
class FetchResult:
    """
    Immutable value object summarising one invocation.
    Returned by the application service when all pipelines have drained.
    """
    total_jobs:     int
    status:         str
    elapsed_secs:   float
    combined_path:  str | None = None
    repos_written:  list[str] = field(default_factory=list)
    repos_skipped:  list[str] = field(default_factory=list)
    repos_failed:   list[str] = field(default_factory=list)
    error_message:  str | None = None
