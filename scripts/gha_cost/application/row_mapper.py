from __future__ import annotations

from gha_cost.domain.entities import Job, OutputRow, WorkflowRun
from gha_cost.domain.rules import compute_duration


def to_output_row(repo: str, run: WorkflowRun, job: Job) -> OutputRow:
    """One run + one of its jobs → one row. No filtering on status or conclusion."""
    return OutputRow(
        repo             = repo,
        workflow_name    = run.workflow_name,
        workflow_file    = run.workflow_file,
        run_id           = run.run_id,
        run_number       = run.run_number,
        event            = run.event,
        branch           = run.branch,
        run_started_at   = run.run_started_at,
        job_id           = job.job_id,
        job_name         = job.job_name,
        runner_label     = job.runner_label,
        runner_os        = job.runner_os,
        runner_group     = job.runner_group,
        status           = job.status,
        conclusion       = job.conclusion,
        job_started_at   = job.job_started_at,
        job_completed_at = job.job_completed_at,
        duration_sec     = compute_duration(job.job_started_at, job.job_completed_at),
    )
