from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from gha_cost.domain.entities import OutputRow, PipelineState, RepoResult, TimeWindow
from gha_cost.domain.interfaces import IJobSink
from .job_fetcher import JobFetcher
from .row_mapper import to_output_row
from .run_lister import RunLister

log = logging.getLogger(__name__)

PAUSE_EVERY    = 10
PAUSE_SECS     = 0.5
PROGRESS_EVERY = 50


class RepoPipeline:
    """
    Drives one repository end to end:

        LISTING_RUNS → FETCHING_JOBS (run by run) → FLUSHING → DONE
                     ↘ SKIPPED when no runs or no jobs are found

    Strictly sequential inside a repository; parallelism only exists across
    repositories (see FetchOrchestrator). The fixed pause every `pause_every`
    runs sits on top of the adaptive RateLimitGate inside the client.
    """

    def __init__(
        self,
        lister: RunLister,
        job_fetcher: JobFetcher,
        sink: IJobSink,
        status: str = "completed",
        pause_every: int = PAUSE_EVERY,
        pause_secs: float = PAUSE_SECS,
        progress_every: int = PROGRESS_EVERY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._lister         = lister
        self._jobs           = job_fetcher
        self._sink           = sink
        self._status         = status
        self._pause_every    = pause_every
        self._pause_secs     = pause_secs
        self._progress_every = progress_every
        self._sleep          = sleep

    async def run(self, repo: str, window: TimeWindow, stop_event: asyncio.Event | None = None) -> RepoResult:
        log.info("[%s] Fetching workflow runs (%s) …", repo, window.created_filter())
        runs = await self._lister.list_runs(repo, window, self._status)
        if not runs:
            log.warning("[%s] No workflow runs found.", repo)
            return RepoResult(repo=repo, state=PipelineState.SKIPPED)

        log.info("[%s] Found %d runs. Fetching jobs …", repo, len(runs))
        rows: list[OutputRow] = []
        processed = 0
        cancelled = False

        for run in runs:
            if stop_event is not None and stop_event.is_set():
                log.warning("[%s] Stop requested after %d/%d runs — flushing what was fetched", repo, processed, len(runs))
                cancelled = True
                break

            jobs = await self._jobs.fetch_jobs(repo, run.run_id)
            rows.extend(to_output_row(repo, run, job) for job in jobs)
            processed += 1

            if self._progress_every and processed % self._progress_every == 0:
                log.info("[%s] Processed %d / %d runs …", repo, processed, len(runs))
            if self._pause_every and self._pause_secs > 0 and processed % self._pause_every == 0:
                await self._sleep(self._pause_secs)

        final_state = PipelineState.CANCELLED if cancelled else PipelineState.DONE

        if not rows:
            log.warning("[%s] No jobs found.", repo)
            return RepoResult(
                repo  = repo,
                state = PipelineState.CANCELLED if cancelled else PipelineState.SKIPPED,
                runs  = processed,
            )

        # file I/O off the event loop; the sink is ours alone
        path = await asyncio.to_thread(self._sink.write, repo, rows)
        log.info("[%s] Done. %d jobs → %s", repo, len(rows), path)
        return RepoResult(repo=repo, state=final_state, runs=processed, jobs=len(rows), path=path)
