from __future__ import annotations
import asyncio
import logging
from gha_cost.domain.entities import PipelineState, RepoResult, TimeWindow
from gha_cost.domain.errors import ConfigError
from .repo_pipeline import RepoPipeline

log = logging.getLogger(__name__)

MAX_CONCURRENT = 4


class FetchOrchestrator:
    """
    Runs one RepoPipeline per repository, at most `max_concurrent` at a time.

    All repositories are submitted up front in worklist order; the semaphore
    admits them in that order as slots free up. A pipeline that fails still
    releases its slot. run_all() only returns once every pipeline has drained,
    which is the barrier the merge step waits on.

    request_stop() stops queued repositories from starting; in-flight ones
    see the same event between runs, flush what they have and finish.
    """

    def __init__(self, pipeline: RepoPipeline, max_concurrent: int = MAX_CONCURRENT) -> None:
        if max_concurrent < 1:
            raise ConfigError(f"--parallel must be a positive integer, got: {max_concurrent}")
        self._pipeline       = pipeline
        self._max_concurrent = max_concurrent
        self._semaphore      = asyncio.Semaphore(max_concurrent)
        self._stop_event     = asyncio.Event()
        self._active         = 0
        self.peak_active     = 0

    def request_stop(self) -> None:
        if not self._stop_event.is_set():
            log.warning("Stop requested — no new repositories will be started")
        self._stop_event.set()

    async def _run_single_repo(self, repo: str, window: TimeWindow) -> RepoResult:
        async with self._semaphore:
            if self._stop_event.is_set():
                log.info("[%s] Not started (stop requested)", repo)
                return RepoResult(repo=repo, state=PipelineState.CANCELLED)

            self._active += 1
            self.peak_active = max(self.peak_active, self._active)
            try:
                return await self._pipeline.run(repo, window, self._stop_event)
            except Exception as exc:
                log.error("[%s] Pipeline failed: %s", repo, exc, exc_info=True)
                return RepoResult(repo=repo, state=PipelineState.FAILED, error=str(exc))
            finally:
                self._active -= 1

    async def run_all(self, repos: list[str], window: TimeWindow) -> list[RepoResult]:
        """One RepoResult per repository, in worklist order."""
        log.info("Starting parallel fetch | repos=%d | max parallel=%d", len(repos), self._max_concurrent)
        results = await asyncio.gather(*[self._run_single_repo(repo, window) for repo in repos])
        log.info("All pipelines drained | peak parallel=%d", self.peak_active)
        return list(results)
