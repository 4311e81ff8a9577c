from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from gha_cost.domain.entities import FetchResult, PipelineState, TimeWindow
from .orchestrator import FetchOrchestrator

log = logging.getLogger(__name__)


class FetchApplicationService:
    """
    The top-level use case: fetch every repository, then merge.

    Receives all dependencies via constructor injection. `merger` takes the
    repository sink paths (worklist order) and the combined path, and returns
    the number of rows written.
    """

    def __init__(self, orchestrator: FetchOrchestrator, merger: Callable[[list[str], str], int], combined_path: str) -> None:
        self._orchestrator  = orchestrator
        self._merger        = merger
        self._combined_path = combined_path

    async def execute(self, repos: list[str], window: TimeWindow) -> FetchResult:
        started_at = datetime.now(tz=timezone.utc)
        log.info("FetchApplicationService | %d repos | window %s", len(repos), window.label)

        try:
            results = await self._orchestrator.run_all(repos, window)

            # every pipeline has flushed by now
            paths = [r.path for r in results if r.path]
            total = self._merger(paths, self._combined_path)

            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.info("All done. Total: %d jobs → %s | %.0fs", total, self._combined_path, elapsed)
            return FetchResult(
                total_jobs    = total,
                status        = "success",
                elapsed_secs  = elapsed,
                combined_path = self._combined_path,
                repos_written = [r.repo for r in results if r.path],
                repos_skipped = [r.repo for r in results if not r.path and r.state != PipelineState.FAILED],
                repos_failed  = [r.repo for r in results if r.state == PipelineState.FAILED],
            )
        except Exception as exc:
            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.error("Fetch failed: %s", exc, exc_info=True)
            return FetchResult(
                total_jobs    = 0,
                status        = "failed",
                elapsed_secs  = elapsed,
                error_message = str(exc),
            )
