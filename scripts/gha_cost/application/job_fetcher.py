from __future__ import annotations

import logging
from typing import AsyncIterator

from gha_cost.domain.entities import Job
from gha_cost.domain.errors import UpstreamError
from gha_cost.domain.interfaces import IActionsFetcher

log = logging.getLogger(__name__)


class JobFetcher:
    """Fetches every job of one run, page by page, in API order."""

    def __init__(self, fetcher: IActionsFetcher) -> None:
        self._fetcher = fetcher

    async def iter_jobs(self, repo: str, run_id: int) -> AsyncIterator[Job]:
        cursor = None
        while True:
            jobs, cursor = await self._fetcher.fetch_jobs_page(repo, run_id, cursor)
            for job in jobs:
                yield job
            if cursor is None:
                break

    async def fetch_jobs(self, repo: str, run_id: int) -> list[Job]:
        """A failed fetch counts as zero jobs for the run; earlier pages are discarded too."""
        try:
            return [job async for job in self.iter_jobs(repo, run_id)]
        except UpstreamError as exc:
            log.warning("[%s] Fetching jobs for run %d failed, skipping run: %s", repo, run_id, exc)
            return []
