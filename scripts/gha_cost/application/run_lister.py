from __future__ import annotations

import logging
from typing import AsyncIterator

from gha_cost.domain.entities import TimeWindow, WorkflowRun
from gha_cost.domain.errors import ConfigError, UpstreamError
from gha_cost.domain.interfaces import IActionsFetcher
from gha_cost.domain.rules import parse_timestamp

log = logging.getLogger(__name__)

RUN_STATUSES = ("completed", "success", "failure")


def validate_status(status: str) -> str:
    if status not in RUN_STATUSES:
        raise ConfigError(f"--status must be one of {', '.join(RUN_STATUSES)}, got: {status}")
    return status


class RunLister:
    """
    Lists every workflow run of one repository inside a time window.

    The API's `created=a..b` range is inclusive at both ends, so runs created
    exactly at `until` are dropped here to keep the window half-open.
    """

    def __init__(self, fetcher: IActionsFetcher) -> None:
        self._fetcher = fetcher

    async def iter_runs(self, repo: str, window: TimeWindow, status: str) -> AsyncIterator[WorkflowRun]:
        """Follow pagination cursors until a page reports no continuation. Raises UpstreamError."""
        cursor = None
        while True:
            runs, cursor = await self._fetcher.fetch_runs_page(repo, window, status, cursor)
            for run in runs:
                created = parse_timestamp(run.created_at)
                if created is not None and not window.contains(created):
                    continue
                yield run
            if cursor is None:
                break

    async def list_runs(self, repo: str, window: TimeWindow, status: str) -> list[WorkflowRun]:
        """
        All runs for `repo`, unique by run_id, in ascending run_id order.
        A failed listing yields [] for the whole repository, never a partial list.
        """
        validate_status(status)
        runs: dict[int, WorkflowRun] = {}
        try:
            async for run in self.iter_runs(repo, window, status):
                runs.setdefault(run.run_id, run)
        except UpstreamError as exc:
            log.warning("[%s] Listing workflow runs failed, skipping repository: %s", repo, exc)
            return []
        return [runs[run_id] for run_id in sorted(runs)]
