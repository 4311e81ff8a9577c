"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
These are ABSTRACT definitions of what the infrastructure must provide.
The domain layer defines the shape; the infrastructure layer implements it.

The application layer (lister, fetcher, pipeline, orchestrator) depends on
these contracts only, so tests can pass an in-memory fake fetcher and a
temp-dir sink without touching the network.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from .entities import Job, OutputRow, TimeWindow, WorkflowRun


class IActionsFetcher(ABC):
    """
    Contract that any Actions API client must fulfil.
    Both methods raise UpstreamError when the call fails.
    """

    @abstractmethod
    async def fetch_runs_page(self, repo: str, window: TimeWindow, status: str, cursor: str | None = None) -> tuple[list[WorkflowRun], str | None]:
        """
        Fetch one page of workflow runs for a repository.

        Returns:
            runs         — WorkflowRun domain objects on this page
            next_cursor  — opaque bookmark for the next page, None when exhausted
        """
        ...

    @abstractmethod
    async def fetch_jobs_page(self, repo: str, run_id: int, cursor: str | None = None) -> tuple[list[Job], str | None]:
        """Fetch one page of jobs for a run. Same return shape as fetch_runs_page."""
        ...


class IJobSink(ABC):
    """
    Contract for the repository-scoped output.
    Each pipeline owns its sink file exclusively.
    """

    @abstractmethod
    def path_for(self, repo: str) -> str:
        """Where the rows for `repo` end up."""
        ...

    @abstractmethod
    def write(self, repo: str, rows: list[OutputRow]) -> str:
        """Persist header + rows durably. Returns the written path."""
        ...
