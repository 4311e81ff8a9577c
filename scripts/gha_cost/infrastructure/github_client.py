from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from gha_cost.domain.entities import Job, TimeWindow, WorkflowRun
from gha_cost.domain.errors import RateLimitError, UpstreamError
from gha_cost.domain.interfaces import IActionsFetcher
from gha_cost.domain.rules import derive_runner_os, join_labels
from gha_cost.infrastructure.rate_limiter import RateLimitGate

log = logging.getLogger(__name__)

GITHUB_API_URL  = "https://api.github.com"
PAGE_SIZE       = 100
REQUEST_TIMEOUT = 30.0
API_VERSION     = "2022-11-28"


@dataclass(frozen=True)
class RetryPolicy:
    """
    What to do when an API call fails.

    max_retries=0 is plain best-effort: the failure is reported once and the
    unit of work is dropped. Above zero, transient failures (network errors,
    5xx, rate-limited) are retried with exponential backoff.
    """
    max_retries: int   = 0
    base_delay:  float = 2.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)


class GitHubActionsClient(IActionsFetcher):
    """
    Concrete implementation of IActionsFetcher for GitHub's REST API.

    The constructor receives an httpx.AsyncClient (injected) rather than
    creating one internally. This lets callers control the client lifecycle
    and makes testing trivial — pass in a client built on httpx.MockTransport.
    """

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient,
        rate_gate: RateLimitGate | None = None,
        retry_policy: RetryPolicy | None = None,
        base_url: str = GITHUB_API_URL,
    ) -> None:
        self._client   = client
        self._gate     = rate_gate or RateLimitGate()
        self._retry    = retry_policy or RetryPolicy()
        self._base_url = base_url.rstrip("/")
        self._headers  = {
            "Authorization":        f"Bearer {token}",
            "Accept":               "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    # Anti-Corruption Layer
    @staticmethod
    def _parse_run(node: dict) -> WorkflowRun | None:
        """
        Translate one element of `workflow_runs` into a WorkflowRun.

        GitHub sends:          We store as:
          "id"              →  run_id
          "name"            →  workflow_name
          "path"            →  workflow_file (last segment only)
          "head_branch"     →  branch
        """
        try:
            return WorkflowRun(
                run_id         = int(node["id"]),
                run_number     = int(node.get("run_number") or 0),
                workflow_name  = node.get("name") or "",
                workflow_file  = (node.get("path") or "").split("/")[-1],
                event          = node.get("event") or "",
                branch         = node.get("head_branch") or "",
                run_started_at = node.get("run_started_at"),
                created_at     = node.get("created_at"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            log.debug("Skipping malformed run node %s: %s", node.get("id"), exc)
            return None

    @staticmethod
    def _parse_job(node: dict, run_id: int) -> Job | None:
        """runner_os is derived from the labels, never read from the payload."""
        try:
            labels = node.get("labels") or []
            return Job(
                job_id           = int(node["id"]),
                run_id           = int(node.get("run_id") or run_id),
                job_name         = node.get("name") or "",
                runner_label     = join_labels(labels),
                runner_os        = derive_runner_os(labels),
                runner_group     = node.get("runner_group_name") or "",
                status           = node.get("status") or "",
                conclusion       = node.get("conclusion"),
                job_started_at   = node.get("started_at"),
                job_completed_at = node.get("completed_at"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            log.debug("Skipping malformed job node %s: %s", node.get("id"), exc)
            return None

    # IActionsFetcher implementation
    async def fetch_runs_page(self, repo: str, window: TimeWindow, status: str, cursor: str | None = None) -> tuple[list[WorkflowRun], str | None]:
        params = {
            "status":   status,
            "created":  window.created_filter(),
            "per_page": PAGE_SIZE,
        }
        payload, next_cursor = await self._get_page(f"{self._base_url}/repos/{repo}/actions/runs", params, cursor)
        nodes = payload.get("workflow_runs") or []
        runs  = [parsed for node in nodes if (parsed := self._parse_run(node)) is not None]
        return runs, next_cursor

    async def fetch_jobs_page(self, repo: str, run_id: int, cursor: str | None = None) -> tuple[list[Job], str | None]:
        params = {"per_page": PAGE_SIZE}
        payload, next_cursor = await self._get_page(f"{self._base_url}/repos/{repo}/actions/runs/{run_id}/jobs", params, cursor)
        nodes = payload.get("jobs") or []
        jobs  = [parsed for node in nodes if (parsed := self._parse_job(node, run_id)) is not None]
        return jobs, next_cursor

    async def _get_page(self, url: str, params: dict, cursor: str | None) -> tuple[dict, str | None]:
        """
        GET one page, honouring the shared rate gate and the retry policy.

        The cursor is the absolute `next` URL from the previous page's Link
        header; it already carries the query string.
        """
        if cursor is not None:
            url, params = cursor, None

        attempts = self._retry.max_retries + 1
        for attempt in range(self._retry.max_retries):
            await self._gate.wait()
            try:
                return await self._request(url, params)
            except UpstreamError as exc:
                if not exc.transient:
                    raise
                if isinstance(exc, RateLimitError) and self._gate.delay() > 0:
                    # the gate knows the reset time; it sleeps at the top of the loop
                    log.warning("Rate limited attempt %d/%d: %s — waiting for reset", attempt + 1, attempts, exc)
                    continue
                wait = self._retry.delay_for(attempt)
                log.warning("HTTP error attempt %d/%d: %s — retrying in %.0fs", attempt + 1, attempts, exc, wait)
                await asyncio.sleep(wait)

        # last (or only) attempt: failures propagate to the caller
        await self._gate.wait()
        return await self._request(url, params)

    async def _request(self, url: str, params: dict | None) -> tuple[dict, str | None]:
        try:
            response = await self._client.get(url, params=params, headers=self._headers, timeout=REQUEST_TIMEOUT)
        except httpx.RequestError as exc:
            raise UpstreamError(f"GET {url} failed: {exc}") from exc

        self._gate.observe(response.headers)

        if self._is_rate_limited(response):
            retry_after = self._retry_after(response)
            if retry_after is not None:
                self._gate.block_for(retry_after)
            raise RateLimitError(
                f"GET {url} rate limited ({response.status_code})",
                status_code=response.status_code,
                retry_after=retry_after,
            )

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(f"GET {url} returned {response.status_code}", status_code=response.status_code) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"GET {url} returned a non-JSON body", status_code=response.status_code) from exc

        next_cursor = response.links.get("next", {}).get("url")
        return payload, next_cursor

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code == 403:
            return (
                response.headers.get("x-ratelimit-remaining") == "0"
                or "retry-after" in response.headers
            )
        return False

    @staticmethod
    def _retry_after(response: httpx.Response) -> float | None:
        value = response.headers.get("retry-after")
        if value is None:
            # primary limit: the gate already knows the reset time from observe()
            return None
        try:
            return float(value)
        except ValueError:
            return None
