"""
main.py — Dependency Wiring (Composition Root)
------------------------------------------------
This file has ONE job: wire all the pieces together and run the app.

It does NOT contain any business logic. It just:
  1. Reads configuration from environment variables and arguments
  2. Creates concrete implementations of each interface
  3. Injects them into the classes that need them
  4. Calls the top-level use case (FetchApplicationService.execute)
  5. Reports the result and exits

Configuration errors (bad dates, conflicting flags, no repositories, no
token) stop the process here, before any request is made.

Dependency graph (what depends on what):
                         main.py  (wires everything)
                            │
              ┌─────────────┼──────────────┐
              ▼             ▼              ▼
    FetchApplicationService │      merge_csv_files
              │             │
              ▼             ▼
    FetchOrchestrator   GitHubActionsClient ── RateLimitGate
              │             ▲
              ▼             │
         RepoPipeline ──────┤
              │             │
    ┌─────────┼──────────┐  │
    ▼         ▼          ▼  │
RunLister  JobFetcher  CsvJobSink
    └─────────┴─────────────┘
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import argparse
from pathlib import Path

import httpx

# Application layer
from gha_cost.application.fetch_service import FetchApplicationService
from gha_cost.application.job_fetcher import JobFetcher
from gha_cost.application.orchestrator import FetchOrchestrator, MAX_CONCURRENT
from gha_cost.application.repo_pipeline import RepoPipeline
from gha_cost.application.run_lister import RunLister, RUN_STATUSES, validate_status
from gha_cost.application.worklist import build_worklist, resolve_window
from gha_cost.domain.entities import TimeWindow
from gha_cost.domain.errors import ConfigError

# Infrastructure layer
from gha_cost.infrastructure.csv_storage import ALL_JOBS_FILE, CsvJobSink, merge_csv_files
from gha_cost.infrastructure.github_client import GITHUB_API_URL, GitHubActionsClient, RetryPolicy
from gha_cost.infrastructure.rate_limiter import RateLimitGate

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_OUTDIR = "./output"
DEFAULT_STATUS = "completed"


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )


def _read_env() -> tuple[str, str]:
    """
    Read the token and API base URL.
    A missing token is a configuration error: nothing is fetched anonymously.
    """
    token    = os.environ.get("GITHUB_TOKEN")
    base_url = os.environ.get("GITHUB_API_URL", GITHUB_API_URL)

    if not token:
        raise ConfigError("GITHUB_TOKEN environment variable is required")

    return token, base_url


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch GitHub Actions job history for several repositories into CSV"
    )
    parser.add_argument("repos", nargs="*", metavar="owner/repo", help="Repositories to fetch")
    parser.add_argument("--repos-file", help="File with one owner/repo per line (# comments allowed)")
    parser.add_argument("--date", help="Single UTC day, YYYY-MM-DD (default: today)")
    parser.add_argument("--from", dest="date_from", help="Range start, YYYY-MM-DD (with --to)")
    parser.add_argument("--to", dest="date_to", help="Range end, YYYY-MM-DD inclusive (with --from)")
    parser.add_argument(
        "--parallel",
        type    = int,
        default = MAX_CONCURRENT,
        help    = f"Repositories fetched concurrently (default: {MAX_CONCURRENT})",
    )
    parser.add_argument("--outdir", default=DEFAULT_OUTDIR, help=f"Output base directory (default: {DEFAULT_OUTDIR})")
    parser.add_argument(
        "--status",
        default = DEFAULT_STATUS,
        help    = f"Run status filter: {' / '.join(RUN_STATUSES)} (default: {DEFAULT_STATUS})",
    )
    parser.add_argument("--retries", type=int, default=0, help="Retries for transient API failures (default: 0)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def install_stop_handler(loop: asyncio.AbstractEventLoop, orchestrator: FetchOrchestrator) -> None:
    """
    First Ctrl-C asks the orchestrator to wind down; the handler then removes
    itself so a second Ctrl-C raises KeyboardInterrupt as usual.
    """

    def _stop() -> None:
        loop.remove_signal_handler(signal.SIGINT)
        orchestrator.request_stop()

    try:
        loop.add_signal_handler(signal.SIGINT, _stop)
    except (NotImplementedError, RuntimeError):
        log.debug("Signal handlers not supported on this platform")


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

async def build_and_run(
    token: str,
    base_url: str,
    repos: list[str],
    window: TimeWindow,
    outdir: Path,
    parallel: int,
    status: str,
    retries: int,
) -> int:
    """
    Wires all dependencies together and executes the fetch use case.
    Returns the process exit code.
    """
    client = httpx.AsyncClient()

    try:
        # --- Wire the dependency graph bottom-up ---

        # Infrastructure implementations
        github_client = GitHubActionsClient(
            token        = token,
            client       = client,             # injected
            rate_gate    = RateLimitGate(),    # one gate shared by every pipeline
            retry_policy = RetryPolicy(max_retries=retries),
            base_url     = base_url,
        )
        sink = CsvJobSink(outdir)

        # Application services
        pipeline = RepoPipeline(
            lister      = RunLister(github_client),
            job_fetcher = JobFetcher(github_client),
            sink        = sink,
            status      = status,
        )
        orchestrator = FetchOrchestrator(pipeline, max_concurrent=parallel)
        fetch_service = FetchApplicationService(
            orchestrator  = orchestrator,
            merger        = merge_csv_files,
            combined_path = str(outdir / ALL_JOBS_FILE),
        )

        install_stop_handler(asyncio.get_running_loop(), orchestrator)

        # --- Execute ---
        result = await fetch_service.execute(repos, window)

        # --- Report ---
        if result.status == "success":
            log.info(
                "✅ Success | %d jobs | %d written, %d skipped, %d failed | %.0fs",
                result.total_jobs,
                len(result.repos_written),
                len(result.repos_skipped),
                len(result.repos_failed),
                result.elapsed_secs,
            )
            return 0

        log.error("❌ Failed | error: %s", result.error_message)
        return 1

    finally:
        await client.aclose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        repos  = build_worklist(args.repos, args.repos_file)
        window = resolve_window(args.date, args.date_from, args.date_to)
        status = validate_status(args.status)
        if args.parallel < 1:
            raise ConfigError(f"--parallel must be a positive integer, got: {args.parallel}")
        if args.retries < 0:
            raise ConfigError(f"--retries must be zero or more, got: {args.retries}")
        token, base_url = _read_env()
    except ConfigError as exc:
        log.error("%s", exc)
        return 1

    outdir = Path(args.outdir) / window.label
    outdir.mkdir(parents=True, exist_ok=True)

    log.info("Settings:")
    log.info("  Repos:    %s", " ".join(repos))
    log.info("  Period:   %s", window.created_filter())
    log.info("  Parallel: %d", args.parallel)
    log.info("  Status:   %s", status)
    log.info("  Output:   %s", outdir)

    return asyncio.run(build_and_run(token, base_url, repos, window, outdir, args.parallel, status, args.retries))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
