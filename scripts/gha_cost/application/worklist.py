from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path

from gha_cost.domain.entities import TimeWindow
from gha_cost.domain.errors import ConfigError

log = logging.getLogger(__name__)

REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
DATE_FORMAT  = "%Y-%m-%d"


def load_repos_file(path: str | Path) -> list[str]:
    """
    One owner/repo per line. Anything after '#' is a comment and all
    whitespace is stripped, so blank and comment-only lines drop out.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Repos file not found: {path}")

    repos: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = "".join(line.split("#", 1)[0].split())
        if line:
            repos.append(line)
    return repos


def build_worklist(args_repos: list[str] | None, repos_file: str | Path | None = None) -> list[str]:
    """Argument repos first, then file repos; first occurrence wins."""
    candidates = list(args_repos or [])
    if repos_file:
        candidates.extend(load_repos_file(repos_file))

    worklist: list[str] = []
    for repo in candidates:
        if not REPO_PATTERN.match(repo):
            raise ConfigError(f"Repository must be owner/name, got: {repo}")
        if repo not in worklist:
            worklist.append(repo)

    if not worklist:
        raise ConfigError("No repositories specified.")
    log.debug("Worklist: %d repositories (%d given)", len(worklist), len(candidates))
    return worklist


def _parse_date(value: str, label: str) -> date:
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        raise ConfigError(f"{label} must be YYYY-MM-DD format, got: {value}")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as exc:
        raise ConfigError(f"{label} is not a valid date: {value}") from exc


def resolve_window(
    day: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    today: date | None = None,
) -> TimeWindow:
    """
    --date, or --from/--to together; neither means today (UTC).
    Both ends of a --from/--to range are whole days.
    """
    if day and (date_from or date_to):
        raise ConfigError("--date cannot be used with --from/--to")
    if bool(date_from) != bool(date_to):
        raise ConfigError("--from and --to must be used together")

    if date_from and date_to:
        first = _parse_date(date_from, "--from")
        last  = _parse_date(date_to, "--to")
        if first > last:
            raise ConfigError(f"--from ({date_from}) must be on or before --to ({date_to})")
        return TimeWindow.for_range(first, last)

    if day:
        return TimeWindow.for_day(_parse_date(day, "--date"))

    return TimeWindow.for_day(today or datetime.now(tz=timezone.utc).date())
