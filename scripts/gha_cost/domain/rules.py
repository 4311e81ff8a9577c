"""
Domain rules shared by the fetch pipeline and the downstream analysis.

The OS buckets must agree between derive_runner_os (fetch side) and
os_category (analysis side): cost attribution keys on the latter.
"""

from __future__ import annotations

import math
from datetime import datetime

RUNNER_OS_KEYWORDS = ("ubuntu", "linux", "windows", "macos")
UNKNOWN_OS = "unknown"
LABEL_SEPARATOR = ";"


def derive_runner_os(labels: list[str] | None) -> str:
    """First label containing a known OS keyword (case-insensitive), else "unknown"."""
    for label in labels or []:
        lowered = label.lower()
        if any(keyword in lowered for keyword in RUNNER_OS_KEYWORDS):
            return label
    return UNKNOWN_OS


def join_labels(labels: list[str] | None) -> str:
    return LABEL_SEPARATOR.join(labels or [])


def os_category(runner_os: str | None) -> str:
    lowered = (runner_os or "").lower()
    if "ubuntu" in lowered or "linux" in lowered:
        return "Linux"
    if "windows" in lowered:
        return "Windows"
    if "macos" in lowered:
        return "macOS"
    return "Other"


def is_slim(runner_label: str | None) -> bool:
    return "slim" in (runner_label or "")


def billed_minutes(duration_sec: int) -> int:
    """GitHub bills per started minute, with a one-minute floor."""
    return max(math.ceil(duration_sec / 60), 1)


def parse_timestamp(value: str | None) -> datetime | None:
    """Convert GitHub's ISO datetime string to Python datetime; None if unusable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def compute_duration(started_at: str | None, completed_at: str | None) -> int:
    """Whole seconds between two timestamps; 0 when either is missing or unparsable."""
    started   = parse_timestamp(started_at)
    completed = parse_timestamp(completed_at)
    if started is None or completed is None:
        return 0
    try:
        seconds = int((completed - started).total_seconds())
    except TypeError:
        # naive vs aware
        return 0
    return max(seconds, 0)
