"""Tests for runner OS derivation, duration and billing rules."""

import pytest

from gha_cost.domain.rules import (
    billed_minutes,
    compute_duration,
    derive_runner_os,
    is_slim,
    join_labels,
    os_category,
    parse_timestamp,
)


class TestRunnerOs:
    def test_case_insensitive_match_keeps_label(self):
        assert derive_runner_os(["Ubuntu-24.04", "self-hosted"]) == "Ubuntu-24.04"
        assert os_category(derive_runner_os(["Ubuntu-24.04", "self-hosted"])) == "Linux"

    def test_first_match_wins(self):
        assert derive_runner_os(["self-hosted", "Linux", "windows-2022"]) == "Linux"

    def test_windows(self):
        assert os_category(derive_runner_os(["windows-2022"])) == "Windows"

    def test_macos(self):
        assert os_category(derive_runner_os(["macos-14", "arm64"])) == "macOS"

    def test_no_recognised_label(self):
        assert derive_runner_os(["self-hosted", "gpu"]) == "unknown"
        assert os_category("unknown") == "Other"

    def test_empty_labels(self):
        assert derive_runner_os([]) == "unknown"
        assert derive_runner_os(None) == "unknown"

    def test_substring_match(self):
        assert derive_runner_os(["my-LINUX-box"]) == "my-LINUX-box"

    def test_join_labels(self):
        assert join_labels(["ubuntu-latest", "x64"]) == "ubuntu-latest;x64"
        assert join_labels(None) == ""

    def test_is_slim(self):
        assert is_slim("ubuntu-slim")
        assert not is_slim("ubuntu-latest")


class TestDuration:
    def test_ninety_seconds(self):
        assert compute_duration("2025-01-06T10:00:00Z", "2025-01-06T10:01:30Z") == 90

    def test_missing_end(self):
        assert compute_duration("2025-01-06T10:00:00Z", None) == 0

    def test_missing_start(self):
        assert compute_duration(None, "2025-01-06T10:01:30Z") == 0

    def test_unparsable(self):
        assert compute_duration("yesterday", "2025-01-06T10:01:30Z") == 0

    def test_negative_interval_is_zero(self):
        assert compute_duration("2025-01-06T10:01:30Z", "2025-01-06T10:00:00Z") == 0

    def test_parse_timestamp_is_utc(self):
        ts = parse_timestamp("2025-01-06T10:00:00Z")
        assert ts.utcoffset().total_seconds() == 0


class TestBilledMinutes:
    @pytest.mark.parametrize("duration, expected", [(0, 1), (10, 1), (60, 1), (61, 2), (125, 3)])
    def test_ceiling_with_floor_of_one(self, duration, expected):
        assert billed_minutes(duration) == expected
