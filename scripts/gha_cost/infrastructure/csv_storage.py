from __future__ import annotations

import csv
import logging
import os
from pathlib import Path

from gha_cost.domain.entities import CSV_COLUMNS, OutputRow
from gha_cost.domain.interfaces import IJobSink
from gha_cost.domain.rules import billed_minutes, is_slim, os_category

log = logging.getLogger(__name__)

ALL_JOBS_FILE = "jobs_all.csv"


class CsvJobSink(IJobSink):
    """
    Concrete implementation of IJobSink writing one CSV per repository.

    Rows go to a temp file first, are fsynced, then atomically replace the
    target: a reader never sees a half-written sink.
    """

    def __init__(self, outdir: str | Path) -> None:
        self._outdir = Path(outdir)

    def path_for(self, repo: str) -> str:
        safe_name = repo.replace("/", "_")
        return str(self._outdir / f"jobs_{safe_name}.csv")

    def write(self, repo: str, rows: list[OutputRow]) -> str:
        path = Path(self.path_for(repo))
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")

        try:
            with open(tmp_path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(CSV_COLUMNS)
                writer.writerows(row.as_record() for row in rows)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        log.debug("Wrote %d rows to %s", len(rows), path)
        return str(path)


def merge_csv_files(paths: list[str], out_path: str | Path) -> int:
    """
    Concatenate repository sinks into one combined file.

    One header, then the data rows of every path in the order given.
    Missing paths are skipped. No dedup here: each sink is unique by
    construction. Returns the number of data rows written.
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    total = 0

    with open(out_path, "w", newline="", encoding="utf-8") as out:
        writer = csv.writer(out)
        writer.writerow(CSV_COLUMNS)
        for path in paths:
            if not os.path.isfile(path):
                log.debug("Merge: %s not present, skipping", path)
                continue
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.reader(f)
                next(reader, None)    # header
                for record in reader:
                    writer.writerow(record)
                    total += 1

    log.debug("Merged %d rows from %d files into %s", total, len(paths), out_path)
    return total


def load_deduplicated_rows(outdir: str | Path, pattern: str = "*") -> list[dict]:
    """
    Union every combined file under `outdir/<pattern>/` and drop duplicate jobs.

    Overlapping date ranges put the same job in several directories. job_id
    is the only identity: the first occurrence in sorted path order wins.
    Each kept row gets billed_min, os_category and is_slim for analysis.
    """
    seen: set[int] = set()
    rows: list[dict] = []

    for path in sorted(Path(outdir).glob(f"{pattern}/{ALL_JOBS_FILE}")):
        with open(path, newline="", encoding="utf-8") as f:
            for record in csv.DictReader(f):
                try:
                    job_id = int(record["job_id"])
                    duration = int(record.get("duration_sec") or 0)
                except (KeyError, TypeError, ValueError):
                    log.debug("Skipping unreadable row in %s: %s", path, record)
                    continue
                if job_id in seen:
                    continue
                seen.add(job_id)

                record["job_id"]       = job_id
                record["duration_sec"] = duration
                record["billed_min"]   = billed_minutes(duration)
                record["os_category"]  = os_category(record.get("runner_os"))
                record["is_slim"]      = is_slim(record.get("runner_label"))
                rows.append(record)

    log.info("Loaded %d unique jobs from %s", len(rows), outdir)
    return rows
