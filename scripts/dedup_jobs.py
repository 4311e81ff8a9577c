import csv
import sys
import logging
import argparse

from gha_cost.domain.entities import CSV_COLUMNS
from gha_cost.infrastructure.csv_storage import load_deduplicated_rows

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
log = logging.getLogger(__name__)

OUTPUT_FILE = "jobs_dedup.csv"
EXTRA_COLUMNS = ("billed_min", "os_category", "is_slim")


def dump(outdir: str, pattern: str, output_file: str) -> int:
    log.info("Reading %s/%s/jobs_all.csv …", outdir, pattern)
    rows = load_deduplicated_rows(outdir, pattern)

    log.info("Writing %d rows to %s …", len(rows), output_file)
    with open(output_file, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(CSV_COLUMNS) + list(EXTRA_COLUMNS), extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)

    log.info("Dump complete: %s (%d rows)", output_file, len(rows))
    return len(rows)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Union per-invocation job CSVs, one row per job_id")
    parser.add_argument("--outdir", default="./output")
    parser.add_argument("--glob", default="*", help="Invocation directories to include (default: all)")
    parser.add_argument("--output", default=OUTPUT_FILE)
    args = parser.parse_args()

    dump(args.outdir, args.glob, args.output)
    sys.exit(0)
