#!/usr/bin/env python3
"""
Traffic Counts - Count Import Script
Imports parsed count rows from a CSV file, one batch per site, then runs
the data validity checks on each imported site.

The CSV header uses the model attribute names (recordnum, count_date,
count_time, direction, lane, then the table's payload columns such as
volume, total or s1..s14). Bicycle and pedestrian rows carry no direction
or lane; their payload is incount, outcount and total.

Usage:
    python -m scripts.import_counts --kind 15min --csv rows.csv [--policy ignore] [--workers 4] [--skip-checks]
"""

import csv
import sys
import argparse
from pathlib import Path
from typing import Dict, List, Any

# Add src to path
backend_src = Path(__file__).parent.parent
sys.path.insert(0, str(backend_src.absolute()))

from utils.config import AADV_MAX_WORKERS
from utils.logger import logger
from models.base import create_session
from models.orm_counts import COUNT_MODELS
from importer.count_importer import CountImporter
from importer.identity_resolver import ReimportPolicy
from processor.data_checker import DataChecker
from processor.batch_runner import BatchRunner, SiteRunResult


def group_by_site(rows: List[Dict[str, Any]]) -> Dict[int, List[Dict[str, Any]]]:
    """Split rows into per-site batches; rows without a usable recordnum are skipped."""
    batches: Dict[int, List[Dict[str, Any]]] = {}
    for line, row in enumerate(rows, start=2):
        try:
            recordnum = int(row.get('recordnum'))
        except (TypeError, ValueError):
            logger.error(f"Line {line}: missing or invalid recordnum {row.get('recordnum')!r}, row skipped")
            continue
        batches.setdefault(recordnum, []).append(row)
    return batches


def import_counts(
    kind: str,
    rows: List[Dict[str, Any]],
    policy: ReimportPolicy = ReimportPolicy.UPDATE,
    workers: int = AADV_MAX_WORKERS,
    session_factory=create_session,
    run_checks: bool = True
) -> List[SiteRunResult]:
    """Import rows into the count table for `kind`, one concurrent job per site."""
    model = COUNT_MODELS[kind]

    def job_for(batch):
        def job(session, reporter):
            result = CountImporter(session, reporter, policy=policy).import_rows(model, batch)
            if run_checks:
                DataChecker(session, reporter).check(model)
            return result
        return job

    jobs = {recordnum: job_for(batch) for recordnum, batch in group_by_site(rows).items()}
    return BatchRunner(session_factory, max_workers=workers).run(jobs)


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description='Import parsed count rows from CSV')
    parser.add_argument('--kind', choices=sorted(COUNT_MODELS), required=True, help='Count table')
    parser.add_argument('--csv', type=Path, required=True, help='CSV file of count rows')
    parser.add_argument(
        '--policy',
        choices=[p.value for p in ReimportPolicy],
        default=ReimportPolicy.UPDATE.value,
        help='What to do with rows already stored'
    )
    parser.add_argument('--workers', type=int, default=AADV_MAX_WORKERS, help='Concurrent sites')
    parser.add_argument('--skip-checks', action='store_true', help='Do not run the data validity checks')

    args = parser.parse_args()

    try:
        with args.csv.open(newline='') as f:
            rows = list(csv.DictReader(f))
        results = import_counts(
            args.kind, rows, ReimportPolicy(args.policy), args.workers,
            run_checks=not args.skip_checks
        )
    except Exception as e:
        logger.error(
            "Count import failed",
            extra={'error': str(e), 'error_type': type(e).__name__}
        )
        sys.exit(1)

    failed = [r for r in results if not r.succeeded]
    for result in results:
        if result.succeeded:
            value = result.value
            logger.info(
                f"Site {result.site_id}: {value.created} created, {value.updated} updated, "
                f"{value.rejected} rejected"
            )
        else:
            logger.error(f"Site {result.site_id}: FAILED ({type(result.error).__name__}: {result.error})")

    if failed:
        sys.exit(1)


if __name__ == '__main__':
    main()
