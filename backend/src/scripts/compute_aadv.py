#!/usr/bin/env python3
"""
Traffic Counts - AADV Computation Script
Computes Annual Average Daily Volume for one or more count sites.

Usage:
    python -m scripts.compute_aadv --site 165367 [--site 165368] --start 2024-01-01 --end 2024-12-31
    python -m scripts.compute_aadv --all-sites --start 2024-01-01 --end 2024-12-31 --client PennDot

Options:
    --site        Site recordnum (repeatable)
    --all-sites   Compute every site in tc_header
    --start/--end Inclusive window of count days
    --client      Client whose excluded days also apply (default: AADV_DEFAULT_CLIENT)
    --direction   Compute one direction only (default: overall plus each direction)
    --workers     Sites computed at once (default: AADV_MAX_WORKERS)
"""

import sys
import argparse
from pathlib import Path
from datetime import date
from typing import List, Optional

# Add src to path
backend_src = Path(__file__).parent.parent
sys.path.insert(0, str(backend_src.absolute()))

from utils.config import AADV_MAX_WORKERS, AADV_DEFAULT_CLIENT
from utils.logger import logger
from models.base import create_session
from models.orm_site import COUNT_DIRECTIONS
from database.connection import session_scope
from database.repositories.site_repository import SiteRepository
from processor.aadv_aggregator import CountWindow
from processor.batch_runner import BatchRunner, SiteRunResult, build_aadv_jobs


def run_aadv(
    site_ids: Optional[List[int]],
    window: CountWindow,
    client: Optional[str] = None,
    direction: Optional[str] = None,
    workers: int = AADV_MAX_WORKERS,
    session_factory=create_session
) -> List[SiteRunResult]:
    """
    Compute AADV for the given sites (every site when site_ids is None).

    Returns:
        One SiteRunResult per site
    """
    if site_ids is None:
        with session_scope(session_factory) as session:
            site_ids = [header.recordnum for header in SiteRepository(session).list_all()]

    logger.info(f"Computing AADV for {len(site_ids)} site(s) between {window}", extra={
        "event_type": "aadv_run_start",
        "sites": len(site_ids),
        "client": client,
        "direction": direction
    })

    jobs = build_aadv_jobs(
        session_factory,
        site_ids,
        window,
        client_scope=client,
        direction=direction,
        all_directions=direction is None,
    )
    return BatchRunner(session_factory, max_workers=workers).run(jobs)


def _summarize(results: List[SiteRunResult]) -> int:
    """Log one line per site/direction; returns the number of failures."""
    failures = 0
    for result in results:
        if not result.succeeded:
            failures += 1
            logger.error(f"Site {result.site_id}: FAILED ({type(result.error).__name__}: {result.error})")
            continue

        outcomes = result.value if isinstance(result.value, dict) else {None: result.value}
        for direction, outcome in outcomes.items():
            label = direction or 'overall'
            if isinstance(outcome, Exception):
                failures += 1
                logger.warning(f"Site {result.site_id} {label}: {type(outcome).__name__}: {outcome}")
            else:
                logger.info(f"Site {result.site_id} {label}: AADV {outcome.aadv}")
    return failures


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description='Compute AADV for count sites')
    sites = parser.add_mutually_exclusive_group(required=True)
    sites.add_argument('--site', type=int, action='append', help='Site recordnum (repeatable)')
    sites.add_argument('--all-sites', action='store_true', help='Compute every site')
    parser.add_argument('--start', type=date.fromisoformat, required=True, help='First count day (YYYY-MM-DD)')
    parser.add_argument('--end', type=date.fromisoformat, required=True, help='Last count day (YYYY-MM-DD)')
    parser.add_argument('--client', default=AADV_DEFAULT_CLIENT, help='Client scope for excluded days')
    parser.add_argument('--direction', choices=COUNT_DIRECTIONS, help='Single direction to compute')
    parser.add_argument('--workers', type=int, default=AADV_MAX_WORKERS, help='Concurrent sites')

    args = parser.parse_args()

    try:
        window = CountWindow(args.start, args.end)
        results = run_aadv(
            None if args.all_sites else args.site,
            window,
            client=args.client,
            direction=args.direction,
            workers=args.workers,
        )
    except Exception as e:
        logger.error(
            "AADV run failed",
            extra={'error': str(e), 'error_type': type(e).__name__}
        )
        sys.exit(1)

    logger.info("=" * 60)
    failures = _summarize(results)
    logger.info("=" * 60)

    if failures:
        sys.exit(1)


if __name__ == '__main__':
    main()
