#!/usr/bin/env python3
"""
Traffic Counts - Site Header Cleanup Script
Canonicalizes direction and yes/no fields on tc_header rows.

Fixes the historical spellings ('N', 'North', '-1', 'Yes', ...) and the
placeholder values ('0999' in indir, '25' in sidewalk). Unrecognized values
are left alone and reported.

Usage:
    python -m scripts.clean_site_headers [--site 165367] [--dry-run]
"""

import sys
import argparse
from pathlib import Path
from typing import Dict, List, Optional

# Add src to path
backend_src = Path(__file__).parent.parent
sys.path.insert(0, str(backend_src.absolute()))

from utils.logger import logger
from models.base import create_session
from database.connection import session_scope
from database.repositories.site_repository import SiteRepository
from importer.canonicalizer import canonicalize_header, FieldFix
from processor.import_reporter import ImportReporter


def clean_headers(
    site_ids: Optional[List[int]] = None,
    dry_run: bool = False,
    session_factory=create_session
) -> Dict[int, List[FieldFix]]:
    """
    Canonicalize site headers and persist each site's report.

    Args:
        site_ids: Sites to clean (default: all)
        dry_run: Report fixes but roll them back

    Returns:
        recordnum -> fixes applied (sites without fixes omitted)
    """
    reporters: List[ImportReporter] = []
    fixed: Dict[int, List[FieldFix]] = {}

    with session_scope(session_factory) as session:
        headers = SiteRepository(session).list_all(site_ids)
        for header in headers:
            reporter = ImportReporter(header.recordnum)
            reporters.append(reporter)
            fixes = canonicalize_header(header, reporter)
            if fixes:
                fixed[header.recordnum] = fixes

        logger.info(f"Canonicalized {len(fixed)} of {len(headers)} site header(s)", extra={
            "event_type": "header_cleanup",
            "sites_checked": len(headers),
            "sites_fixed": len(fixed),
            "dry_run": dry_run
        })

        if dry_run:
            session.rollback()

    if not dry_run:
        for reporter in reporters:
            reporter.persist(session_factory)
    return fixed


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description='Canonicalize tc_header direction and yes/no fields')
    parser.add_argument('--site', type=int, action='append', help='Site recordnum (repeatable, default: all)')
    parser.add_argument('--dry-run', action='store_true', help='Report fixes without saving them')

    args = parser.parse_args()

    try:
        fixed = clean_headers(args.site, dry_run=args.dry_run)
    except Exception as e:
        logger.error(
            "Header cleanup failed",
            extra={'error': str(e), 'error_type': type(e).__name__}
        )
        sys.exit(1)

    for recordnum, fixes in sorted(fixed.items()):
        changes = ", ".join(f"{fix.field}: {fix.old!r} -> {fix.new!r}" for fix in fixes)
        logger.info(f"Site {recordnum}: {changes}")


if __name__ == '__main__':
    main()
