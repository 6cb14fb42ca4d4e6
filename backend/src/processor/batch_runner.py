"""
Traffic Counts - Batch Runner
Runs per-site jobs concurrently with per-site failure isolation.

Each site gets its own session (one transaction) and its own ImportReporter.
A failing site, storage failures included, is rolled back and recorded;
the other sites carry on. Nothing is retried.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from utils.config import AADV_MAX_WORKERS
from utils.logger import logger
from database.connection import session_scope
from processor.import_reporter import ImportReporter
from processor.aadv_aggregator import AadvAggregator, CountWindow
from processor.exclusion_filter import ExclusionFilter
from processor.factor_resolver import FactorResolver

SiteJob = Callable[[Session, ImportReporter], Any]


@dataclass
class SiteRunResult:
    """Outcome of one site's job."""
    site_id: int
    status: str  # 'success' or 'failed'
    value: Any = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 'success'


class BatchRunner:
    """
    Executes one job per site in a ThreadPoolExecutor.

    Usage:
        runner = BatchRunner(create_session, max_workers=4)
        results = runner.run({165367: job, 165368: job})
    """

    def __init__(self, session_factory: Callable[[], Session], max_workers: int = AADV_MAX_WORKERS):
        """
        Args:
            session_factory: Callable returning a new Session (one per site)
            max_workers: Upper bound on sites processed at once
        """
        self.session_factory = session_factory
        self.max_workers = max(1, max_workers)

    def run(self, jobs: Dict[int, SiteJob]) -> List[SiteRunResult]:
        """
        Run every site's job.

        Returns:
            One SiteRunResult per site, ordered by site id
        """
        results = []
        logger.info(f"Running {len(jobs)} site job(s) with {self.max_workers} worker(s)")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # Submit all site tasks
            future_to_site = {
                executor.submit(self._run_site, site_id, job): site_id
                for site_id, job in jobs.items()
            }

            # Collect results as they complete
            for future in as_completed(future_to_site):
                results.append(future.result())

        failed = sum(1 for r in results if not r.succeeded)
        logger.info(f"Batch complete: {len(results) - failed}/{len(results)} sites successful", extra={
            "event_type": "batch_complete",
            "sites": len(results),
            "failed": failed
        })
        return sorted(results, key=lambda r: r.site_id)

    def _run_site(self, site_id: int, job: SiteJob) -> SiteRunResult:
        """Run a single site's job in its own transaction."""
        reporter = ImportReporter(site_id)
        try:
            with session_scope(self.session_factory) as session:
                value = job(session, reporter)
            return SiteRunResult(site_id=site_id, status='success', value=value)

        except Exception as e:
            reporter.error(f"Site {site_id} batch failed: {type(e).__name__}: {e}")
            logger.error(
                f"Site {site_id} batch failed",
                extra={
                    'recordnum': site_id,
                    'error': str(e),
                    'error_type': type(e).__name__
                }
            )
            return SiteRunResult(site_id=site_id, status='failed', error=e)

        finally:
            reporter.persist(self.session_factory)


def build_aadv_jobs(
    session_factory: Callable[[], Session],
    site_ids: List[int],
    window: CountWindow,
    client_scope: Optional[str] = None,
    direction: Optional[str] = None,
    all_directions: bool = True
) -> Dict[int, SiteJob]:
    """
    Jobs computing AADV for each site from a single factor/exclusion snapshot.

    Args:
        session_factory: Used once to take the snapshot
        site_ids: Sites to compute
        window: Count days considered
        client_scope: Client whose excluded days also apply
        direction: Single direction to compute (ignored when all_directions)
        all_directions: Overall value plus each direction present in the data

    Returns:
        site id -> job for BatchRunner.run
    """
    with session_scope(session_factory) as session:
        factors = FactorResolver(session)
        exclusions = ExclusionFilter.load(session)

    def job_for(site_id: int) -> SiteJob:
        def job(session: Session, reporter: ImportReporter):
            aggregator = AadvAggregator(session, reporter, factors, exclusions)
            if all_directions:
                return aggregator.compute_all(site_id, window, client_scope)
            return aggregator.compute(site_id, direction, window, client_scope)
        return job

    return {site_id: job_for(site_id) for site_id in site_ids}
