"""
Traffic Counts - AADV Aggregator
Computes Annual Average Daily Volume for a site and direction over a date window.

Algorithm:
1. Pick the finest source with rows in the window:
   15-minute volume bins, then classification bins, then daily volume rows,
   then bicycle and pedestrian counter bins.
   Bins are summed per day over every lane; a day where any lane is
   partial is dropped.
2. Drop excluded days and days without an observation.
3. Factor each remaining day total:
   volume factor [x axle factor for volume sources] [x equipment factor],
   or for bicycle/pedestrian counters their own seasonal factor
   [x equipment factor].
4. AADV = mean of the factored day totals.
5. Append an AadvResult and refresh the tc_header.aadv projection.

Every dropped day, factor failure and result is reported on the site's
ImportReporter.
"""

import enum
from dataclasses import dataclass
from datetime import date
from typing import Optional, List, Dict, Tuple, Union

from sqlalchemy.orm import Session

from utils.logger import logger, log_aadv_start, log_aadv_complete, log_aadv_error
from models.orm_site import SiteHeader, Direction, COUNT_DIRECTIONS
from models.orm_counts import (
    VolumeCount, FifteenMinuteVolumeCount, ClassCount, BicycleCount, PedestrianCount
)
from models.orm_aadv import AadvResult
from database.calculators.aadv import (
    AadvCalculation, DailyTotal, FactoredDay,
    combined_factor, complete_days, daily_totals, mean_factored_volume
)
from database.repositories.aadv_repository import AadvRepository
from database.repositories.count_repository import CountRepository
from database.repositories.site_repository import SiteRepository
from processor.exclusion_filter import ExclusionFilter
from processor.factor_resolver import (
    FactorResolver, FactorMetric, UnknownMunicipalityError, MissingFactorError
)


class InsufficientDataError(Exception):
    """No day remains to average after exclusions and dropped days."""
    pass


class UnknownSiteError(Exception):
    """The recordnum has no tc_header row."""
    pass


class CountSource(str, enum.Enum):
    """Count table an AADV was computed from, in order of preference."""
    FIFTEEN_MINUTE = "15min"
    CLASSIFICATION = "class"
    DAILY_VOLUME = "volume"
    BICYCLE = "bicycle"
    PEDESTRIAN = "pedestrian"


# Preference order; the axle factor applies to volume (tube) sources only
SOURCE_MODELS = (
    (CountSource.FIFTEEN_MINUTE, FifteenMinuteVolumeCount),
    (CountSource.CLASSIFICATION, ClassCount),
    (CountSource.DAILY_VOLUME, VolumeCount),
    (CountSource.BICYCLE, BicycleCount),
    (CountSource.PEDESTRIAN, PedestrianCount),
)
AXLE_FACTOR_SOURCES = {CountSource.FIFTEEN_MINUTE, CountSource.DAILY_VOLUME}
# Single-counter sources: rows carry incount/outcount instead of a direction
IN_OUT_SOURCES = {CountSource.BICYCLE, CountSource.PEDESTRIAN}


@dataclass(frozen=True)
class CountWindow:
    """Inclusive date range of count days considered."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    def __str__(self) -> str:
        return f"{self.start} to {self.end}"


def _normalize_direction(direction) -> Optional[str]:
    if direction is None:
        return None
    value = direction.value if isinstance(direction, Direction) else str(direction)
    if value not in COUNT_DIRECTIONS:
        raise ValueError(f"Direction must be one of {COUNT_DIRECTIONS} or None, got {direction!r}")
    return value


def _describe(direction: Optional[str]) -> str:
    return direction or "all directions"


def in_out_field(header: SiteHeader, direction: Optional[str]) -> Optional[str]:
    """Bicycle/pedestrian column holding a direction's volume (None when the site has no such direction)."""
    if direction is None:
        return 'total'
    if direction == header.indir:
        return 'incount'
    if direction == header.outdir:
        return 'outcount'
    return None


class AadvAggregator:
    """
    Computes AADV values for sites.

    Factor and excluded-day data are snapshotted when the aggregator is
    created; create one aggregator per run.

    Usage:
        aggregator = AadvAggregator(session, ImportReporter(165367))
        result = aggregator.compute(165367, None, CountWindow(date(2024, 1, 1), date(2024, 12, 31)))
    """

    def __init__(
        self,
        session: Session,
        reporter,
        factor_resolver: Optional[FactorResolver] = None,
        exclusion_filter: Optional[ExclusionFilter] = None
    ):
        """
        Initialize AADV aggregator.

        Args:
            session: SQLAlchemy session
            reporter: ImportReporter for the site being computed
            factor_resolver: Shared factor snapshot (loaded from session if omitted)
            exclusion_filter: Shared excluded-day snapshot (loaded from session if omitted)
        """
        self.session = session
        self.reporter = reporter
        self.factors = factor_resolver if factor_resolver is not None else FactorResolver(session)
        self.exclusions = exclusion_filter if exclusion_filter is not None else ExclusionFilter.load(session)
        self.sites = SiteRepository(session)
        self.results = AadvRepository(session)

    def _get_header(self, site_id: int) -> SiteHeader:
        header = self.sites.get(site_id)
        if header is None:
            self.reporter.error(f"Site {site_id} not found in tc_header")
            raise UnknownSiteError(f"Site {site_id} not found")
        return header

    def select_source(
        self,
        site_id: int,
        direction: Optional[str],
        window: CountWindow
    ) -> Tuple[Optional[CountSource], list]:
        """
        First source (in preference order) with rows in the window, and those rows.

        Bicycle and pedestrian rows have no direction column; they are
        returned whole and split by in_out_field().
        """
        for source, model in SOURCE_MODELS:
            repo = CountRepository(self.session, model)
            if source in IN_OUT_SOURCES:
                rows = repo.get_for_window(site_id, window.start, window.end)
            else:
                rows = repo.get_for_window(site_id, window.start, window.end, direction)
            if rows:
                return source, rows
        return None, []

    def directions_for(self, site_id: int, window: CountWindow) -> List[str]:
        """Every direction with rows in the window, across all sources."""
        directions = set()
        for source, model in SOURCE_MODELS:
            repo = CountRepository(self.session, model)
            if source not in IN_OUT_SOURCES:
                directions.update(repo.directions_for_window(site_id, window.start, window.end))
            elif repo.get_for_window(site_id, window.start, window.end):
                header = self.sites.get(site_id)
                if header is not None:
                    directions.update(d for d in (header.indir, header.outdir) if d in COUNT_DIRECTIONS)
        return sorted(directions)

    def day_totals(
        self,
        header: SiteHeader,
        direction: Optional[str],
        window: CountWindow
    ) -> Tuple[Optional[CountSource], List[DailyTotal]]:
        """
        Per-day totals for the site/direction, partial sub-daily days removed.

        Returns:
            (source used, day totals in date order)
        """
        source, rows = self.select_source(header.recordnum, direction, window)
        if source is None:
            return None, []

        if source == CountSource.DAILY_VOLUME:
            return source, daily_totals((row.count_date, row.volume) for row in rows)

        if source in IN_OUT_SOURCES:
            field = in_out_field(header, direction)
            if field is None:
                self.reporter.warning(
                    f"No {source.value} counts for {direction}: tc_header indir/outdir are "
                    f"{header.indir}/{header.outdir}"
                )
                return source, []
            bins = ((row.count_date, field, row.count_time, getattr(row, field)) for row in rows)
        elif source == CountSource.FIFTEEN_MINUTE:
            bins = ((row.count_date, (row.direction, row.lane), row.count_time, row.volume) for row in rows)
        else:
            bins = ((row.count_date, (row.direction, row.lane), row.count_time, row.total) for row in rows)

        totals, partial = complete_days(bins)
        for day in partial:
            self.reporter.warning(
                f"{day} dropped ({_describe(direction)}): incomplete day of {source.value} bins"
            )
        return source, totals

    def factor_for(self, header: SiteHeader, source: CountSource, day: date) -> float:
        """Combined correction factor for one day."""
        equipment_factor = self.factors.equipment_factor(header.count_type)
        if source == CountSource.BICYCLE:
            return combined_factor(self.factors.bicycle_factor(header.bikepedgroup, day), equipment_factor)
        if source == CountSource.PEDESTRIAN:
            return combined_factor(self.factors.pedestrian_factor(day), equipment_factor)

        volume_factor = self.factors.resolve(header.mcd, FactorMetric.VOLUME, header.fc, day)
        axle_factor = None
        if source in AXLE_FACTOR_SOURCES:
            axle_factor = self.factors.resolve(header.mcd, FactorMetric.AXLE, header.fc, day)
        return combined_factor(volume_factor, axle_factor, equipment_factor)

    def calculate(
        self,
        site_id: int,
        direction,
        window: CountWindow,
        client_scope: Optional[str] = None
    ) -> AadvCalculation:
        """
        Run steps 1-4 without writing anything.

        Raises:
            UnknownSiteError: No tc_header row
            UnknownMunicipalityError, MissingFactorError: Factor lookup failed
            InsufficientDataError: No day left to average
        """
        direction = _normalize_direction(direction)
        header = self._get_header(site_id)
        source, totals = self.day_totals(header, direction, window)

        retained: List[FactoredDay] = []
        for total in totals:
            if self.exclusions.is_excluded(total.day, client_scope):
                reason = self.exclusions.reason_for(total.day, client_scope)
                self.reporter.warning(
                    f"{total.day} excluded ({_describe(direction)}): {reason or 'excluded day'}"
                )
                continue

            if not total.has_observation:
                self.reporter.warning(f"{total.day} dropped ({_describe(direction)}): no observation")
                continue

            try:
                factor = self.factor_for(header, source, total.day)
            except (UnknownMunicipalityError, MissingFactorError) as e:
                self.reporter.error(f"AADV for {_describe(direction)} failed: {e}")
                raise

            retained.append(FactoredDay(total.day, total.volume, factor))

        if not retained:
            message = f"No days left to average for {_describe(direction)} between {window}"
            self.reporter.error(f"AADV for {_describe(direction)} failed: {message}")
            raise InsufficientDataError(message)

        calculation = mean_factored_volume(retained)
        logger.debug(
            f"Site {site_id} ({_describe(direction)}): mean {calculation.mean:.4f} "
            f"over {calculation.days_used} days from {source.value}"
        )
        return calculation

    def compute(
        self,
        site_id: int,
        direction,
        window: CountWindow,
        client_scope: Optional[str] = None
    ) -> AadvResult:
        """
        Compute, persist and report one AADV.

        Args:
            site_id: tc_header recordnum
            direction: north/east/south/west, or None for all directions combined
            window: Count days to consider
            client_scope: Client whose excluded days apply in addition to unscoped ones

        Returns:
            The appended AadvResult (the header cache is refreshed alongside)
        """
        direction = _normalize_direction(direction)
        log_aadv_start(site_id, direction, window.start, window.end, client_scope)

        try:
            calculation = self.calculate(site_id, direction, window, client_scope)
        except (UnknownSiteError, UnknownMunicipalityError, MissingFactorError, InsufficientDataError) as e:
            log_aadv_error(e, site_id, direction)
            raise

        result = self.results.insert(
            recordnum=site_id,
            aadv=calculation.aadv,
            direction=direction,
            date_calculated=date.today(),
        )
        self.reporter.info(
            f"AADV {calculation.aadv} ({_describe(direction)}) from {calculation.days_used} days "
            f"between {window}"
        )
        log_aadv_complete(site_id, direction, calculation.aadv, calculation.days_used)
        return result

    def compute_all(
        self,
        site_id: int,
        window: CountWindow,
        client_scope: Optional[str] = None
    ) -> Dict[Optional[str], Union[AadvResult, Exception]]:
        """
        Compute the overall AADV plus one per direction present in the data.

        Each direction is independent: a failure is recorded in the returned
        mapping and the remaining directions still run.

        Returns:
            direction (None = overall) -> AadvResult or the exception raised
        """
        directions: List[Optional[str]] = [None] + self.directions_for(site_id, window)

        outcomes: Dict[Optional[str], Union[AadvResult, Exception]] = {}
        for direction in directions:
            try:
                outcomes[direction] = self.compute(site_id, direction, window, client_scope)
            except (UnknownSiteError, UnknownMunicipalityError, MissingFactorError, InsufficientDataError) as e:
                outcomes[direction] = e
        return outcomes
