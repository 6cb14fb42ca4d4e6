"""
Traffic Counts - Data Checker
Runs the data validity checks on a site's stored counts after an import.

Checks per count table:
    tc_clacount       class 2 share, unclassified share, direction
                      proportions, consecutive zero hours
    tc_15minvolcount  direction proportions, consecutive zero hours
    tc_volcount       direction proportions
    tc_bikecount      in/out proportions (two-way counters only),
                      consecutive zero hours, excessive bicycles

Findings are warnings on the site's ImportReporter; nothing is rejected.
"""

from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from utils.logger import logger
from models.orm_counts import VolumeCount, FifteenMinuteVolumeCount, ClassCount, BicycleCount
from models.orm_site import Direction
from database.calculators.data_checks import (
    class2_share_warning, unclassified_share_warning, direction_proportion_warning,
    consecutive_zero_hours_warning, excessive_bicycles_warning
)
from database.repositories.count_repository import CountRepository
from database.repositories.site_repository import SiteRepository


def _sum(values) -> int:
    return sum(value for value in values if value is not None)


def _volume_by_direction(rows, attribute: str) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for row in rows:
        value = getattr(row, attribute)
        if value is not None:
            totals[row.direction] = totals.get(row.direction, 0) + value
    return totals


class DataChecker:
    """
    Flags abnormal counts for one site.

    Usage:
        checker = DataChecker(session, ImportReporter(165367))
        warnings = checker.check(ClassCount)
    """

    def __init__(self, session: Session, reporter):
        self.session = session
        self.reporter = reporter

    def check(self, model) -> List[str]:
        """
        Run the checks that apply to the site's rows in model's table.

        Returns:
            Warning messages, each also reported on the reporter
        """
        site_id = self.reporter.site_id
        rows = CountRepository(self.session, model).get_for_site(site_id)
        if not rows:
            return []

        if model is ClassCount:
            findings = self.check_class(rows)
        elif model is FifteenMinuteVolumeCount:
            findings = self.check_vehicle_volume(rows, 'volume', binned=True)
        elif model is VolumeCount:
            findings = self.check_vehicle_volume(rows, 'volume', binned=False)
        elif model is BicycleCount:
            findings = self.check_bicycle(site_id, rows)
        else:
            findings = []

        warnings = [finding for finding in findings if finding is not None]
        for warning in warnings:
            self.reporter.warning(f"{model.__tablename__}: {warning}")

        logger.debug(f"Site {site_id}: {len(warnings)} data check warning(s) on {model.__tablename__}")
        return warnings

    def check_class(self, rows) -> List[Optional[str]]:
        total = _sum(row.total for row in rows)
        return [
            unclassified_share_warning(_sum(row.unclassified for row in rows), total),
            class2_share_warning(_sum(row.cars_and_tlrs for row in rows), total),
        ] + self.check_vehicle_volume(rows, 'total', binned=True)

    def check_vehicle_volume(self, rows, attribute: str, binned: bool) -> List[Optional[str]]:
        findings = [direction_proportion_warning(_volume_by_direction(rows, attribute))]
        if binned:
            findings.append(consecutive_zero_hours_warning(
                (row.direction, row.count_date, row.count_time, getattr(row, attribute)) for row in rows
            ))
        return findings

    def check_bicycle(self, site_id: int, rows) -> List[Optional[str]]:
        header = SiteRepository(self.session).get(site_id)
        in_label = (header.indir if header is not None else None) or 'in'
        out_label = (header.outdir if header is not None else None) or 'out'

        # (direction, date, time, volume) per sensor direction
        bins = [
            (label, row.count_date, row.count_time, getattr(row, attribute))
            for row in rows
            for label, attribute in ((in_label, 'incount'), (out_label, 'outcount'))
        ]

        findings = []
        if header is not None and header.cntdir == Direction.BOTH.value:
            findings.append(direction_proportion_warning({
                in_label: _sum(row.incount for row in rows),
                out_label: _sum(row.outcount for row in rows),
            }))
        findings.append(consecutive_zero_hours_warning(bins))
        findings.append(excessive_bicycles_warning(
            (count_date, count_time, label, volume) for label, count_date, count_time, volume in bins
        ))
        return findings
