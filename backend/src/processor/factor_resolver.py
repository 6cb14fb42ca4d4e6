"""
Traffic Counts - Factor Resolver
Picks the seasonal (volume) and axle correction factors for a site's count day.

Factor source per municipality and metric:
    OverrideFactorSource(set)  when tc_mcd carries an override for the metric
    DefaultFactorSource(set)   otherwise, from the mcd's state prefix
                               (42 = Pennsylvania, 34 = New Jersey)

One source applies to a whole run; the default and an override are never
blended. Bicycle and pedestrian counts use their own seasonal tables
(tc_bikefactor by bike/ped group, tc_pedfactor by month) instead.
Factor, municipality and counter-type tables are read once per resolver
and never re-read mid-run.
"""

import enum
from dataclasses import dataclass
from datetime import date
from typing import Optional, Dict, Tuple, Union

from sqlalchemy.orm import Session

from utils.logger import logger
from models.orm_factor import FactorSet
from database.calculators.aadv import day_of_week
from database.repositories.factor_repository import FactorRepository
from database.repositories.site_repository import SiteRepository


class FactorMetric(str, enum.Enum):
    """Which factor column is being resolved."""
    VOLUME = "volume"
    AXLE = "axle"


# Two-digit state FIPS prefix of the mcd code -> default factor set
STATE_FACTOR_SETS = {
    "42": FactorSet.PENNSYLVANIA,
    "34": FactorSet.NEW_JERSEY,
}


@dataclass(frozen=True)
class DefaultFactorSource:
    """Factors come from the state's default set."""
    factor_set: str


@dataclass(frozen=True)
class OverrideFactorSource:
    """Factors come from the municipality's override set."""
    factor_set: str


FactorSource = Union[DefaultFactorSource, OverrideFactorSource]


class UnknownMunicipalityError(Exception):
    """The mcd is not in tc_mcd, or its state prefix has no default factor set."""
    pass


class MissingFactorError(Exception):
    """No factor value for the resolved set, class and date."""
    pass


class FactorResolver:
    """
    Resolves correction factors from an in-memory snapshot.

    Usage:
        resolver = FactorResolver(session)
        factor = resolver.resolve('4210100000', FactorMetric.VOLUME, 14, date(2024, 7, 9))
    """

    def __init__(self, session: Session):
        """
        Initialize factor resolver and take the snapshot.

        Args:
            session: SQLAlchemy session
        """
        self.session = session
        self._factors: Dict[Tuple[str, int, int, int, int], Tuple[Optional[float], Optional[float]]] = {}
        self._municipalities: Dict[str, Tuple[Optional[str], Optional[str]]] = {}
        self._equipment: Dict[str, Optional[float]] = {}
        self._bicycle: Dict[Tuple[str, int, int, int], Optional[float]] = {}
        self._pedestrian: Dict[int, Optional[float]] = {}
        self._sources: Dict[Tuple[str, FactorMetric], FactorSource] = {}
        self._load()

    def _load(self) -> None:
        factor_repo = FactorRepository(self.session)
        for key, factor in factor_repo.load_all().items():
            self._factors[key] = (factor.volume_factor, factor.axle_factor)
        self._bicycle = factor_repo.load_bicycle_factors()
        self._pedestrian = factor_repo.load_pedestrian_factors()

        site_repo = SiteRepository(self.session)
        for municipality in site_repo.list_municipalities():
            self._municipalities[municipality.mcd] = (
                municipality.volume_factor_override,
                municipality.axle_factor_override,
            )
        for counter_type in site_repo.list_counter_types():
            self._equipment[counter_type.counttype] = counter_type.equipment_factor

        logger.debug(f"Factor snapshot: {len(self._factors)} factor rows, "
                     f"{len(self._municipalities)} municipalities")

    def source_for(self, mcd: Optional[str], metric: FactorMetric) -> FactorSource:
        """
        The factor source for a municipality and metric (resolved once, then cached).

        Raises:
            UnknownMunicipalityError: mcd missing from tc_mcd, or unknown state prefix
        """
        metric = FactorMetric(metric)
        cache_key = (mcd, metric)
        if cache_key in self._sources:
            return self._sources[cache_key]

        if mcd is None or mcd not in self._municipalities:
            raise UnknownMunicipalityError(f"Municipality {mcd!r} not found")

        volume_override, axle_override = self._municipalities[mcd]
        override = volume_override if metric == FactorMetric.VOLUME else axle_override

        if override:
            source = OverrideFactorSource(override)
        else:
            default_set = STATE_FACTOR_SETS.get(mcd[:2])
            if default_set is None:
                raise UnknownMunicipalityError(
                    f"Municipality {mcd!r} has no default factor set for state prefix {mcd[:2]!r}"
                )
            source = DefaultFactorSource(default_set)

        self._sources[cache_key] = source
        return source

    def resolve(
        self,
        mcd: Optional[str],
        metric: FactorMetric,
        factor_class: Optional[int],
        count_date: date
    ) -> float:
        """
        Factor value for one count day.

        Args:
            mcd: Municipality code of the site
            metric: VOLUME (seasonal) or AXLE
            factor_class: Road functional class (tc_header.fc)
            count_date: Day being factored

        Raises:
            UnknownMunicipalityError: See source_for
            MissingFactorError: No row for the slot, or the value is NULL
        """
        metric = FactorMetric(metric)
        source = self.source_for(mcd, metric)

        if factor_class is None:
            raise MissingFactorError(f"Site has no functional class; cannot look up {metric.value} factor")

        key = (source.factor_set, factor_class, count_date.year, count_date.month, day_of_week(count_date))
        values = self._factors.get(key)
        value = None
        if values is not None:
            value = values[0] if metric == FactorMetric.VOLUME else values[1]

        if value is None:
            raise MissingFactorError(
                f"No {metric.value} factor in set {source.factor_set} for fc {factor_class} "
                f"on {count_date} (month {count_date.month}, day of week {key[4]})"
            )
        return value

    def bicycle_factor(self, group: Optional[str], count_date: date) -> float:
        """
        Bicycle seasonal factor for the site's bike/ped group and count day.

        Raises:
            MissingFactorError: No group on the site, no row for the slot, or a NULL value
        """
        if not group:
            raise MissingFactorError("Site has no bike/ped group; cannot look up bicycle factor")

        key = (group, count_date.year, count_date.month, day_of_week(count_date))
        value = self._bicycle.get(key)
        if value is None:
            raise MissingFactorError(
                f"No bicycle factor for group {group} on {count_date} "
                f"(month {count_date.month}, day of week {key[3]})"
            )
        return value

    def pedestrian_factor(self, count_date: date) -> float:
        """
        Pedestrian seasonal factor for the count day's month.

        Raises:
            MissingFactorError: No row for the month, or a NULL value
        """
        value = self._pedestrian.get(count_date.month)
        if value is None:
            raise MissingFactorError(f"No pedestrian factor for month {count_date.month} ({count_date})")
        return value

    def equipment_factor(self, count_type: Optional[str]) -> Optional[float]:
        """Counter-type correction factor, or None when the type has none."""
        if count_type is None:
            return None
        return self._equipment.get(count_type)
