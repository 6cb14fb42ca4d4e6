"""
AADV calculation - pure functions behind AadvAggregator.

Key Formula:
    factored(day) = day_total * volume_factor [* axle_factor] [* equipment_factor]
    AADV          = mean(factored(day) for each retained day)

Factors are applied to the day total after lanes (and bins) are summed.
The stored value is the mean rounded half away from zero to an integer.

Sub-daily bins only produce a day total when every lane series is complete:
    - 96 distinct 15-minute bin times, or
    - 24 distinct bin times that all fall on the hour.
Anything else (typically the first and last day of a count) is partial.

Nothing in this module touches the database.
"""
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Hashable, Iterable, Sequence, Tuple

FIFTEEN_MINUTE_BINS_PER_DAY = 96
HOURLY_BINS_PER_DAY = 24


@dataclass(frozen=True)
class DailyTotal:
    """Volume for one calendar day (all lanes of the requested direction(s))."""
    day: date
    volume: Optional[int]

    @property
    def has_observation(self) -> bool:
        return self.volume is not None


@dataclass(frozen=True)
class FactoredDay:
    """A retained day with the combined factor applied."""
    day: date
    volume: int
    factor: float

    @property
    def factored(self) -> float:
        return self.volume * self.factor


@dataclass
class AadvCalculation:
    """Outcome of averaging the factored days."""
    mean: float
    days: List[FactoredDay] = field(default_factory=list)

    @property
    def aadv(self) -> int:
        return round_aadv(self.mean)

    @property
    def days_used(self) -> int:
        return len(self.days)


def combined_factor(*factors: Optional[float]) -> float:
    """Product of the given factors; None entries are skipped (not applicable)."""
    result = 1.0
    for factor in factors:
        if factor is not None:
            result *= factor
    return result


def mean_factored_volume(days: Sequence[FactoredDay]) -> AadvCalculation:
    """
    Arithmetic mean of factored day totals.

    Raises:
        ValueError: No days to average
    """
    if not days:
        raise ValueError("Cannot average zero days")

    total = sum(day.factored for day in days)
    return AadvCalculation(mean=total / len(days), days=list(days))


def round_aadv(mean: float) -> int:
    """Round half away from zero (AADV values are never negative)."""
    return int(Decimal(repr(mean)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _is_complete(bin_times: set) -> bool:
    if len(bin_times) == FIFTEEN_MINUTE_BINS_PER_DAY:
        return True
    if len(bin_times) == HOURLY_BINS_PER_DAY:
        return all(t.minute == 0 for t in bin_times)
    return False


def complete_days(
    bins: Iterable[Tuple[date, Hashable, time, Optional[int]]]
) -> Tuple[List[DailyTotal], List[date]]:
    """
    Sum sub-daily bins into day totals, separating complete and partial days.

    Completeness is judged per series (one direction and lane): a day is
    complete only when every series with an observation that day is
    complete on its own. Missing bins are never read as zero volume.

    Args:
        bins: (count_date, series, count_time, volume) for every lane/direction
            to include, where series identifies the lane, e.g. (direction, lane).
            Bins with a NULL volume are not observations.

    Returns:
        (day totals in date order, partial dates in date order). A day with
        no non-null bin comes back as DailyTotal(day, None).
    """
    totals: Dict[date, int] = {}
    observed_times: Dict[date, Dict[Hashable, set]] = {}

    for count_date, series, count_time, volume in bins:
        observed_times.setdefault(count_date, {})
        totals.setdefault(count_date, 0)
        if volume is None:
            continue
        observed_times[count_date].setdefault(series, set()).add(count_time)
        totals[count_date] += volume

    day_totals = []
    partial = []
    for day in sorted(observed_times):
        series_times = observed_times[day]
        if not series_times:
            day_totals.append(DailyTotal(day, None))
        elif all(_is_complete(times) for times in series_times.values()):
            day_totals.append(DailyTotal(day, totals[day]))
        else:
            partial.append(day)

    return day_totals, partial


def daily_totals(rows: Iterable[Tuple[date, Optional[int]]]) -> List[DailyTotal]:
    """
    Sum daily volume rows (one per lane/direction) per date.

    A date where every row is NULL has no observation.
    """
    totals: Dict[date, Optional[int]] = {}
    for count_date, volume in rows:
        if count_date not in totals:
            totals[count_date] = None
        if volume is not None:
            totals[count_date] = (totals[count_date] or 0) + volume
    return [DailyTotal(day, totals[day]) for day in sorted(totals)]


def day_of_week(day: date) -> int:
    """Factor-table day of week: 1-7 with Sunday = 1."""
    return day.isoweekday() % 7 + 1
