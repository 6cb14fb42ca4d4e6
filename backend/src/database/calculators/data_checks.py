"""
Data validity checks - pure functions behind DataChecker.

Each check returns a warning message when the count looks abnormal, or
None when it is within expectations (or cannot be judged, e.g. no volume
at all). None of these reject data; they only flag it for review.

Thresholds:
    class 2 (cars and trailers) share of classified volume   >= 75%
    unclassified share of classified volume                  <= 10%
    smaller direction's share of a two-way count             >= 40%
    hourly volume between 04:00 and 22:00                    not zero two hours running
    bicycles in one 15-minute bin, per direction             <= 20
"""
from datetime import date, datetime, time, timedelta
from typing import Optional, Dict, Iterable, List, Tuple

CLASS2_MIN_PERCENT = 75.0
UNCLASSIFIED_MAX_PERCENT = 10.0
DIRECTION_MIN_SHARE = 0.40
ZERO_HOURS_START = 4
ZERO_HOURS_END = 22
BICYCLE_BIN_MAX = 20


def _percent(part: int, total: int) -> float:
    return part / total * 100.0


def class2_share_warning(class2: int, total: int) -> Optional[str]:
    if total <= 0:
        return None
    percent = _percent(class2, total)
    if percent < CLASS2_MIN_PERCENT:
        return f"Class 2 vehicles are less than {CLASS2_MIN_PERCENT:.0f}% ({percent:.1f}%) of total."
    return None


def unclassified_share_warning(unclassified: int, total: int) -> Optional[str]:
    if total <= 0:
        return None
    percent = _percent(unclassified, total)
    if percent > UNCLASSIFIED_MAX_PERCENT:
        return f"Unclassed vehicles are greater than {UNCLASSIFIED_MAX_PERCENT:.0f}% ({percent:.1f}%) of total."
    return None


def direction_proportion_warning(volume_by_direction: Dict[str, int]) -> Optional[str]:
    """
    Compare the smallest and largest direction totals.

    Counts covering a single direction are not judged.
    """
    if len(volume_by_direction) < 2:
        return None

    smaller = min(volume_by_direction.items(), key=lambda item: (item[1], item[0]))
    larger = max(volume_by_direction.items(), key=lambda item: (item[1], item[0]))
    total = smaller[1] + larger[1]
    if total <= 0:
        return None

    smaller_share = smaller[1] / total
    if smaller_share >= DIRECTION_MIN_SHARE:
        return None

    lower = DIRECTION_MIN_SHARE * 100
    return (
        f"Abnormal direction proportions: {smaller[0]} has {smaller_share * 100:.1f}% of total, "
        f"{larger[0]} has {larger[1] / total * 100:.1f}%. "
        f"(Expectation is that proportions are no less/more than {lower:.0f}%/{100 - lower:.0f}%.)"
    )


def hourly_volumes(
    bins: Iterable[Tuple[str, date, time, Optional[int]]]
) -> Dict[str, Dict[datetime, int]]:
    """
    Sum sub-daily bins to hours, per direction.

    Args:
        bins: (direction, count_date, count_time, volume); NULL volumes are skipped

    Returns:
        direction -> {hour start: volume}
    """
    hours: Dict[str, Dict[datetime, int]] = {}
    for direction, count_date, count_time, volume in bins:
        if volume is None:
            continue
        hour = datetime.combine(count_date, time(count_time.hour))
        by_hour = hours.setdefault(direction, {})
        by_hour[hour] = by_hour.get(hour, 0) + volume
    return hours


def consecutive_zero_hours_warning(
    bins: Iterable[Tuple[str, date, time, Optional[int]]]
) -> Optional[str]:
    """
    Flag two adjacent zero-volume hours between ZERO_HOURS_START:00 and ZERO_HOURS_END:00.

    Hours are judged per direction; an hour missing from the data breaks a run.
    """
    for direction, by_hour in sorted(hourly_volumes(bins).items()):
        previous_zero: Optional[datetime] = None
        for hour in sorted(by_hour):
            if not ZERO_HOURS_START <= hour.hour <= ZERO_HOURS_END:
                continue
            if by_hour[hour] != 0:
                previous_zero = None
                continue
            if previous_zero is not None and hour - previous_zero == timedelta(hours=1):
                return (
                    f"Consecutive periods between the hours of {ZERO_HOURS_START}:00 and "
                    f"{ZERO_HOURS_END}:00 with zero volumes ({direction}, from {previous_zero:%Y-%m-%d %H:%M})."
                )
            previous_zero = hour
    return None


def excessive_bicycles_warning(
    bins: Iterable[Tuple[date, time, str, Optional[int]]]
) -> Optional[str]:
    """
    List every 15-minute bin where one direction counted more than BICYCLE_BIN_MAX bicycles.

    Args:
        bins: (count_date, count_time, direction, volume)
    """
    excessive: List[str] = []
    for count_date, count_time, direction, volume in sorted(bins, key=lambda b: (b[0], b[1], b[2])):
        if volume is not None and volume > BICYCLE_BIN_MAX:
            excessive.append(f"{datetime.combine(count_date, count_time):%Y-%m-%d %H:%M}: {volume} ({direction})")

    if not excessive:
        return None
    return (
        f"Found more than {BICYCLE_BIN_MAX} bicycles counted in the following periods: "
        + "; ".join(excessive)
    )
