"""
Database calculators - centralized business logic for AADV calculations
and the post-import data checks.

The functions here are side-effect free so the aggregator, the data checker
and their tests share a single definition of the rules.
"""

from database.calculators.aadv import (
    DailyTotal,
    FactoredDay,
    AadvCalculation,
    combined_factor,
    complete_days,
    daily_totals,
    day_of_week,
    mean_factored_volume,
    round_aadv,
)
from database.calculators.data_checks import (
    class2_share_warning,
    unclassified_share_warning,
    direction_proportion_warning,
    hourly_volumes,
    consecutive_zero_hours_warning,
    excessive_bicycles_warning,
)

__all__ = [
    "DailyTotal",
    "FactoredDay",
    "AadvCalculation",
    "combined_factor",
    "complete_days",
    "daily_totals",
    "day_of_week",
    "mean_factored_volume",
    "round_aadv",
    "class2_share_warning",
    "unclassified_share_warning",
    "direction_proportion_warning",
    "hourly_volumes",
    "consecutive_zero_hours_warning",
    "excessive_bicycles_warning",
]
