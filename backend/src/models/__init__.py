# Traffic Counts - Models Package

# Import all ORM models to register them with SQLAlchemy's declarative base
# This ensures string-based relationship() forward references can be resolved
# IMPORTANT: Use relative imports to avoid duplicate module loading issues
from .base import Base, SessionLocal, create_session
from .orm_site import (
    SiteHeader, Municipality, CounterType, Direction, YesNo,
    COUNT_DIRECTIONS, HEADER_DIRECTIONS
)
from .orm_counts import (
    VolumeCount, FifteenMinuteVolumeCount, ClassCount, SpeedCount,
    BicycleCount, PedestrianCount, COUNT_MODELS
)
from .orm_factor import SeasonalFactor, BicycleFactor, PedestrianFactor, FactorSet
from .orm_excluded_day import ExcludedDay
from .orm_aadv import AadvResult
from .orm_import_log import ImportLogEntry, LogLevel

__all__ = [
    'Base',
    'SessionLocal',
    'create_session',
    'SiteHeader',
    'Municipality',
    'CounterType',
    'Direction',
    'YesNo',
    'COUNT_DIRECTIONS',
    'HEADER_DIRECTIONS',
    'VolumeCount',
    'FifteenMinuteVolumeCount',
    'ClassCount',
    'SpeedCount',
    'BicycleCount',
    'PedestrianCount',
    'COUNT_MODELS',
    'SeasonalFactor',
    'BicycleFactor',
    'PedestrianFactor',
    'FactorSet',
    'ExcludedDay',
    'AadvResult',
    'ImportLogEntry',
    'LogLevel',
]
