"""
Traffic Counts - pytest Configuration and Fixtures

Provides shared test fixtures for:
- A file-backed SQLite database with the full schema (safe across threads)
- Sample sites, municipalities, counter types and factor tables
- Helper functions for inserting count rows

Note: SQLite stands in for MySQL; every model uses portable column types.
"""

import sys
from pathlib import Path
from datetime import date, time, timedelta
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from unittest.mock import MagicMock

# Add src to path for imports
backend_src = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(backend_src.absolute()))

from models import (
    Base, SiteHeader, Municipality, CounterType, SeasonalFactor,
    VolumeCount, FifteenMinuteVolumeCount, ClassCount, FactorSet
)
from database.calculators.aadv import day_of_week


PA_MCD = '4210100000'
NJ_MCD = '3400100000'
NJ_REGION4_MCD = '3401500000'

SITE_ID = 165367
OTHER_SITE_ID = 165368
FC = 14

# July 2024: the 1st is a Monday
JULY_START = date(2024, 7, 1)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine(tmp_path):
    """SQLite engine on a temporary file with every table created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'traffic_counts.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test engine (one session per call)."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """A session for arranging and asserting; committed data is visible to other sessions."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_reference_data(session):
    """
    Municipalities, counter types and July 2024 factors for fc 14.

    - PA default set: volume 1.0, axle 0.9
    - NJ default set: volume 1.0, axle 1.0
    - NJ_REGION4 set: volume 1.2, axle 1.0
    - Pedestrian counters carry the 1.0622 equipment factor
    """
    session.add_all([
        Municipality(mcd=PA_MCD, name='Abington Township'),
        Municipality(mcd=NJ_MCD, name='Camden City'),
        Municipality(mcd=NJ_REGION4_MCD, name='Trenton City', volume_factor_override=FactorSet.NEW_JERSEY_REGION4),
        CounterType(counttype='Pedestrian', equipment_factor=1.0622),
        CounterType(counttype='15 min Volume', equipment_factor=None),
        CounterType(counttype='Class', equipment_factor=None),
        CounterType(counttype='Volume', equipment_factor=None),
    ])
    add_factors(session, FactorSet.PENNSYLVANIA, FC, JULY_START, 31, volume_factor=1.0, axle_factor=0.9)
    add_factors(session, FactorSet.NEW_JERSEY, FC, JULY_START, 31, volume_factor=1.0, axle_factor=1.0)
    add_factors(session, FactorSet.NEW_JERSEY_REGION4, FC, JULY_START, 31, volume_factor=1.2, axle_factor=1.0)
    session.commit()


@pytest.fixture
def pedestrian_site(session, sample_reference_data):
    """A New Jersey pedestrian count site (default factors of 1.0)."""
    header = add_site(session, SITE_ID, NJ_MCD, 'Pedestrian')
    session.commit()
    return header


@pytest.fixture
def mock_reporter():
    """ImportReporter double recording calls."""
    reporter = MagicMock()
    reporter.site_id = SITE_ID
    return reporter


# ============================================================================
# Helper Functions
# ============================================================================

def add_site(session, recordnum: int, mcd: str, count_type: str, fc: Optional[int] = FC) -> SiteHeader:
    header = SiteHeader(recordnum=recordnum, mcd=mcd, count_type=count_type, fc=fc, road='Main St')
    session.add(header)
    session.flush()
    return header


def add_factors(
    session,
    factor_set: str,
    fc: int,
    start: date,
    days: int,
    volume_factor: Optional[float],
    axle_factor: Optional[float] = 1.0
) -> None:
    """Factor rows covering every (year, month, day_of_week) slot touched by the date range."""
    slots = set()
    for offset in range(days):
        day = start + timedelta(days=offset)
        slots.add((day.year, day.month, day_of_week(day)))
    for year, month, dow in sorted(slots):
        session.add(SeasonalFactor(
            factor_set=factor_set, fc=fc, year=year, month=month, day_of_week=dow,
            volume_factor=volume_factor, axle_factor=axle_factor,
        ))
    session.flush()


def add_daily_volumes(
    session,
    recordnum: int,
    start: date,
    volumes: List[Optional[int]],
    direction: str = 'north',
    lane: int = 1
) -> None:
    for offset, volume in enumerate(volumes):
        session.add(VolumeCount(
            recordnum=recordnum, count_date=start + timedelta(days=offset),
            direction=direction, lane=lane, volume=volume,
        ))
    session.flush()


def bin_times(interval_minutes: int = 15, start_hour: int = 0, end_hour: int = 24) -> List[time]:
    times = []
    for minutes in range(start_hour * 60, end_hour * 60, interval_minutes):
        times.append(time(minutes // 60, minutes % 60))
    return times


def add_fifteen_minute_day(
    session,
    recordnum: int,
    day: date,
    per_bin: int,
    direction: str = 'north',
    lane: int = 1,
    start_hour: int = 0,
    end_hour: int = 24
) -> None:
    for count_time in bin_times(15, start_hour, end_hour):
        session.add(FifteenMinuteVolumeCount(
            recordnum=recordnum, count_date=day, count_time=count_time,
            direction=direction, lane=lane, volume=per_bin,
        ))
    session.flush()


def add_class_day(
    session,
    recordnum: int,
    day: date,
    per_bin: int,
    direction: str = 'north',
    lane: int = 1,
    interval_minutes: int = 60
) -> None:
    for count_time in bin_times(interval_minutes):
        session.add(ClassCount(
            recordnum=recordnum, count_date=day, count_time=count_time,
            direction=direction, lane=lane, cars_and_tlrs=per_bin, total=per_bin,
        ))
    session.flush()


def add_in_out_day(
    session,
    model,
    recordnum: int,
    day: date,
    incount: int,
    outcount: int,
    start_hour: int = 0,
    end_hour: int = 24
) -> None:
    """15-minute bicycle or pedestrian bins; total is incount + outcount."""
    for count_time in bin_times(15, start_hour, end_hour):
        session.add(model(
            recordnum=recordnum, count_date=day, count_time=count_time,
            incount=incount, outcount=outcount, total=incount + outcount,
        ))
    session.flush()
