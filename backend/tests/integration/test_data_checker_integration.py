"""
Integration Tests: Data Checker
Post-import validity warnings read from stored counts in SQLite.
"""

import pytest

from datetime import date, time

from models import ClassCount, FifteenMinuteVolumeCount, VolumeCount, BicycleCount, SpeedCount
from processor.data_checker import DataChecker
from processor.import_reporter import ImportReporter
from models.orm_import_log import LogLevel
from tests.conftest import (
    add_site, add_class_day, add_fifteen_minute_day, add_daily_volumes, add_in_out_day,
    SITE_ID, NJ_MCD,
)

TUESDAY = date(2024, 7, 9)


def _checker(session):
    return DataChecker(session, ImportReporter(SITE_ID))


def _warnings(checker):
    return [e.message for e in checker.reporter.events if e.severity == LogLevel.WARNING]


@pytest.fixture
def site(session, sample_reference_data):
    header = add_site(session, SITE_ID, NJ_MCD, 'Class')
    session.commit()
    return header


class TestClassChecks:

    def test_clean_class_count(self, session, site):
        add_class_day(session, SITE_ID, TUESDAY, per_bin=10, direction='north')
        add_class_day(session, SITE_ID, TUESDAY, per_bin=10, direction='south')
        session.commit()
        checker = _checker(session)

        assert checker.check(ClassCount) == []
        assert checker.reporter.events == []

    def test_unclassified_and_class2_shares(self, session, site):
        session.add(ClassCount(
            recordnum=SITE_ID, count_date=TUESDAY, count_time=time(8, 0),
            direction='north', lane=1, cars_and_tlrs=60, unclassified=20, total=100,
        ))
        session.commit()
        checker = _checker(session)

        warnings = checker.check(ClassCount)

        assert warnings == [
            "Unclassed vehicles are greater than 10% (20.0%) of total.",
            "Class 2 vehicles are less than 75% (60.0%) of total.",
        ]
        assert _warnings(checker) == [f"tc_clacount: {w}" for w in warnings]


class TestVehicleVolumeChecks:

    def test_lopsided_fifteen_minute_directions(self, session, site):
        add_fifteen_minute_day(session, SITE_ID, TUESDAY, per_bin=3, direction='east')
        add_fifteen_minute_day(session, SITE_ID, TUESDAY, per_bin=1, direction='west')
        session.commit()

        warnings = _checker(session).check(FifteenMinuteVolumeCount)

        assert len(warnings) == 1
        assert warnings[0].startswith("Abnormal direction proportions: west has 25.0% of total, east has 75.0%.")

    def test_daily_volume_has_no_hour_check(self, session, site):
        add_daily_volumes(session, SITE_ID, TUESDAY, [0, 0], direction='north')
        session.commit()

        assert _checker(session).check(VolumeCount) == []

    def test_tables_without_checks(self, session, site):
        session.add(SpeedCount(
            recordnum=SITE_ID, count_date=TUESDAY, count_time=time(8, 0),
            direction='north', lane=1, s1=0, total=0,
        ))
        session.commit()

        assert _checker(session).check(SpeedCount) == []

    def test_site_without_rows(self, session, site):
        assert _checker(session).check(ClassCount) == []


class TestBicycleChecks:

    @pytest.fixture
    def two_way_counter(self, session, site):
        site.indir, site.outdir, site.cntdir = 'east', 'west', 'both'
        session.commit()
        return site

    def test_lopsided_two_way_counter(self, session, two_way_counter):
        add_in_out_day(session, BicycleCount, SITE_ID, TUESDAY, incount=3, outcount=1)
        session.commit()

        warnings = _checker(session).check(BicycleCount)

        assert warnings == [
            "Abnormal direction proportions: west has 25.0% of total, east has 75.0%. "
            "(Expectation is that proportions are no less/more than 40%/60%.)"
        ]

    def test_one_way_counter_skips_proportions(self, session, two_way_counter):
        two_way_counter.cntdir = 'east'
        session.commit()
        add_in_out_day(session, BicycleCount, SITE_ID, TUESDAY, incount=3, outcount=1)
        session.commit()

        assert _checker(session).check(BicycleCount) == []

    def test_excessive_bicycles_and_zero_hours(self, session, two_way_counter):
        add_in_out_day(session, BicycleCount, SITE_ID, TUESDAY, incount=21, outcount=0, start_hour=8, end_hour=9)
        add_in_out_day(session, BicycleCount, SITE_ID, TUESDAY, incount=21, outcount=0, start_hour=9, end_hour=10)
        session.commit()

        warnings = _checker(session).check(BicycleCount)

        assert warnings[0].startswith("Abnormal direction proportions: west has 0.0% of total")
        assert warnings[1] == (
            "Consecutive periods between the hours of 4:00 and 22:00 with zero volumes "
            "(west, from 2024-07-09 08:00)."
        )
        assert warnings[2].startswith(
            "Found more than 20 bicycles counted in the following periods: 2024-07-09 08:00: 21 (east);"
        )
        assert len(warnings) == 3
