"""
Integration Tests: Batch Runs and Scripts
Concurrent per-site runs through BatchRunner and the script entry points,
each site in its own session against a shared SQLite file.
"""

import pytest
from datetime import date

from models import SiteHeader, AadvResult, ImportLogEntry, FifteenMinuteVolumeCount
from database.repositories.excluded_day_repository import ExcludedDayRepository
from database.repositories.import_log_repository import ImportLogRepository
from processor.aadv_aggregator import CountWindow, InsufficientDataError, UnknownSiteError
from processor.batch_runner import BatchRunner, build_aadv_jobs
from scripts.compute_aadv import run_aadv, _summarize
from scripts.clean_site_headers import clean_headers
from scripts.import_counts import import_counts, group_by_site
from importer.identity_resolver import ReimportPolicy
from tests.conftest import (
    add_site, add_daily_volumes, SITE_ID, OTHER_SITE_ID, NJ_MCD, PA_MCD,
)

JULY = CountWindow(date(2024, 7, 1), date(2024, 7, 31))
TUESDAY = date(2024, 7, 9)
NEXT_TUESDAY = date(2024, 7, 16)


def _aadv_values(results):
    return {
        r.site_id: {direction: outcome.aadv for direction, outcome in r.value.items()}
        for r in results
    }


@pytest.fixture
def two_sites(session, sample_reference_data):
    add_site(session, SITE_ID, NJ_MCD, 'Pedestrian')
    add_site(session, OTHER_SITE_ID, PA_MCD, 'Volume')
    add_daily_volumes(session, SITE_ID, TUESDAY, [100, 120, 110], direction='north')
    add_daily_volumes(session, OTHER_SITE_ID, NEXT_TUESDAY, [200, 220], direction='east')
    add_daily_volumes(session, OTHER_SITE_ID, NEXT_TUESDAY, [180, 200], direction='west')
    session.commit()


class TestConcurrentAadv:

    def test_parallel_matches_sequential(self, session_factory, two_sites):
        sequential = run_aadv([SITE_ID, OTHER_SITE_ID], JULY, workers=1, session_factory=session_factory)
        parallel = run_aadv([SITE_ID, OTHER_SITE_ID], JULY, workers=2, session_factory=session_factory)

        assert all(r.succeeded for r in sequential + parallel)
        assert _aadv_values(parallel) == _aadv_values(sequential)
        assert _aadv_values(parallel) == {
            SITE_ID: {None: 117, 'north': 117},
            # PA: volume 1.0 x axle 0.9
            OTHER_SITE_ID: {None: 360, 'east': 189, 'west': 171},
        }

    def test_header_cache_committed_per_site(self, session_factory, session, two_sites):
        run_aadv(None, JULY, workers=2, session_factory=session_factory)

        session.expire_all()
        assert session.get(SiteHeader, SITE_ID).aadv == 117
        assert session.get(SiteHeader, OTHER_SITE_ID).aadv == 360
        assert session.query(AadvResult).count() == 5

    def test_single_direction(self, session_factory, two_sites):
        results = run_aadv([OTHER_SITE_ID], JULY, direction='west', session_factory=session_factory)

        assert results[0].value.aadv == 171
        assert results[0].value.direction == 'west'

    def test_failing_site_does_not_stop_others(self, session_factory, session, two_sites):
        ExcludedDayRepository(session).add(TUESDAY, reason='Detector fault', client='PennDot')
        ExcludedDayRepository(session).add(date(2024, 7, 10), reason='Detector fault', client='PennDot')
        ExcludedDayRepository(session).add(date(2024, 7, 11), reason='Detector fault', client='PennDot')
        session.commit()

        results = run_aadv([SITE_ID, OTHER_SITE_ID, 424242], JULY, client='PennDot', session_factory=session_factory)

        by_site = {r.site_id: r for r in results}
        assert isinstance(by_site[SITE_ID].value[None], InsufficientDataError)
        assert by_site[OTHER_SITE_ID].succeeded
        assert isinstance(by_site[424242].value[None], UnknownSiteError)
        assert _summarize(results) == 3

        session.expire_all()
        errors = ImportLogRepository(session).get_by_site(SITE_ID, log_level='error')
        assert len(errors) == 2
        assert session.get(SiteHeader, OTHER_SITE_ID).aadv == 360

    def test_snapshot_taken_once(self, session_factory, session, two_sites):
        jobs = build_aadv_jobs(session_factory, [SITE_ID], JULY)
        ExcludedDayRepository(session).add(TUESDAY, reason='Added after the snapshot')
        session.commit()

        results = BatchRunner(session_factory, max_workers=1).run(jobs)

        assert results[0].value[None].aadv == 117


class TestImportCountsScript:

    def _rows(self, site_id, volume):
        return [
            {'recordnum': str(site_id), 'count_date': '2024-07-09', 'count_time': '08:00',
             'direction': 'E', 'lane': '1', 'volume': str(volume)},
            {'recordnum': str(site_id), 'count_date': '2024-07-09', 'count_time': '08:15',
             'direction': 'E', 'lane': '1', 'volume': str(volume)},
        ]

    def test_group_by_site(self):
        rows = self._rows(SITE_ID, 1) + [{'recordnum': ''}] + self._rows(OTHER_SITE_ID, 2)

        batches = group_by_site(rows)

        assert sorted(batches) == [SITE_ID, OTHER_SITE_ID]
        assert len(batches[SITE_ID]) == 2

    def test_import_twice_is_idempotent(self, session_factory, session, two_sites):
        rows = self._rows(SITE_ID, 4) + self._rows(OTHER_SITE_ID, 6)

        first = import_counts('15min', rows, workers=2, session_factory=session_factory)
        second = import_counts('15min', rows, policy=ReimportPolicy.IGNORE, workers=2,
                               session_factory=session_factory)

        assert [r.value.created for r in first] == [2, 2]
        assert [r.value.created for r in second] == [0, 0]
        assert session.query(FifteenMinuteVolumeCount).count() == 4

    def test_import_summary_logged(self, session_factory, session, two_sites):
        import_counts('15min', self._rows(SITE_ID, 4), session_factory=session_factory)

        entries = ImportLogRepository(session).get_by_site(SITE_ID)
        assert [e.message for e in entries] == [
            "tc_15minvolcount direction: 'E' -> 'east' (2 rows)",
            'tc_15minvolcount: 2 rows created, 0 updated, 0 unchanged',
        ]

    def _zero_hours(self, site_id):
        """Zero-volume bins at 08:00 and 09:00."""
        later = [dict(row, count_time=t) for row, t in zip(self._rows(site_id, 0), ('09:00', '09:15'))]
        return self._rows(site_id, 0) + later

    def test_data_check_warnings_logged(self, session_factory, session, two_sites):
        import_counts('15min', self._zero_hours(SITE_ID), session_factory=session_factory)

        warnings = ImportLogRepository(session).get_by_site(SITE_ID, log_level='warning')
        assert [e.message for e in warnings] == [
            'tc_15minvolcount: Consecutive periods between the hours of 4:00 and 22:00 '
            'with zero volumes (east, from 2024-07-09 08:00).'
        ]

    def test_data_checks_can_be_skipped(self, session_factory, session, two_sites):
        import_counts('15min', self._zero_hours(SITE_ID), session_factory=session_factory, run_checks=False)

        assert ImportLogRepository(session).get_by_site(SITE_ID, log_level='warning') == []


class TestCleanSiteHeadersScript:

    @pytest.fixture
    def messy_header(self, session, sample_reference_data):
        header = add_site(session, SITE_ID, NJ_MCD, 'Volume')
        header.indir = 'N'
        header.outdir = 'upriver'
        header.sidewalk = '25'
        header.hpms = '-1'
        header.trafdir = 'both'
        session.commit()
        return header

    def test_fixes_saved_and_reported(self, session_factory, session, messy_header):
        fixed = clean_headers(session_factory=session_factory)

        assert sorted(fix.field for fix in fixed[SITE_ID]) == ['hpms', 'indir', 'sidewalk']

        session.expire_all()
        header = session.get(SiteHeader, SITE_ID)
        assert (header.indir, header.outdir, header.sidewalk, header.hpms, header.trafdir) == (
            'north', 'upriver', None, 'Y', 'both'
        )
        levels = [e.log_level for e in ImportLogRepository(session).get_by_site(SITE_ID)]
        assert levels == ['info', 'warning', 'warning', 'info']

    def test_dry_run_changes_nothing(self, session_factory, session, messy_header):
        fixed = clean_headers([SITE_ID], dry_run=True, session_factory=session_factory)

        assert len(fixed[SITE_ID]) == 3
        session.expire_all()
        assert session.get(SiteHeader, SITE_ID).indir == 'N'
        assert session.query(ImportLogEntry).count() == 0

    def test_second_pass_finds_nothing(self, session_factory, messy_header):
        clean_headers(session_factory=session_factory)

        assert clean_headers(session_factory=session_factory) == {}
