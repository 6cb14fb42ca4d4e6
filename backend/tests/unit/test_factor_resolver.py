"""
Unit Tests: Factor Resolver
Tests factor-source selection, override fallback and missing factors.
"""

import pytest
from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from processor.factor_resolver import (
    FactorResolver,
    FactorMetric,
    DefaultFactorSource,
    OverrideFactorSource,
    UnknownMunicipalityError,
    MissingFactorError,
)
from models.orm_factor import FactorSet

# Tuesday 2024-07-09 -> day_of_week 3
TUESDAY = date(2024, 7, 9)


def _factor(volume, axle):
    return SimpleNamespace(volume_factor=volume, axle_factor=axle)


def _municipality(mcd, volume_override=None, axle_override=None):
    return SimpleNamespace(mcd=mcd, volume_factor_override=volume_override, axle_factor_override=axle_override)


class TestFactorResolver:
    """Tests for FactorResolver with mocked repositories."""

    @pytest.fixture
    def factor_rows(self):
        return {
            (FactorSet.PENNSYLVANIA, 14, 2024, 7, 3): _factor(0.863, 0.976),
            (FactorSet.NEW_JERSEY, 14, 2024, 7, 3): _factor(0.95, 0.99),
            (FactorSet.NEW_JERSEY_REGION4, 14, 2024, 7, 3): _factor(1.05, None),
        }

    @pytest.fixture
    def municipalities(self):
        return [
            _municipality('4210100000'),
            _municipality('3400100000'),
            _municipality('3401500000', volume_override=FactorSet.NEW_JERSEY_REGION4),
            _municipality('3402100000', axle_override=FactorSet.NEW_JERSEY_REGION4),
            _municipality('3601000000'),
        ]

    @pytest.fixture
    def repos(self, factor_rows, municipalities):
        """Patch the repositories the resolver snapshots from."""
        with patch('processor.factor_resolver.FactorRepository') as factor_repo_cls, \
                patch('processor.factor_resolver.SiteRepository') as site_repo_cls:
            factor_repo_cls.return_value.load_all.return_value = factor_rows
            factor_repo_cls.return_value.load_bicycle_factors.return_value = {
                ('Group 1', 2024, 7, 3): 0.8,
                ('Group 2', 2024, 7, 3): None,
            }
            factor_repo_cls.return_value.load_pedestrian_factors.return_value = {7: 1.1, 8: None}
            site_repo = site_repo_cls.return_value
            site_repo.list_municipalities.return_value = municipalities
            site_repo.list_counter_types.return_value = [
                SimpleNamespace(counttype='Pedestrian', equipment_factor=1.0622),
                SimpleNamespace(counttype='Volume', equipment_factor=None),
            ]
            yield factor_repo_cls, site_repo_cls

    @pytest.fixture
    def resolver(self, repos):
        return FactorResolver(MagicMock())

    def test_pennsylvania_default(self, resolver):
        assert resolver.source_for('4210100000', FactorMetric.VOLUME) == DefaultFactorSource(FactorSet.PENNSYLVANIA)
        assert resolver.resolve('4210100000', FactorMetric.VOLUME, 14, TUESDAY) == pytest.approx(0.863)
        assert resolver.resolve('4210100000', FactorMetric.AXLE, 14, TUESDAY) == pytest.approx(0.976)

    def test_new_jersey_default(self, resolver):
        assert resolver.source_for('3400100000', FactorMetric.AXLE) == DefaultFactorSource(FactorSet.NEW_JERSEY)
        assert resolver.resolve('3400100000', 'volume', 14, TUESDAY) == pytest.approx(0.95)

    def test_override_wins_for_its_metric(self, resolver):
        assert resolver.source_for('3401500000', FactorMetric.VOLUME) == OverrideFactorSource(FactorSet.NEW_JERSEY_REGION4)
        assert resolver.resolve('3401500000', FactorMetric.VOLUME, 14, TUESDAY) == pytest.approx(1.05)

    def test_no_axle_override_uses_default(self, resolver):
        """Each metric falls back independently; a volume override does not redirect axle."""
        assert resolver.source_for('3401500000', FactorMetric.AXLE) == DefaultFactorSource(FactorSet.NEW_JERSEY)
        assert resolver.resolve('3401500000', FactorMetric.AXLE, 14, TUESDAY) == pytest.approx(0.99)

    def test_unknown_mcd(self, resolver):
        with pytest.raises(UnknownMunicipalityError):
            resolver.resolve('9999999999', FactorMetric.VOLUME, 14, TUESDAY)

    def test_missing_mcd(self, resolver):
        with pytest.raises(UnknownMunicipalityError):
            resolver.source_for(None, FactorMetric.VOLUME)

    def test_unknown_state_prefix(self, resolver):
        """36 (New York) has no default factor set."""
        with pytest.raises(UnknownMunicipalityError, match="state prefix"):
            resolver.source_for('3601000000', FactorMetric.VOLUME)

    def test_missing_factor_row(self, resolver):
        with pytest.raises(MissingFactorError):
            resolver.resolve('4210100000', FactorMetric.VOLUME, 14, date(2024, 7, 10))

    def test_missing_factor_class(self, resolver):
        with pytest.raises(MissingFactorError):
            resolver.resolve('4210100000', FactorMetric.VOLUME, None, TUESDAY)

    def test_null_factor_value(self, resolver):
        """An override set whose axle value is NULL is a missing factor, not a fallback."""
        with pytest.raises(MissingFactorError, match="axle"):
            resolver.resolve('3402100000', FactorMetric.AXLE, 14, TUESDAY)

    def test_equipment_factor(self, resolver):
        assert resolver.equipment_factor('Pedestrian') == pytest.approx(1.0622)
        assert resolver.equipment_factor('Volume') is None
        assert resolver.equipment_factor('Unknown') is None
        assert resolver.equipment_factor(None) is None

    def test_snapshot_loaded_once(self, repos, resolver):
        """Resolving many days never re-reads the tables."""
        factor_repo_cls, _ = repos
        for _ in range(5):
            resolver.resolve('4210100000', FactorMetric.VOLUME, 14, TUESDAY)

        assert factor_repo_cls.return_value.load_all.call_count == 1

    def test_source_resolved_once_per_municipality(self, resolver):
        first = resolver.source_for('3401500000', FactorMetric.VOLUME)
        second = resolver.source_for('3401500000', FactorMetric.VOLUME)

        assert first is second

    def test_bicycle_factor(self, resolver):
        assert resolver.bicycle_factor('Group 1', TUESDAY) == pytest.approx(0.8)

    def test_bicycle_factor_needs_a_group(self, resolver):
        with pytest.raises(MissingFactorError, match="bike/ped group"):
            resolver.bicycle_factor(None, TUESDAY)

    def test_bicycle_factor_missing_or_null(self, resolver):
        with pytest.raises(MissingFactorError, match="day of week 4"):
            resolver.bicycle_factor('Group 1', date(2024, 7, 10))
        with pytest.raises(MissingFactorError):
            resolver.bicycle_factor('Group 2', TUESDAY)

    def test_pedestrian_factor_by_month(self, resolver):
        assert resolver.pedestrian_factor(TUESDAY) == pytest.approx(1.1)
        with pytest.raises(MissingFactorError, match="month 8"):
            resolver.pedestrian_factor(date(2024, 8, 6))
        with pytest.raises(MissingFactorError, match="month 9"):
            resolver.pedestrian_factor(date(2024, 9, 3))
