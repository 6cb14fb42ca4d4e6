"""
Repository: Seasonal Factors
Factor table reads (tc_factor, tc_bikefactor, tc_pedfactor), loaded whole so a run works from one snapshot.
"""

from typing import Optional, List, Dict, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select

from models.orm_factor import SeasonalFactor, BicycleFactor, PedestrianFactor

# (factor_set, fc, year, month, day_of_week)
FactorKey = Tuple[str, int, int, int, int]


class FactorRepository:
    """Repository for SeasonalFactor reads and seeding."""

    def __init__(self, session: Session):
        self.session = session

    def load_all(self) -> Dict[FactorKey, SeasonalFactor]:
        """Every factor row keyed by its slot."""
        stmt = select(SeasonalFactor)
        return {
            (f.factor_set, f.fc, f.year, f.month, f.day_of_week): f
            for f in self.session.execute(stmt).scalars()
        }

    def load_bicycle_factors(self) -> Dict[Tuple[str, int, int, int], Optional[float]]:
        """(group, year, month, day_of_week) -> bicycle factor."""
        stmt = select(BicycleFactor)
        return {
            (f.group, f.year, f.month, f.day_of_week): f.factor
            for f in self.session.execute(stmt).scalars()
        }

    def load_pedestrian_factors(self) -> Dict[int, Optional[float]]:
        """month -> pedestrian factor."""
        stmt = select(PedestrianFactor)
        return {f.month: f.factor for f in self.session.execute(stmt).scalars()}

    def get(
        self,
        factor_set: str,
        fc: int,
        year: int,
        month: int,
        day_of_week: int
    ) -> Optional[SeasonalFactor]:
        stmt = select(SeasonalFactor).where(
            SeasonalFactor.factor_set == factor_set,
            SeasonalFactor.fc == fc,
            SeasonalFactor.year == year,
            SeasonalFactor.month == month,
            SeasonalFactor.day_of_week == day_of_week,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_sets(self) -> List[str]:
        """Distinct factor set names present in the table."""
        stmt = select(SeasonalFactor.factor_set).distinct().order_by(SeasonalFactor.factor_set)
        return self.session.execute(stmt).scalars().all()

    def add(
        self,
        factor_set: str,
        fc: int,
        year: int,
        month: int,
        day_of_week: int,
        volume_factor: Optional[float] = None,
        axle_factor: Optional[float] = None
    ) -> SeasonalFactor:
        factor = SeasonalFactor(
            factor_set=factor_set,
            fc=fc,
            year=year,
            month=month,
            day_of_week=day_of_week,
            volume_factor=volume_factor,
            axle_factor=axle_factor,
        )
        self.session.add(factor)
        self.session.flush()
        return factor
