"""
SQLAlchemy ORM Models: Correction Factors
Seasonal (volume) and axle correction factors by factor set, functional class,
year, month and day of week, plus the bicycle and pedestrian seasonal factors.
"""

from sqlalchemy import Integer, String, Float, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from typing import Optional


class FactorSet:
    """Names of the factor families shipped with the system."""
    PENNSYLVANIA = "PA"
    NEW_JERSEY = "NJ"
    NEW_JERSEY_REGION4 = "NJ_REGION4"


class SeasonalFactor(Base):
    """
    One factor row per (factor_set, fc, year, month, day_of_week).

    day_of_week runs 1-7 with Sunday = 1. Either factor may be NULL when the
    published table has no value for that slot.
    """
    __tablename__ = "tc_factor"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    factor_set: Mapped[str] = mapped_column(String(100), nullable=False)
    fc: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)

    volume_factor: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    axle_factor: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint('factor_set', 'fc', 'year', 'month', 'day_of_week', name='unique_factor_slot'),
        CheckConstraint('month >= 1 AND month <= 12', name='factor_month_valid'),
        CheckConstraint('day_of_week >= 1 AND day_of_week <= 7', name='factor_day_of_week_valid'),
        {'extend_existing': True}
    )

    def __repr__(self) -> str:
        return (
            f"<SeasonalFactor(set='{self.factor_set}', fc={self.fc}, {self.year}-{self.month:02d}, "
            f"dow={self.day_of_week}, volume={self.volume_factor}, axle={self.axle_factor})>"
        )


class BicycleFactor(Base):
    """
    Bicycle seasonal factor per (bike/ped group, year, month, day_of_week).

    The group comes from tc_header.bikepedgroup; day_of_week runs 1-7 with
    Sunday = 1, as in tc_factor.
    """
    __tablename__ = "tc_bikefactor"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group: Mapped[str] = mapped_column("type", String(50), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column("monthnum", Integer, nullable=False)
    day_of_week: Mapped[int] = mapped_column("dayofweeknum", Integer, nullable=False)
    factor: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint('type', 'year', 'monthnum', 'dayofweeknum', name='unique_bikefactor_slot'),
        CheckConstraint('monthnum >= 1 AND monthnum <= 12', name='bikefactor_month_valid'),
        CheckConstraint('dayofweeknum >= 1 AND dayofweeknum <= 7', name='bikefactor_day_of_week_valid'),
    )


class PedestrianFactor(Base):
    """Pedestrian seasonal factor; one value per calendar month."""
    __tablename__ = "tc_pedfactor"

    month: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    factor: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        CheckConstraint('month >= 1 AND month <= 12', name='pedfactor_month_valid'),
    )
