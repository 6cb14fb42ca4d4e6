"""
SQLAlchemy ORM Models: Site Header, Municipality, Counter Type
Count site master data and the lookups the AADV factors hang off.
"""

from sqlalchemy import String, Integer, Float, Date, CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from models.base import Base
from datetime import date
from typing import Optional
import enum


class Direction(str, enum.Enum):
    """Canonical direction values stored in every direction column."""
    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"
    BOTH = "both"


class YesNo(str, enum.Enum):
    """Canonical yes/no flag values."""
    YES = "Y"
    NO = "N"


# Directions a count record can carry (header traffic/count direction may also be 'both')
COUNT_DIRECTIONS = ('north', 'east', 'south', 'west')
HEADER_DIRECTIONS = COUNT_DIRECTIONS + ('both',)


class Municipality(Base):
    """
    Minor civil division (municipality).

    The mcd code's two-digit state prefix picks the default factor set
    (42 = Pennsylvania, 34 = New Jersey). A non-null override names the
    factor set used instead, per metric.
    """
    __tablename__ = "tc_mcd"
    __table_args__ = {'extend_existing': True}

    mcd: Mapped[str] = mapped_column(String(10), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(100))
    volume_factor_override: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Factor set used for volume factors instead of the state default"
    )
    axle_factor_override: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Factor set used for axle factors instead of the state default"
    )

    def __repr__(self) -> str:
        return f"<Municipality(mcd='{self.mcd}', name='{self.name}')>"


class CounterType(Base):
    """Counter/equipment type, with an optional equipment correction factor."""
    __tablename__ = "tc_counttype"
    __table_args__ = {'extend_existing': True}

    counttype: Mapped[str] = mapped_column(String(50), primary_key=True)
    equipment_factor: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Multiplies every factored day total when present (e.g. Pedestrian 1.0622)"
    )


class SiteHeader(Base):
    """
    One row per count site (recordnum).

    The aadv column is a cached projection of the latest overall row in
    the aadv table; it is only written alongside a new AadvResult.
    """
    __tablename__ = "tc_header"

    recordnum: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Location
    road: Mapped[Optional[str]] = mapped_column(String(100))
    fromlmt: Mapped[Optional[str]] = mapped_column(String(100))
    tolmt: Mapped[Optional[str]] = mapped_column(String(100))
    mcd: Mapped[Optional[str]] = mapped_column(String(10), ForeignKey("tc_mcd.mcd"))

    # Directions
    indir: Mapped[Optional[str]] = mapped_column(String(10))
    outdir: Mapped[Optional[str]] = mapped_column(String(10))
    sidewalk: Mapped[Optional[str]] = mapped_column(String(10))
    trafdir: Mapped[Optional[str]] = mapped_column(String(10))
    cntdir: Mapped[Optional[str]] = mapped_column(String(10))

    # Count description
    count_type: Mapped[Optional[str]] = mapped_column("type", String(50), ForeignKey("tc_counttype.counttype"))
    fc: Mapped[Optional[int]] = mapped_column(
        Integer,
        comment="Road functional classification; keys the seasonal factor table"
    )
    bikepedgroup: Mapped[Optional[str]] = mapped_column(
        String(50),
        comment="Bicycle factor group; keys tc_bikefactor"
    )

    # Y/N flags
    source: Mapped[Optional[str]] = mapped_column(String(10))
    divided: Mapped[Optional[str]] = mapped_column(String(10))
    hpms: Mapped[Optional[str]] = mapped_column(String(10))

    # Cached latest overall AADV
    aadv: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    createheaderdate: Mapped[Optional[date]] = mapped_column(Date)

    __table_args__ = (
        CheckConstraint(
            f"trafdir in {HEADER_DIRECTIONS}",
            name="trafdir_tc_header"
        ),
        CheckConstraint(
            f"cntdir in {HEADER_DIRECTIONS}",
            name="cntdir_tc_header"
        ),
        {'extend_existing': True}
    )

    municipality: Mapped[Optional["Municipality"]] = relationship("Municipality")
    counter_type: Mapped[Optional["CounterType"]] = relationship("CounterType")

    def __repr__(self) -> str:
        return f"<SiteHeader(recordnum={self.recordnum}, type='{self.count_type}', mcd='{self.mcd}')>"
