"""
SQLAlchemy ORM Models: Count Records
Daily volume, 15-minute volume, vehicle classification and speed counts,
plus 15-minute bicycle and pedestrian counter bins.

Every vehicle count table carries a surrogate id plus a hard unique
constraint on its lane-inclusive natural key:
    (recordnum, countdate[, counttime], direction, countlane)
Two directions or two lanes at the same site/date are distinct rows.
Bicycle and pedestrian tables key on (recordnum, countdate, counttime)
and split each bin into incount/outcount.
"""

from sqlalchemy import Integer, String, Date, Time, CheckConstraint, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from models.orm_site import COUNT_DIRECTIONS
from datetime import date, time
from typing import Optional, Tuple


def _count_constraints(table: str, key: Tuple[str, ...]) -> tuple:
    """Direction/lane CHECK constraints and the natural-key UNIQUE constraint for a count table."""
    direction_column = key[-2]
    return (
        CheckConstraint(
            f"{direction_column} in {COUNT_DIRECTIONS}",
            name=f"{direction_column}_{table}"
        ),
        CheckConstraint(
            "countlane >= 1 AND countlane <= 3",
            name=f"countlane_valid_{table}"
        ),
        UniqueConstraint(*key, name=f"unique_natural_key_{table}"),
        Index(f"idx_{table}_recordnum_date", "recordnum", "countdate"),
    )


class VolumeCount(Base):
    """Daily volume, one row per site/date/direction/lane."""
    __tablename__ = "tc_volcount"

    # Natural key attributes, in key order; payload attributes compared on re-import
    NATURAL_KEY = ('recordnum', 'count_date', 'direction', 'lane')
    PAYLOAD = ('volume', 'weather')

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column(Integer, nullable=False)
    count_date: Mapped[date] = mapped_column("countdate", Date, nullable=False)
    direction: Mapped[str] = mapped_column("cntdir", String(10), nullable=False)
    lane: Mapped[int] = mapped_column("countlane", Integer, nullable=False)

    volume: Mapped[Optional[int]] = mapped_column(
        "totalcount",
        Integer,
        nullable=True,
        comment="Day total; NULL means no observation, never zero"
    )
    weather: Mapped[Optional[str]] = mapped_column(String(20))

    __table_args__ = _count_constraints(
        "tc_volcount", ("recordnum", "countdate", "cntdir", "countlane")
    )

    def __repr__(self) -> str:
        return f"<VolumeCount(id={self.id}, recordnum={self.recordnum}, date={self.count_date}, dir={self.direction}, lane={self.lane})>"


class FifteenMinuteVolumeCount(Base):
    """15-minute volume bins."""
    __tablename__ = "tc_15minvolcount"

    NATURAL_KEY = ('recordnum', 'count_date', 'count_time', 'direction', 'lane')
    PAYLOAD = ('volume',)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column(Integer, nullable=False)
    count_date: Mapped[date] = mapped_column("countdate", Date, nullable=False)
    count_time: Mapped[time] = mapped_column("counttime", Time, nullable=False)
    direction: Mapped[str] = mapped_column("cntdir", String(10), nullable=False)
    lane: Mapped[int] = mapped_column("countlane", Integer, nullable=False)

    volume: Mapped[Optional[int]] = mapped_column("volcount", Integer, nullable=True)

    __table_args__ = _count_constraints(
        "tc_15minvolcount", ("recordnum", "countdate", "counttime", "cntdir", "countlane")
    )


class ClassCount(Base):
    """
    Vehicle classification bins (FHWA classes).

    Unclassified vehicles are counted in `unclassified` and also included
    in `cars_and_tlrs`, so `total` is the authoritative bin volume.
    """
    __tablename__ = "tc_clacount"

    NATURAL_KEY = ('recordnum', 'count_date', 'count_time', 'direction', 'lane')
    PAYLOAD = (
        'bikes', 'cars_and_tlrs', 'ax2_long', 'buses', 'ax2_6_tire', 'ax3_single',
        'ax4_single', 'lt_5_ax_double', 'ax5_double', 'gt_5_ax_double',
        'lt_6_ax_multi', 'ax6_multi', 'gt_6_ax_multi', 'unclassified', 'total',
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column(Integer, nullable=False)
    count_date: Mapped[date] = mapped_column("countdate", Date, nullable=False)
    count_time: Mapped[time] = mapped_column("counttime", Time, nullable=False)
    direction: Mapped[str] = mapped_column("ctdir", String(10), nullable=False)
    lane: Mapped[int] = mapped_column("countlane", Integer, nullable=False)

    bikes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 1
    cars_and_tlrs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 2
    ax2_long: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 3
    buses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 4
    ax2_6_tire: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 5
    ax3_single: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 6
    ax4_single: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 7
    lt_5_ax_double: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 8
    ax5_double: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 9
    gt_5_ax_double: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 10
    lt_6_ax_multi: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 11
    ax6_multi: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 12
    gt_6_ax_multi: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 13
    unclassified: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # class 15
    total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = _count_constraints(
        "tc_clacount", ("recordnum", "countdate", "counttime", "ctdir", "countlane")
    )


class SpeedCount(Base):
    """Speed-range bins; s1 = 0-15 mph, then 5 mph ranges up to s14 (> 75 mph)."""
    __tablename__ = "tc_specount"

    NATURAL_KEY = ('recordnum', 'count_date', 'count_time', 'direction', 'lane')
    PAYLOAD = tuple(f"s{i}" for i in range(1, 15)) + ('total',)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column(Integer, nullable=False)
    count_date: Mapped[date] = mapped_column("countdate", Date, nullable=False)
    count_time: Mapped[time] = mapped_column("counttime", Time, nullable=False)
    direction: Mapped[str] = mapped_column("ctdir", String(10), nullable=False)
    lane: Mapped[int] = mapped_column("countlane", Integer, nullable=False)

    s1: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s2: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s3: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s4: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s5: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s6: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s7: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s8: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s9: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s10: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s11: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s12: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s13: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    s14: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = _count_constraints(
        "tc_specount", ("recordnum", "countdate", "counttime", "ctdir", "countlane")
    )


def _in_out_constraints(table: str) -> tuple:
    """Natural-key UNIQUE constraint for a single-counter (in/out) table."""
    return (
        UniqueConstraint("dvrpcnum", "countdate", "counttime", name=f"unique_natural_key_{table}"),
        Index(f"idx_{table}_recordnum_date", "dvrpcnum", "countdate"),
    )


class BicycleCount(Base):
    """
    15-minute bicycle counter bins.

    A bicycle counter has one sensor per site, so rows carry no lane or
    direction: incount/outcount follow tc_header.indir/outdir and total
    covers both.
    """
    __tablename__ = "tc_bikecount"

    NATURAL_KEY = ('recordnum', 'count_date', 'count_time')
    PAYLOAD = ('incount', 'outcount', 'total')

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column("dvrpcnum", Integer, nullable=False)
    count_date: Mapped[date] = mapped_column("countdate", Date, nullable=False)
    count_time: Mapped[time] = mapped_column("counttime", Time, nullable=False)

    incount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    outcount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = _in_out_constraints("tc_bikecount")


class PedestrianCount(Base):
    """15-minute pedestrian counter bins; same in/out layout as BicycleCount."""
    __tablename__ = "tc_pedcount"

    NATURAL_KEY = ('recordnum', 'count_date', 'count_time')
    PAYLOAD = ('incount', 'outcount', 'total')

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column("dvrpcnum", Integer, nullable=False)
    count_date: Mapped[date] = mapped_column("countdate", Date, nullable=False)
    count_time: Mapped[time] = mapped_column("counttime", Time, nullable=False)

    incount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    outcount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = _in_out_constraints("tc_pedcount")


# Lookup used by the import script and the identity resolver tests
COUNT_MODELS = {
    'volume': VolumeCount,
    '15min': FifteenMinuteVolumeCount,
    'class': ClassCount,
    'speed': SpeedCount,
    'bicycle': BicycleCount,
    'pedestrian': PedestrianCount,
}
