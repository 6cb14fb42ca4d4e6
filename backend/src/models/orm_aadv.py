"""
SQLAlchemy ORM Model: AadvResult
Append-only log of computed Annual Average Daily Volume values.
"""

from sqlalchemy import Integer, String, Date, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import date
from typing import Optional


class AadvResult(Base):
    """
    One computed AADV.

    direction = NULL is the all-directions value; the latest such row by
    (date_calculated, id) is mirrored onto tc_header.aadv.
    """
    __tablename__ = "aadv"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column(Integer, ForeignKey("tc_header.recordnum"), nullable=False)
    aadv: Mapped[int] = mapped_column(Integer, nullable=False)
    direction: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    date_calculated: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index('idx_aadv_recordnum_calculated', 'recordnum', 'date_calculated'),
        {'extend_existing': True}
    )

    def __repr__(self) -> str:
        return f"<AadvResult(id={self.id}, recordnum={self.recordnum}, direction={self.direction}, aadv={self.aadv})>"
