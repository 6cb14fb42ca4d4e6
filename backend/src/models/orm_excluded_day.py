"""
SQLAlchemy ORM Model: ExcludedDay
Calendar dates left out of AADV averaging.
"""

from sqlalchemy import Integer, String, Date, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import date
from typing import Optional


class ExcludedDay(Base):
    """
    A date excluded from AADV averaging.

    client = NULL applies to every computation (e.g. US holidays); a
    non-null client (e.g. 'PennDot') only applies when that client scope
    is requested. Uniqueness among NULL-client rows is enforced by
    ExcludedDayRepository.add since SQL treats NULLs as distinct.
    """
    __tablename__ = "aadv_excluded_days"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    excluded_day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    reason: Mapped[Optional[str]] = mapped_column(String(200))
    client: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint('excluded_day', 'client', name='unique_excluded_day_client'),
        {'extend_existing': True}
    )

    def __repr__(self) -> str:
        return f"<ExcludedDay(day={self.excluded_day}, client={self.client!r}, reason={self.reason!r})>"
