"""
Repository: Excluded Days
Dates left out of AADV averaging, unscoped or per client.
"""

from datetime import date
from typing import Optional, List
from sqlalchemy.orm import Session
from sqlalchemy import select, or_

from models.orm_excluded_day import ExcludedDay


class DuplicateExcludedDayError(Exception):
    """Raised when a date is already excluded for the same client scope."""
    pass


class ExcludedDayRepository:
    """Repository for ExcludedDay rows."""

    def __init__(self, session: Session):
        self.session = session

    def find(self, excluded_day: date, client: Optional[str] = None) -> Optional[ExcludedDay]:
        """The exclusion row for exactly this (date, scope), if any."""
        stmt = select(ExcludedDay).where(ExcludedDay.excluded_day == excluded_day)
        if client is None:
            stmt = stmt.where(ExcludedDay.client.is_(None))
        else:
            stmt = stmt.where(ExcludedDay.client == client)
        return self.session.execute(stmt).scalars().first()

    def add(self, excluded_day: date, reason: Optional[str] = None, client: Optional[str] = None) -> ExcludedDay:
        """
        Exclude a date.

        Raises:
            DuplicateExcludedDayError: The date is already excluded for this scope
                (NULL-client rows included)
        """
        if self.find(excluded_day, client) is not None:
            raise DuplicateExcludedDayError(
                f"{excluded_day} is already excluded for client {client!r}"
            )

        row = ExcludedDay(excluded_day=excluded_day, reason=reason, client=client)
        self.session.add(row)
        self.session.flush()
        return row

    def list_for_scope(self, client: Optional[str] = None) -> List[ExcludedDay]:
        """Unscoped rows plus, when a client is given, that client's rows."""
        condition = ExcludedDay.client.is_(None)
        if client is not None:
            condition = or_(condition, ExcludedDay.client == client)
        stmt = select(ExcludedDay).where(condition).order_by(ExcludedDay.excluded_day)
        return self.session.execute(stmt).scalars().all()

    def list_all(self) -> List[ExcludedDay]:
        stmt = select(ExcludedDay).order_by(ExcludedDay.excluded_day, ExcludedDay.id)
        return self.session.execute(stmt).scalars().all()
