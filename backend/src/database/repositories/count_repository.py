"""
Repository: Count Records
Natural-key lookups and window queries over the count tables.
"""

from datetime import date
from typing import Optional, List, Dict, Tuple, Iterable, Type
from sqlalchemy.orm import Session
from sqlalchemy import select, and_

from models.base import Base


class CountRepository:
    """
    Repository for one count model (any of COUNT_MODELS).

    The model's NATURAL_KEY attribute names drive every key lookup.
    """

    def __init__(self, session: Session, model: Type[Base]):
        self.session = session
        self.model = model

    def natural_key_of(self, record) -> Tuple:
        """Natural key tuple of an ORM row or a row mapping."""
        if isinstance(record, dict):
            return tuple(record[name] for name in self.model.NATURAL_KEY)
        return tuple(getattr(record, name) for name in self.model.NATURAL_KEY)

    def get_many_by_natural_key(self, keys: Iterable[Tuple]) -> Dict[Tuple, Base]:
        """
        Fetch stored rows for many natural keys in one round trip per site.

        Returns:
            Dict of natural key -> stored row (missing keys are absent)
        """
        wanted = set(keys)
        if not wanted:
            return {}

        # Narrow on recordnum + date, then match the full key in Python
        recordnums = {key[0] for key in wanted}
        dates = {key[1] for key in wanted}
        stmt = select(self.model).where(
            and_(
                self.model.recordnum.in_(sorted(recordnums)),
                self.model.count_date.in_(sorted(dates))
            )
        )
        found = {}
        for row in self.session.execute(stmt).scalars():
            key = self.natural_key_of(row)
            if key in wanted:
                found[key] = row
        return found

    def add_many(self, values_list: List[Dict]) -> List[Base]:
        """Insert rows in one flush; ids are assigned in list order."""
        rows = [self.model(**values) for values in values_list]
        self.session.add_all(rows)
        self.session.flush()
        return rows

    def get_for_window(
        self,
        recordnum: int,
        start: date,
        end: date,
        direction: Optional[str] = None
    ) -> List[Base]:
        """
        Rows for a site between start and end (inclusive).

        Args:
            direction: Canonical count direction, or None for every direction
        """
        conditions = [
            self.model.recordnum == recordnum,
            self.model.count_date >= start,
            self.model.count_date <= end,
        ]
        if direction is not None:
            conditions.append(self.model.direction == direction)

        stmt = select(self.model).where(and_(*conditions)).order_by(self.model.id)
        return self.session.execute(stmt).scalars().all()

    def directions_for_window(self, recordnum: int, start: date, end: date) -> List[str]:
        """Distinct directions present for a site in the window."""
        stmt = select(self.model.direction).where(
            and_(
                self.model.recordnum == recordnum,
                self.model.count_date >= start,
                self.model.count_date <= end,
            )
        ).distinct()
        return sorted(self.session.execute(stmt).scalars().all())

    def get_for_site(self, recordnum: int) -> List[Base]:
        """Every row for a site, oldest first."""
        stmt = select(self.model).where(self.model.recordnum == recordnum).order_by(self.model.id)
        return self.session.execute(stmt).scalars().all()
