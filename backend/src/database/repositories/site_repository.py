"""
Repository: Site Header
Lookups for count sites, municipalities and counter types.
"""

from typing import Optional, List, Iterable
from sqlalchemy.orm import Session
from sqlalchemy import select

from models.orm_site import SiteHeader, Municipality, CounterType


class SiteRepository:
    """Repository for SiteHeader and its lookup tables."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, recordnum: int) -> Optional[SiteHeader]:
        """Get a site header by recordnum."""
        return self.session.get(SiteHeader, recordnum)

    def list_all(self, recordnums: Optional[Iterable[int]] = None) -> List[SiteHeader]:
        """List site headers, optionally restricted to the given recordnums."""
        stmt = select(SiteHeader).order_by(SiteHeader.recordnum)
        if recordnums is not None:
            stmt = stmt.where(SiteHeader.recordnum.in_(list(recordnums)))
        return self.session.execute(stmt).scalars().all()

    def get_municipality(self, mcd: str) -> Optional[Municipality]:
        """Get a municipality by mcd code."""
        return self.session.get(Municipality, mcd)

    def list_municipalities(self) -> List[Municipality]:
        stmt = select(Municipality).order_by(Municipality.mcd)
        return self.session.execute(stmt).scalars().all()

    def list_counter_types(self) -> List[CounterType]:
        stmt = select(CounterType).order_by(CounterType.counttype)
        return self.session.execute(stmt).scalars().all()
