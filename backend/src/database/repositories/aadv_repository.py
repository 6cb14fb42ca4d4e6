"""
Repository: AADV Results
Append-only AADV log plus the tc_header.aadv cache projection.
"""

from datetime import date
from typing import Optional, List
from sqlalchemy.orm import Session
from sqlalchemy import select

from models.orm_aadv import AadvResult
from models.orm_site import SiteHeader


class AadvRepository:
    """
    Repository for AadvResult.

    Rows are never updated or deleted. Every insert refreshes the header
    cache in the same transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def insert(
        self,
        recordnum: int,
        aadv: int,
        direction: Optional[str],
        date_calculated: date
    ) -> AadvResult:
        """
        Append a result and refresh tc_header.aadv.

        Returns:
            The new AadvResult (id assigned)
        """
        result = AadvResult(
            recordnum=recordnum,
            aadv=aadv,
            direction=direction,
            date_calculated=date_calculated,
        )
        self.session.add(result)
        self.session.flush()

        self.refresh_header_cache(recordnum)
        return result

    def get_latest(self, recordnum: int, direction: Optional[str] = None) -> Optional[AadvResult]:
        """Latest result by (date_calculated, id) for a direction (None = overall)."""
        stmt = select(AadvResult).where(AadvResult.recordnum == recordnum)
        if direction is None:
            stmt = stmt.where(AadvResult.direction.is_(None))
        else:
            stmt = stmt.where(AadvResult.direction == direction)
        stmt = stmt.order_by(AadvResult.date_calculated.desc(), AadvResult.id.desc()).limit(1)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_site(self, recordnum: int) -> List[AadvResult]:
        stmt = select(AadvResult).where(
            AadvResult.recordnum == recordnum
        ).order_by(AadvResult.date_calculated, AadvResult.id)
        return self.session.execute(stmt).scalars().all()

    def refresh_header_cache(self, recordnum: int) -> Optional[int]:
        """
        Set tc_header.aadv to the latest overall result (NULL when none).

        Directional results never touch the cache.
        """
        latest = self.get_latest(recordnum, direction=None)
        value = latest.aadv if latest is not None else None

        header = self.session.get(SiteHeader, recordnum)
        if header is not None:
            header.aadv = value
            self.session.flush()
        return value
