"""
Repository: Import Log
Append-only audit entries for import and AADV runs.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Session
from sqlalchemy import select

from models.orm_import_log import ImportLogEntry


class ImportLogRepository:
    """Repository for ImportLogEntry."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        recordnum: int,
        message: str,
        log_level: str,
        logged_at: datetime
    ) -> ImportLogEntry:
        """Append one entry."""
        entry = ImportLogEntry(
            recordnum=recordnum,
            message=message,
            log_level=log_level,
            logged_at=logged_at,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def get_by_site(
        self,
        recordnum: int,
        log_level: Optional[str] = None,
        limit: int = 1000
    ) -> List[ImportLogEntry]:
        """Entries for a site in insertion order, optionally filtered by level."""
        stmt = select(ImportLogEntry).where(ImportLogEntry.recordnum == recordnum)
        if log_level:
            stmt = stmt.where(ImportLogEntry.log_level == log_level)
        stmt = stmt.order_by(ImportLogEntry.id).limit(limit)
        return self.session.execute(stmt).scalars().all()
