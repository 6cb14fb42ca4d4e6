"""
Traffic Counts - Exclusion Filter
Snapshot of the excluded-day set for one AADV run.
"""

from datetime import date
from typing import Optional, Dict, Tuple

from sqlalchemy.orm import Session

from utils.logger import logger
from database.repositories.excluded_day_repository import ExcludedDayRepository


class ExclusionFilter:
    """
    Answers "is this day excluded?" from an in-memory snapshot.

    Unscoped days (client NULL) are always excluded; client-scoped days
    are excluded only when that client scope is asked for. A scope adds
    exclusions, it never removes unscoped ones.
    """

    def __init__(self, exclusions: Dict[Tuple[date, Optional[str]], Optional[str]], client_scope: Optional[str] = None):
        """
        Args:
            exclusions: (excluded_day, client) -> reason
            client_scope: Default scope for is_excluded()
        """
        self._exclusions = dict(exclusions)
        self.client_scope = client_scope

    @classmethod
    def load(cls, session: Session, client_scope: Optional[str] = None) -> "ExclusionFilter":
        """Snapshot every excluded day; client_scope becomes the default scope."""
        rows = ExcludedDayRepository(session).list_all()
        exclusions = {(row.excluded_day, row.client): row.reason for row in rows}
        logger.debug(f"Loaded {len(exclusions)} excluded days (client scope: {client_scope or 'none'})")
        return cls(exclusions, client_scope)

    def _scope(self, client_scope: Optional[str]) -> Optional[str]:
        return client_scope if client_scope is not None else self.client_scope

    def is_excluded(self, day: date, client_scope: Optional[str] = None) -> bool:
        if (day, None) in self._exclusions:
            return True
        scope = self._scope(client_scope)
        return scope is not None and (day, scope) in self._exclusions

    def reason_for(self, day: date, client_scope: Optional[str] = None) -> Optional[str]:
        """Recorded reason (unscoped first), or None when the day is not excluded."""
        if (day, None) in self._exclusions:
            return self._exclusions[(day, None)]
        scope = self._scope(client_scope)
        if scope is not None:
            return self._exclusions.get((day, scope))
        return None

    def __len__(self) -> int:
        return len(self._exclusions)
