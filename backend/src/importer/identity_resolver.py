"""
Identity Resolver for Count Records
Maps count rows to stable surrogate ids by their natural key.

Natural key: (recordnum, count_date[, count_time][, direction, lane]), taken
from the model's NATURAL_KEY. Re-importing a batch never adds rows.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple, Iterable, Any, Type

from sqlalchemy.orm import Session

from models.base import Base
from database.repositories.count_repository import CountRepository

logger = logging.getLogger(__name__)


class DuplicateNaturalKeyError(Exception):
    """Two rows in one batch share a natural key but carry different payloads."""

    def __init__(self, natural_key: Tuple, first_payload: Dict[str, Any], second_payload: Dict[str, Any]):
        self.natural_key = natural_key
        self.first_payload = first_payload
        self.second_payload = second_payload
        super().__init__(
            f"Conflicting rows for natural key {natural_key}: "
            f"{first_payload} vs {second_payload}"
        )


class ReimportPolicy(str, enum.Enum):
    """What to do when a natural key is already stored."""
    UPDATE = "update"   # overwrite the stored payload
    IGNORE = "ignore"   # keep the stored payload


@dataclass
class ResolvedRecord:
    """Result of resolving one unique row."""
    id: int
    natural_key: Tuple
    created: bool
    updated: bool = False


class IdentityResolver:
    """
    Resolves a batch of count rows for one count model.

    Steps per batch:
    1. Collapse identical duplicates (same key, same payload)
    2. Reject conflicting duplicates with DuplicateNaturalKeyError
    3. Look up stored rows for the batch's keys
    4. Return stored ids (updating payloads under the UPDATE policy)
    5. Insert the remaining keys and return their new ids

    Rows are dicts keyed by model attribute names.
    """

    def __init__(
        self,
        session: Session,
        model: Type[Base],
        policy: ReimportPolicy = ReimportPolicy.UPDATE
    ):
        """
        Initialize identity resolver.

        Args:
            session: SQLAlchemy session
            model: Count model declaring NATURAL_KEY and PAYLOAD
            policy: Re-import policy for keys that already exist
        """
        self.session = session
        self.model = model
        self.policy = ReimportPolicy(policy)
        self.repository = CountRepository(session, model)

        # Statistics
        self._stats = {
            'created': 0,
            'updated': 0,
            'unchanged': 0,
            'collapsed': 0
        }

    @property
    def stats(self) -> Dict[str, int]:
        """Get resolver statistics."""
        return self._stats.copy()

    def natural_key(self, row: Dict[str, Any]) -> Tuple:
        return tuple(row[name] for name in self.model.NATURAL_KEY)

    def payload(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Payload fields present in the row."""
        return {name: row[name] for name in self.model.PAYLOAD if name in row}

    def _collapse(self, rows: Iterable[Dict[str, Any]]) -> Dict[Tuple, Dict[str, Any]]:
        """Unique rows by natural key, in first-seen order."""
        unique: Dict[Tuple, Dict[str, Any]] = {}
        for row in rows:
            key = self.natural_key(row)
            seen = unique.get(key)
            if seen is None:
                unique[key] = row
                continue

            if self.payload(seen) != self.payload(row):
                raise DuplicateNaturalKeyError(key, self.payload(seen), self.payload(row))
            self._stats['collapsed'] += 1
        return unique

    def resolve(self, rows: Iterable[Dict[str, Any]]) -> List[ResolvedRecord]:
        """
        Resolve a batch to surrogate ids.

        Args:
            rows: Canonicalized rows for a single count model

        Returns:
            One ResolvedRecord per unique natural key, in first-seen order

        Raises:
            DuplicateNaturalKeyError: Conflicting payloads for one key in the batch
        """
        unique = self._collapse(rows)
        stored = self.repository.get_many_by_natural_key(unique.keys())

        resolved: Dict[Tuple, ResolvedRecord] = {}
        to_insert: List[Tuple[Tuple, Dict[str, Any]]] = []

        for key, row in unique.items():
            existing = stored.get(key)
            if existing is None:
                to_insert.append((key, row))
                continue

            changes = {
                name: value for name, value in self.payload(row).items()
                if getattr(existing, name) != value
            }
            if changes and self.policy == ReimportPolicy.UPDATE:
                for name, value in changes.items():
                    setattr(existing, name, value)
                self._stats['updated'] += 1
                resolved[key] = ResolvedRecord(existing.id, key, created=False, updated=True)
            else:
                self._stats['unchanged'] += 1
                resolved[key] = ResolvedRecord(existing.id, key, created=False)

        if to_insert:
            inserted = self.repository.add_many([
                {name: row[name] for name in self.model.NATURAL_KEY + tuple(self.payload(row))}
                for _, row in to_insert
            ])
            for (key, _), obj in zip(to_insert, inserted):
                resolved[key] = ResolvedRecord(obj.id, key, created=True)
            self._stats['created'] += len(inserted)

        if self._stats['updated']:
            self.session.flush()

        logger.debug(
            f"Resolved {len(unique)} {self.model.__tablename__} rows: "
            f"{self._stats['created']} created, {self._stats['updated']} updated, "
            f"{self._stats['unchanged']} unchanged"
        )
        return [resolved[key] for key in unique]
