"""
Count Importer
Runs one site's batch of parsed count rows through canonicalization,
validation and identity resolution.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, List, Any, Iterable, Optional, Type

from sqlalchemy.orm import Session

from models.base import Base
from models.orm_site import COUNT_DIRECTIONS
from importer.canonicalizer import canonicalize, FieldKind, Unrecognized
from importer.identity_resolver import IdentityResolver, ReimportPolicy, ResolvedRecord
from utils.logger import log_import_start, log_import_complete

MIN_LANE = 1
MAX_LANE = 3


class RowRejected(ValueError):
    """A row failed validation; carries the reason reported for it."""
    pass


@dataclass
class ImportResult:
    """Outcome of importing one site's batch into one count table."""
    recordnum: int
    table: str
    records: List[ResolvedRecord] = field(default_factory=list)
    rejected: int = 0
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def created(self) -> int:
        return self.stats.get('created', 0)

    @property
    def updated(self) -> int:
        return self.stats.get('updated', 0)


def _to_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _to_time(value) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value).strip())


def _to_int(value) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return int(value)


class CountImporter:
    """
    Imports parsed count rows for one site.

    Rejected rows (bad direction, lane out of range, missing key fields,
    wrong site) are reported as errors and skipped. A conflicting duplicate
    aborts the batch with DuplicateNaturalKeyError.
    """

    def __init__(self, session: Session, reporter, policy: ReimportPolicy = ReimportPolicy.UPDATE):
        self.session = session
        self.reporter = reporter
        self.policy = policy
        self.corrections: Counter = Counter()

    def normalize_row(self, model: Type[Base], raw: Dict[str, Any]) -> Dict[str, Any]:
        """
        Coerce and validate one raw row.

        A direction spelled other than canonically is corrected and tallied
        in self.corrections, reported once per spelling by import_rows().

        Raises:
            RowRejected: The row cannot be stored
        """
        for name in model.NATURAL_KEY:
            value = raw.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise RowRejected(f"missing {name}")

        try:
            recordnum = int(raw['recordnum'])
            count_date = _to_date(raw['count_date'])
            lane = int(raw['lane']) if 'lane' in model.NATURAL_KEY else None
        except (TypeError, ValueError) as e:
            raise RowRejected(f"unparseable key field: {e}") from e

        if recordnum != self.reporter.site_id:
            raise RowRejected(f"row belongs to site {recordnum}")

        row = {
            'recordnum': recordnum,
            'count_date': count_date,
        }
        correction = None

        if 'direction' in model.NATURAL_KEY:
            direction = canonicalize(raw['direction'], FieldKind.DIRECTION, 'direction')
            if isinstance(direction, Unrecognized) or direction is None or direction.value not in COUNT_DIRECTIONS:
                raise RowRejected(f"unrecognized direction '{raw['direction']}'")
            if direction.value != raw['direction']:
                correction = ('direction', str(raw['direction']), direction.value)
            row['direction'] = direction.value

        if lane is not None:
            if not MIN_LANE <= lane <= MAX_LANE:
                raise RowRejected(f"lane {lane} outside {MIN_LANE}-{MAX_LANE}")
            row['lane'] = lane

        if 'count_time' in model.NATURAL_KEY:
            try:
                row['count_time'] = _to_time(raw['count_time'])
            except (TypeError, ValueError) as e:
                raise RowRejected(f"unparseable count_time: {e}") from e

        for name in model.PAYLOAD:
            if name not in raw:
                continue
            value = raw[name]
            if name == 'weather':
                row[name] = value or None
                continue
            try:
                row[name] = _to_int(value)
            except (TypeError, ValueError) as e:
                raise RowRejected(f"unparseable {name} '{value}'") from e

        if correction is not None:
            self.corrections[correction] += 1
        return row

    def import_rows(self, model: Type[Base], rows: Iterable[Dict[str, Any]]) -> ImportResult:
        """
        Import a site's rows into one count table.

        Args:
            model: Count model (any of COUNT_MODELS)
            rows: Rows keyed by model attribute names (values may be strings)

        Returns:
            ImportResult with resolved records and statistics

        Raises:
            DuplicateNaturalKeyError: Conflicting duplicates in the batch
        """
        rows = list(rows)
        table = model.__tablename__
        recordnum = self.reporter.site_id
        log_import_start(recordnum, table, len(rows))
        self.corrections.clear()

        valid = []
        rejected = 0
        for index, raw in enumerate(rows, start=1):
            try:
                valid.append(self.normalize_row(model, raw))
            except RowRejected as e:
                rejected += 1
                self.reporter.error(f"{table} row {index} rejected: {e}")

        for (name, old, new), count in sorted(self.corrections.items()):
            self.reporter.info(f"{table} {name}: '{old}' -> '{new}' ({count} rows)")

        resolver = IdentityResolver(self.session, model, policy=self.policy)
        records = resolver.resolve(valid)
        stats = resolver.stats

        if stats['created'] or stats['updated']:
            self.reporter.info(
                f"{table}: {stats['created']} rows created, {stats['updated']} updated, "
                f"{stats['unchanged']} unchanged"
            )

        log_import_complete(recordnum, table, stats['created'], stats['updated'], rejected)
        return ImportResult(
            recordnum=recordnum,
            table=table,
            records=records,
            rejected=rejected,
            stats=stats,
        )
