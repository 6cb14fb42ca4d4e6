"""
Traffic Counts - Import Reporter
Per-site audit trail of import and AADV decisions.

Events are buffered in memory and mirrored to the structured logger as they
happen. persist() writes the buffer to import_log in a transaction of its
own, so a rolled-back computation still leaves its trail behind.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Callable

from sqlalchemy.orm import Session

from utils.logger import logger
from models.orm_import_log import LogLevel
from database.connection import session_scope
from database.repositories.import_log_repository import ImportLogRepository

_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class ReportEvent:
    """One buffered import log event."""
    recordnum: int
    severity: LogLevel
    message: str
    logged_at: datetime


class ImportReporter:
    """
    Collects report events for one site.

    report() never raises: a reporting problem must not abort the work it
    describes.

    Usage:
        reporter = ImportReporter(165367)
        reporter.warning("2024-07-04 excluded: Independence Day")
        ...
        reporter.persist(create_session)
    """

    def __init__(self, site_id: int):
        self.site_id = site_id
        self._events: List[ReportEvent] = []

    @property
    def events(self) -> List[ReportEvent]:
        """Buffered events not yet persisted."""
        return list(self._events)

    def has_errors(self) -> bool:
        return any(event.severity == LogLevel.ERROR for event in self._events)

    def report(self, severity, message: str) -> None:
        """
        Record one event.

        Args:
            severity: LogLevel or one of 'info', 'warning', 'error'
            message: Human-readable description naming the day/field/reason
        """
        try:
            try:
                level = LogLevel(severity)
            except ValueError:
                # Unknown severities are kept, at error level, rather than lost
                message = f"[{severity}] {message}"
                level = LogLevel.ERROR

            self._events.append(ReportEvent(
                recordnum=self.site_id,
                severity=level,
                message=str(message),
                logged_at=datetime.now(),
            ))
            logger.log(_LOGGING_LEVELS[level], message, extra={
                "event_type": "import_report",
                "recordnum": self.site_id,
                "severity": level.value
            })
        except Exception as e:
            logger.error("Failed to record import report event", extra={
                "recordnum": self.site_id,
                "error_type": type(e).__name__,
                "error_message": str(e)
            })

    def info(self, message: str) -> None:
        self.report(LogLevel.INFO, message)

    def warning(self, message: str) -> None:
        self.report(LogLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.report(LogLevel.ERROR, message)

    def persist(self, session_factory: Callable[[], Session]) -> int:
        """
        Append buffered events to import_log in their own transaction.

        A failure is logged and the events stay buffered; nothing is raised.

        Returns:
            Number of entries written
        """
        if not self._events:
            return 0

        pending = list(self._events)
        try:
            with session_scope(session_factory) as session:
                repo = ImportLogRepository(session)
                for event in pending:
                    repo.create(
                        recordnum=event.recordnum,
                        message=event.message,
                        log_level=event.severity.value,
                        logged_at=event.logged_at,
                    )
        except Exception as e:
            logger.error("Failed to persist import log", extra={
                "event_type": "import_log_error",
                "recordnum": self.site_id,
                "pending_events": len(pending),
                "error_type": type(e).__name__,
                "error_message": str(e)
            }, exc_info=True)
            return 0

        del self._events[:len(pending)]
        return len(pending)
