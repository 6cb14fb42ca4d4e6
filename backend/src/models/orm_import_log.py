"""
SQLAlchemy ORM Model: ImportLogEntry
Append-only audit trail of import and AADV events per site.
"""

from sqlalchemy import Integer, String, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import datetime
import enum


class LogLevel(str, enum.Enum):
    """Severity of an import log entry."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ImportLogEntry(Base):
    """
    One reported event for a site.

    Rows are written by ImportReporter.persist in their own transaction so
    they outlive a rolled-back computation.
    """
    __tablename__ = "import_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recordnum: Mapped[int] = mapped_column(Integer, nullable=False)
    logged_at: Mapped[datetime] = mapped_column("datetime", DateTime, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    log_level: Mapped[str] = mapped_column(String(10), nullable=False)

    __table_args__ = (
        Index('idx_import_log_recordnum', 'recordnum', 'datetime'),
        {'extend_existing': True}
    )

    def __repr__(self) -> str:
        return f"<ImportLogEntry(id={self.id}, recordnum={self.recordnum}, level='{self.log_level}')>"
