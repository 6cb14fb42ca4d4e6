"""
SQLAlchemy ORM Base Configuration
Provides declarative base and session management for ORM models.

IMPORTANT: Engine is taken from database.connection to ensure single source of truth.
"""

from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


def _get_engine():
    """
    Get the SQLAlchemy engine from database.connection.

    Lazy import to avoid circular dependencies during module initialization.
    """
    from database.connection import db
    return db.get_engine()


# Session factory for scripts and batch runs; bound on first use
SessionLocal = sessionmaker(
    expire_on_commit=False,  # Allow access to objects after commit
    autoflush=True,
)


def create_session():
    """
    Factory for creating sessions bound to the configured engine.

    Usage:
        session = create_session()
        try:
            # Do work
            session.commit()
        except Exception as e:
            session.rollback()
            raise
        finally:
            session.close()

    Returns:
        SQLAlchemy Session instance
    """
    return SessionLocal(bind=_get_engine())
