"""
Traffic Counts - Database Connection Management
Provides the SQLAlchemy engine (pooled) and ORM session management.

Production runs against MySQL through PyMySQL; DATABASE_URL overrides the
target with any SQLAlchemy URL.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine, text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.pool import QueuePool
from sqlalchemy.engine import Engine, URL
from sqlalchemy.orm import Session
from typing import Generator

from utils.config import (
    DATABASE_URL, DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD,
    DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_PRE_PING,
    config
)
from utils.logger import logger, log_database_error


class StorageUnavailableError(Exception):
    """Raised when the storage layer cannot be reached or drops the connection mid-transaction."""
    pass


class DatabaseConnection:
    """
    Manages database connections with connection pooling.

    The pool bounds how many per-site batches can hold a connection at once.
    """

    def __init__(self):
        self._engine: Engine = None

    def get_engine(self) -> Engine:
        """
        Get or create the SQLAlchemy engine with connection pooling.

        Raises:
            StorageUnavailableError: If the engine cannot be created
        """
        if self._engine is None:
            try:
                if DATABASE_URL:
                    self._engine = create_engine(DATABASE_URL, echo=False, hide_parameters=True)
                else:
                    # URL.create keeps the password out of logged URLs
                    connection_url = URL.create(
                        drivername="mysql+pymysql",
                        username=DB_USER,
                        password=DB_PASSWORD,
                        host=DB_HOST,
                        port=DB_PORT,
                        database=DB_NAME,
                        query={"charset": "utf8mb4"},
                    )
                    self._engine = create_engine(
                        connection_url,
                        poolclass=QueuePool,
                        pool_size=DB_POOL_SIZE,
                        max_overflow=DB_POOL_MAX_OVERFLOW,
                        pool_recycle=DB_POOL_RECYCLE,
                        pool_pre_ping=DB_POOL_PRE_PING,
                        echo=False,
                        hide_parameters=True,
                    )

                logger.info("Database connection pool initialized", extra={
                    "host": DB_HOST if not DATABASE_URL else None,
                    "database": DB_NAME if not DATABASE_URL else None,
                    "pool_size": DB_POOL_SIZE,
                    "environment": config.environment
                })

            except Exception as e:
                log_database_error(e, "Failed to create database engine")
                raise StorageUnavailableError(f"Failed to create database engine: {e}") from e

        return self._engine

    def test_connection(self) -> bool:
        """Test database connectivity."""
        try:
            with self.get_engine().connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection test successful")
            return True
        except Exception as e:
            logger.error("Database connection test failed", extra={
                "error": str(e)
            })
            return False

    def close(self):
        """Close all connections in the pool."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed")


# Global database connection instance
db = DatabaseConnection()


@contextmanager
def session_scope(session_factory) -> Generator[Session, None, None]:
    """
    Context manager around a session from ``session_factory``.

    Commits on success, rolls back on error. Storage outages
    (lost connection, lock timeouts) surface as StorageUnavailableError;
    every other exception, constraint violations included, propagates
    unchanged.

    Example:
        >>> with session_scope(create_session) as session:
        ...     header = SiteRepository(session).get(165367)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except (OperationalError, InterfaceError) as e:
        session.rollback()
        log_database_error(e, "ORM transaction failed, rolled back")
        raise StorageUnavailableError(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

