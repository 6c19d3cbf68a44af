"""Database connection and initialization."""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .models import Base

# Set up logging
logger = logging.getLogger(__name__)


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and session factory for one database URL."""

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        self.url = url or settings.DATABASE_URL
        is_sqlite = self.url.startswith("sqlite")
        in_memory = is_sqlite and (self.url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in self.url)

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        if in_memory:
            # One shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool

        self.engine: Engine = create_engine(self.url, **engine_kwargs)
        if is_sqlite:
            event.listen(self.engine, "connect", _set_sqlite_pragma)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager for a unit of work: commit on success, roll back on error."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database error: {str(e)}")
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all database tables."""
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully.")

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        logger.warning("Dropping all database tables...")
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("All database tables dropped.")

    def reset(self) -> None:
        """Reset the database by dropping and recreating all tables."""
        logger.warning("Resetting database...")
        self.drop_tables()
        self.create_tables()
        logger.info("Database reset complete.")

    def dispose(self) -> None:
        self.engine.dispose()
