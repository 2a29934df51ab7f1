"""
Database connection management for the Project Board backend.
Handles SQLAlchemy engine creation, session management, and connection verification.
"""

import os
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Used when no URL is configured explicitly; build_engine rewrites postgres:// URLs
DATABASE_URL = os.environ.get('DATABASE_URL')

# SQLAlchemy Base for model declarations
Base = declarative_base()

# Engine and SessionLocal will be initialized when needed
engine = None
SessionLocal = None


def _enable_sqlite_savepoints(eng):
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.
    Without this the driver defers BEGIN and SAVEPOINT/ROLLBACK TO misbehave.
    """
    @event.listens_for(eng, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


def build_engine(url, echo=False):
    """Create an engine for the given URL with dialect-appropriate pooling."""
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)

    if url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool
        eng = create_engine(url, echo=echo, **kwargs)
        _enable_sqlite_savepoints(eng)
        return eng

    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=300,    # Recycle connections after 5 minutes
        echo=echo
    )


def get_engine():
    """Get or create the SQLAlchemy engine."""
    global engine

    if engine is not None:
        return engine

    if not DATABASE_URL:
        logger.error("DATABASE_URL environment variable is not set!")
        raise RuntimeError(
            "DATABASE_URL not configured. Cannot connect to the database. "
            "Please set the DATABASE_URL environment variable."
        )

    try:
        engine = build_engine(DATABASE_URL)
        logger.info("Database engine created successfully")
        return engine
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise RuntimeError(f"Failed to connect to database: {e}")


def configure_database(url, echo=False):
    """
    Bind the module-level engine and session factory to a specific URL.
    Called by the app factory; replaces any previously configured engine.
    """
    global engine, SessionLocal, DATABASE_URL

    if engine is not None:
        engine.dispose()

    DATABASE_URL = url
    engine = build_engine(url, echo=echo)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    logger.info(f"Database configured for dialect '{engine.dialect.name}'")
    return engine


def get_session_factory():
    """Get or create the session factory."""
    global SessionLocal

    if SessionLocal is not None:
        return SessionLocal

    eng = get_engine()
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=eng)
    return SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for getting a database session.
    Commits on success, rolls back on any exception.

    Example:
        with get_db_session() as db:
            repo = TaskRepository(db)
            repo.complete_task(task_id)
    """
    session_factory = get_session_factory()
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection():
    """
    Verify that the database connection is working.
    Returns True if connection is successful, raises exception otherwise.
    """
    try:
        eng = get_engine()
        with eng.connect() as conn:
            result = conn.execute(text("SELECT 1"))
            result.fetchone()
        logger.info("Database connection verified successfully")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Cannot connect to database: {e}")


def init_db():
    """
    Initialize the database by creating all tables.
    """
    # Import models to ensure they're registered with Base
    from database import models  # noqa: F401

    eng = get_engine()
    Base.metadata.create_all(bind=eng)
    logger.info("Database tables created/verified")


def is_db_configured():
    """Check if DATABASE_URL is configured (without failing)."""
    return bool(DATABASE_URL)


def get_missing_tables():
    """Names of model tables that do not exist in the connected database."""
    from database import models  # noqa: F401

    existing = set(inspect(get_engine()).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in existing)
