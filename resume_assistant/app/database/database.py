import logging
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from resume_assistant.app.core.config import get_settings

log = logging.getLogger(__name__)

# Global variables for engine and sessionmaker
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create the database engine.

    Args:
        None

    Returns:
        Engine: The SQLAlchemy engine instance used to connect to the database.

    Notes:
        1. Create the engine only when first accessed to avoid premature connection.
        2. SQLite URLs are opened with `check_same_thread=False` because persistence
           calls run in a worker thread under a timeout.
        3. Reuse the same engine instance on subsequent calls.

    """
    global _engine
    if _engine is None:
        _msg = "Creating database engine"
        log.debug(_msg)
        settings = get_settings()
        database_url = str(settings.database_url)
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(database_url, connect_args=connect_args)
    return _engine


def get_session_local():
    """Get or create the session local factory.

    Args:
        None

    Returns:
        sessionmaker: The SQLAlchemy sessionmaker instance used to create database sessions.

    Notes:
        1. Create the sessionmaker only when first accessed.
        2. Reuse the same sessionmaker instance on subsequent calls.

    """
    global _SessionLocal
    if _SessionLocal is None:
        _msg = "Creating session local factory"
        log.debug(_msg)
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
        )
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Dependency to provide database sessions to route handlers.

    Returns:
        Generator[Session, None, None]: A generator that yields a database session.

    Notes:
        1. Create a new database session using the sessionmaker factory.
        2. Yield the session to be used in route handlers.
        3. Ensure the session is closed after use to release resources.

    """
    _msg = "Creating database session"
    log.debug(_msg)

    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        _msg = "Closing database session"
        log.debug(_msg)
        db.close()


def init_db() -> None:
    """Create all tables known to the declarative base.

    Notes:
        1. Imports the models package so every table is registered on the metadata.
        2. Calls `create_all` against the configured engine; existing tables are left alone.
        3. This function performs database access.

    """
    from resume_assistant.app.models import Base

    _msg = "init_db starting"
    log.debug(_msg)
    Base.metadata.create_all(bind=get_engine())
    _msg = "init_db returning"
    log.debug(_msg)
