"""
Database Connection Management for Spotlight

Provides database engine, session factory, and initialization utilities.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from src.config import load_config
from src.errors import SpotlightError, StorageUnavailableError
from src.utils import get_logger

logger = get_logger(__name__)

# Global engine and session factory (initialized once)
_engine = None
_SessionFactory = None

# Seconds a SQLite writer waits for the database lock
SQLITE_BUSY_TIMEOUT = 30


def build_engine(db_url: str, echo: bool = False, pool_recycle: int = 3600) -> Engine:
    """
    Create an engine for the given URL.

    SQLite engines allow cross-thread use and wait on the write lock instead
    of failing immediately, so per-account updates serialize.
    """
    if db_url.startswith("sqlite"):
        database = db_url.split("///", 1)[-1] if "///" in db_url else ""
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        db_url,
        echo=echo,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Test connections before using
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory whose objects stay readable after commit"""
    return sessionmaker(bind=engine, expire_on_commit=False)


def get_engine() -> Engine:
    """
    Get SQLAlchemy engine (singleton)

    Returns:
        SQLAlchemy Engine instance built from database.url
    """
    global _engine

    if _engine is None:
        config = load_config()

        db_url = config.get_required('database.url')
        _engine = build_engine(
            db_url,
            echo=bool(config.get('database.echo', False)),
            pool_recycle=config.get('database.pool.pool_recycle', 3600),
        )

        logger.info(f"Database engine created: {_engine.url.render_as_string(hide_password=True)}")

    return _engine


def get_session_factory() -> sessionmaker:
    """
    Get SQLAlchemy session factory (singleton)
    """
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = create_session_factory(get_engine())
        logger.debug("Session factory created")

    return _SessionFactory


def reset_engine() -> None:
    """Dispose the singleton engine (tests, CLI --db override)"""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@contextmanager
def get_session(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions

    Usage:
        >>> with get_session() as session:
        ...     accounts = session.query(Account).all()
        ...     # Session auto-committed on success, rolled back on error

    Yields:
        SQLAlchemy Session

    Raises:
        StorageUnavailableError: If the database cannot be reached
        Exception: Re-raises any other exception after rollback
    """
    factory = session_factory or get_session_factory()
    session = factory()

    try:
        yield session
        session.commit()
    except (OperationalError, InterfaceError, DisconnectionError) as e:
        session.rollback()
        logger.error(f"Session rollback, storage unavailable: {e}")
        raise StorageUnavailableError(str(e)) from e
    except SpotlightError as e:
        session.rollback()
        logger.debug(f"Session rollback: {e}")
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Session rollback due to error: {e}", exc_info=True)
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Note: This is NOT decorated with @contextmanager because
    FastAPI's Depends() handles the generator lifecycle directly.
    """
    with get_session() as session:
        yield session


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Initialize database

    Creates all tables defined in models.
    Note: For production, use Alembic migrations instead.
    """
    from .models import Base

    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info("Database tables created/verified")
