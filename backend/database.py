"""SQLAlchemy engine, sessions and declarative base.

One database holds both the configuration store (connections, sync
configurations, field mappings) and the append-only event log.
"""

import logging
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores REFERENCES clauses unless told otherwise per connection."""

    @event.listens_for(engine, "connect")
    def _foreign_keys_on(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """Build an engine for ``database_url``.

    SQLite engines allow cross-thread use (the event logger writes from a
    worker thread) and enforce foreign keys.
    """
    is_sqlite = database_url.startswith("sqlite")
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        echo=False,
    )
    if is_sqlite:
        _enable_sqlite_foreign_keys(engine)
    logger.debug("Created %s engine", engine.dialect.name)
    return engine


@lru_cache
def get_engine() -> Engine:
    return create_db_engine(settings.DATABASE_URL)


def get_session_local():
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db() -> None:
    """Create tables that do not exist yet."""
    import models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(bind=get_engine())


def get_db():
    """FastAPI dependency yielding a session that is always closed.

    Services that save configuration commit themselves so the rows are
    visible to the event logger's own sessions; the event logger never
    uses this session.
    """
    db = get_session_local()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
