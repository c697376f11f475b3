"""Engine, session factory and declarative base."""

import re

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import settings

DATABASE_URL = settings.database_url


def backend_name(url: str = DATABASE_URL) -> str:
    """``"postgresql"``, ``"sqlite"`` or the raw scheme for anything else."""
    scheme = url.split(":", 1)[0]
    return scheme.split("+", 1)[0]


def mask_url(url: str) -> str:
    """Hide the password in a database URL before it is logged."""
    return re.sub(r"://([^:/@]+):([^@]+)@", r"://\1:***@", url)


def _sqlite_engine(url: str) -> Engine:
    sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})

    # pysqlite issues its own BEGIN lazily, which breaks SAVEPOINT; the
    # audit logger's nested transactions need SQLAlchemy to emit BEGIN itself.
    @event.listens_for(sqlite_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sqlite_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


def _pooled_engine(url: str) -> Engine:
    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


engine = _sqlite_engine(DATABASE_URL) if backend_name() == "sqlite" else _pooled_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def ping() -> None:
    """Round-trip ``SELECT 1``; raises whatever the driver raises."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def init_db() -> None:
    """Create missing tables and indexes. Existing ones are left alone."""
    from . import models  # noqa: F401  (registers the mappers on Base.metadata)

    Base.metadata.create_all(bind=engine)


def get_db():
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
