"""
Engine, session factory and the FastAPI session dependency.

PostgreSQL gets a pre-pinged QueuePool sized from settings. SQLite URLs
(the test suite, local scratch databases) share one connection through
StaticPool with foreign keys switched on.
"""
import logging
import time
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from core.config import settings

logger = logging.getLogger(__name__)

SESSION_OPEN_ATTEMPTS = 3
SESSION_RETRY_BASE_SEC = 0.1


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def create_db_engine(url: str) -> Engine:
    if _is_sqlite(url):
        db_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.DEBUG,
        )

        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return db_engine

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


def _open_session() -> Session:
    """Open a session and probe it, backing off between failed attempts."""
    for attempt in range(1, SESSION_OPEN_ATTEMPTS + 1):
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            return db
        except Exception as e:
            db.close()
            if attempt == SESSION_OPEN_ATTEMPTS:
                logger.error(
                    "Could not open database session",
                    extra={"extra_fields": {"attempts": attempt, "error": str(e)}},
                )
                raise
            logger.warning(f"Database session attempt {attempt} failed, retrying")
            time.sleep(SESSION_RETRY_BASE_SEC * (2 ** (attempt - 1)))


def get_db() -> Iterator[Session]:
    """
    Request-scoped session.

    Services commit their own writes; anything left pending when the handler
    returns is committed here, and an exception rolls the session back.
    """
    db = _open_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
