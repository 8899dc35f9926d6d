from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from sentinel.core.config import Settings, settings as default_settings
from sentinel.core.exceptions import SentinelError, StorageFailure

logger = structlog.get_logger()


def _connect_args(config: Settings) -> dict:
    backend = make_url(config.DATABASE_URL).get_backend_name()
    if backend == "sqlite":
        # busy timeout in seconds; concurrent writers wait instead of failing at once
        return {
            "check_same_thread": False,
            "timeout": max(config.DB_STATEMENT_TIMEOUT_MS / 1000, 1),
        }
    if backend == "postgresql" and config.DB_STATEMENT_TIMEOUT_MS:
        return {"options": f"-c statement_timeout={config.DB_STATEMENT_TIMEOUT_MS}"}
    return {}


def build_engine(config: Optional[Settings] = None) -> Engine:
    """Create the process-wide pooled engine shared by every component."""
    config = config or default_settings
    url = make_url(config.DATABASE_URL)
    kwargs = {
        "connect_args": _connect_args(config),
        "pool_pre_ping": True,
        "echo": config.DEBUG,
    }
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # in-memory databases cannot be pooled across connections
        engine = create_engine(url, **kwargs)
    else:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_timeout=config.DB_POOL_TIMEOUT,
            pool_recycle=config.DB_POOL_RECYCLE,
            **kwargs,
        )

    if url.get_backend_name() == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker, operation: str, **context) -> Iterator[Session]:
    """One session, one transaction, one logical operation.

    Domain errors roll back and propagate untouched. Any SQLAlchemy error
    (pool checkout timeout, lost connection, statement timeout, unclassified
    constraint violation) rolls back and surfaces as ``StorageFailure``.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except SentinelError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("storage_failure", operation=operation, error=str(exc), **context)
        raise StorageFailure(operation, exc.__class__.__name__, **context) from exc
    finally:
        db.close()
