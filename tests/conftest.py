import os
import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

os.environ["ENVIRONMENT"] = "development"

import sentinel.db.base  # noqa: F401
from sentinel.core.config import Settings
from sentinel.db.base_class import Base
from sentinel.db.session import build_engine, build_session_factory
from sentinel.services.identity_service import IdentityDirectory
from sentinel.services.reason_service import ReasonCatalog
from sentinel.services.revocation_service import RevocationEngine
from sentinel.services.revocation_store import RevocationStore


class FrozenClock:
    """Clock that only moves when a test says so."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture()
def db_settings() -> Generator[Settings, None, None]:
    db_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_file.close()
    try:
        yield Settings(
            DATABASE_URL=f"sqlite:///{db_file.name}",
            DB_STATEMENT_TIMEOUT_MS=30000,
            DB_POOL_SIZE=10,
            DB_MAX_OVERFLOW=10,
            SWEEP_LOCK_BACKEND="local",
        )
    finally:
        os.unlink(db_file.name)


@pytest.fixture()
def db_engine(db_settings: Settings) -> Generator[Engine, None, None]:
    engine = build_engine(db_settings)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(db_engine: Engine) -> sessionmaker:
    return build_session_factory(db_engine)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture()
def reasons(session_factory: sessionmaker) -> ReasonCatalog:
    return ReasonCatalog(session_factory)


@pytest.fixture()
def store(session_factory: sessionmaker) -> RevocationStore:
    return RevocationStore(session_factory)


@pytest.fixture()
def directory(session_factory: sessionmaker, clock: FrozenClock) -> IdentityDirectory:
    return IdentityDirectory(session_factory, clock=clock)


@pytest.fixture()
def revocations(
    reasons: ReasonCatalog,
    store: RevocationStore,
    directory: IdentityDirectory,
    clock: FrozenClock,
) -> RevocationEngine:
    return RevocationEngine(reasons, store, resolver=directory, clock=clock)
