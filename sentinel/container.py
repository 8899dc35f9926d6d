"""Builds every component once, at process start, and wires them together.

Command handlers and login hooks receive the pieces they need from a
``Container`` instead of reaching for module-level globals.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from sentinel.core.clock import Clock, utcnow
from sentinel.core.config import Settings, settings as default_settings
from sentinel.db.session import build_engine, build_session_factory
from sentinel.services.identity_service import IdentityDirectory
from sentinel.services.login_service import LoginGate
from sentinel.services.reason_service import ReasonCatalog
from sentinel.services.revocation_service import ManualDurationPolicy, RevocationEngine
from sentinel.services.revocation_store import RevocationStore
from sentinel.services.sweeper import ExpirationSweeper, build_sweep_lock


@dataclass(frozen=True)
class Container:
    db_engine: Engine
    session_factory: sessionmaker
    reasons: ReasonCatalog
    identities: IdentityDirectory
    store: RevocationStore
    revocations: RevocationEngine
    sweeper: ExpirationSweeper
    login_gate: LoginGate

    def close(self) -> None:
        self.db_engine.dispose()


def build_container(
    config: Optional[Settings] = None,
    db_engine: Optional[Engine] = None,
    clock: Clock = utcnow,
) -> Container:
    config = config or default_settings
    db_engine = db_engine or build_engine(config)
    session_factory = build_session_factory(db_engine)

    reasons = ReasonCatalog(session_factory)
    identities = IdentityDirectory(session_factory, clock=clock)
    store = RevocationStore(session_factory)
    revocations = RevocationEngine(
        reasons,
        store,
        resolver=identities,
        clock=clock,
        manual_policy=ManualDurationPolicy(config.MANUAL_DURATION_POLICY),
    )
    return Container(
        db_engine=db_engine,
        session_factory=session_factory,
        reasons=reasons,
        identities=identities,
        store=store,
        revocations=revocations,
        sweeper=ExpirationSweeper(revocations, lock=build_sweep_lock(config)),
        login_gate=LoginGate(revocations, identities, clock=clock, fail_open=config.LOGIN_FAIL_OPEN),
    )
