from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from sentinel.core.exceptions import AlreadyActiveError
from sentinel.db.session import session_scope
from sentinel.models.revocation import ACTIVE_IDENTITY_INDEX, Revocation, RevocationCategory
from sentinel.schemas.revocation import RevocationRecord

logger = structlog.get_logger()


def _is_active_identity_violation(exc: IntegrityError) -> bool:
    detail = str(exc.orig)
    # PostgreSQL names the index, SQLite names the indexed column
    return ACTIVE_IDENTITY_INDEX in detail or "sentinel_bans.identity" in detail


def _newest_first(stmt):
    return stmt.order_by(Revocation.created_at.desc(), Revocation.id.desc())


class RevocationStore:
    """Persistence for revocation rows.

    Every call runs in its own short transaction and returns immutable
    ``RevocationRecord`` snapshots, never live ORM rows.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(
        self,
        *,
        identity: UUID,
        display_name: str,
        operator: Optional[str],
        category: RevocationCategory,
        reason_names: Sequence[str],
        remaining_seconds: int,
        notice: Optional[str],
        created_at: datetime,
        expires_at: Optional[datetime],
    ) -> RevocationRecord:
        """Insert an active row and return it with its assigned id.

        The pre-check gives the common case a clean error; the partial unique
        index on active rows settles concurrent inserts for the same identity.
        """
        key = str(identity)
        with session_scope(self._session_factory, "revocation_create", identity=key) as db:
            if self._active_exists(db, key):
                raise AlreadyActiveError(identity, display_name)

            revocation = Revocation(
                identity=key,
                display_name=display_name,
                operator=operator,
                category=category,
                reason_names=list(reason_names),
                remaining_seconds=remaining_seconds,
                notice=notice,
                created_at=created_at,
                expires_at=expires_at,
                active=True,
            )
            db.add(revocation)
            try:
                # id comes back on the same connection, inside this transaction
                db.flush()
            except IntegrityError as exc:
                if _is_active_identity_violation(exc):
                    raise AlreadyActiveError(identity, display_name) from exc
                raise
            return RevocationRecord.model_validate(revocation)

    def get(self, revocation_id: int) -> Optional[RevocationRecord]:
        with session_scope(self._session_factory, "revocation_get", revocation_id=revocation_id) as db:
            revocation = db.get(Revocation, revocation_id)
            return RevocationRecord.model_validate(revocation) if revocation else None

    def exists_active(self, identity: UUID) -> bool:
        key = str(identity)
        with session_scope(self._session_factory, "revocation_exists_active", identity=key) as db:
            return self._active_exists(db, key)

    def get_active(self, identity: UUID) -> Optional[RevocationRecord]:
        key = str(identity)
        stmt = (
            select(Revocation)
            .where(Revocation.identity == key, Revocation.active.is_(True))
            .order_by(Revocation.id.desc())
        )
        with session_scope(self._session_factory, "revocation_get_active", identity=key) as db:
            rows = db.scalars(stmt).all()
            if not rows:
                return None
            if len(rows) > 1:
                logger.warning(
                    "multiple_active_revocations",
                    identity=key,
                    revocation_ids=[row.id for row in rows],
                )
            return RevocationRecord.model_validate(rows[0])

    def list_all(self, active_only: bool = False, limit: Optional[int] = None) -> List[RevocationRecord]:
        stmt = _newest_first(select(Revocation))
        if active_only:
            stmt = stmt.where(Revocation.active.is_(True))
        if limit is not None:
            stmt = stmt.limit(limit)
        with session_scope(self._session_factory, "revocation_list_all") as db:
            return [RevocationRecord.model_validate(row) for row in db.scalars(stmt).all()]

    def list_for(self, identity: UUID) -> List[RevocationRecord]:
        key = str(identity)
        stmt = _newest_first(select(Revocation).where(Revocation.identity == key))
        with session_scope(self._session_factory, "revocation_list_for", identity=key) as db:
            return [RevocationRecord.model_validate(row) for row in db.scalars(stmt).all()]

    def list_for_name(self, display_name: str) -> List[RevocationRecord]:
        stmt = _newest_first(
            select(Revocation).where(func.lower(Revocation.display_name) == display_name.strip().lower())
        )
        with session_scope(self._session_factory, "revocation_list_for_name", display_name=display_name) as db:
            return [RevocationRecord.model_validate(row) for row in db.scalars(stmt).all()]

    def deactivate(self, revocation_id: int) -> bool:
        stmt = (
            update(Revocation)
            .where(Revocation.id == revocation_id, Revocation.active.is_(True))
            .values(active=False)
        )
        with session_scope(self._session_factory, "revocation_deactivate", revocation_id=revocation_id) as db:
            return db.execute(stmt, execution_options={"synchronize_session": False}).rowcount > 0

    def deactivate_all(self, identity: UUID) -> int:
        key = str(identity)
        stmt = (
            update(Revocation)
            .where(Revocation.identity == key, Revocation.active.is_(True))
            .values(active=False)
        )
        with session_scope(self._session_factory, "revocation_deactivate_all", identity=key) as db:
            return db.execute(stmt, execution_options={"synchronize_session": False}).rowcount

    def update_active(self, revocation_id: int, **values) -> bool:
        """Apply ``values`` to the row if, and only if, it is still active."""
        stmt = (
            update(Revocation)
            .where(Revocation.id == revocation_id, Revocation.active.is_(True))
            .values(**values)
        )
        with session_scope(self._session_factory, "revocation_update", revocation_id=revocation_id) as db:
            return db.execute(stmt, execution_options={"synchronize_session": False}).rowcount > 0

    def set_notice(self, revocation_id: int, notice: Optional[str]) -> bool:
        stmt = update(Revocation).where(Revocation.id == revocation_id).values(notice=notice)
        with session_scope(self._session_factory, "revocation_set_notice", revocation_id=revocation_id) as db:
            return db.execute(stmt, execution_options={"synchronize_session": False}).rowcount > 0

    def deactivate_expired(self, now: datetime) -> int:
        """Single bulk statement; rows not yet due are never touched."""
        stmt = (
            update(Revocation)
            .where(
                Revocation.active.is_(True),
                Revocation.expires_at.is_not(None),
                Revocation.expires_at <= now,
            )
            .values(active=False)
        )
        with session_scope(self._session_factory, "revocation_sweep") as db:
            return db.execute(stmt, execution_options={"synchronize_session": False}).rowcount

    @staticmethod
    def _active_exists(db, key: str) -> bool:
        stmt = (
            select(Revocation.id)
            .where(Revocation.identity == key, Revocation.active.is_(True))
            .limit(1)
        )
        return db.execute(stmt).first() is not None
