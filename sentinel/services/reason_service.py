from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from sentinel.core.exceptions import ValidationError
from sentinel.db.session import session_scope
from sentinel.models.reason import Reason, ReasonCategory
from sentinel.schemas.reason import ReasonRecord

logger = structlog.get_logger()


def canonical_reason_name(name: str) -> str:
    """Reason names are stored, looked up and validated in one canonical case."""
    return (name or "").strip().lower()


class ReasonCatalog:
    """Named, reusable revocation reasons keyed by (name, category).

    Nothing is cached: reasons may change between two commands, so every
    call reads the table.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def exists(self, name: str, category: ReasonCategory) -> bool:
        with session_scope(self._session_factory, "reason_exists", reason=name) as db:
            return self._find(db, name, category) is not None

    def save(self, name: str, category: ReasonCategory, duration_seconds: int) -> ReasonRecord:
        """Insert the reason, or overwrite the duration of an existing one."""
        if duration_seconds < 0:
            raise ValidationError("Reason duration must not be negative")
        canonical = canonical_reason_name(name)
        with session_scope(self._session_factory, "reason_save", reason=canonical) as db:
            reason = self._find(db, canonical, category, for_update=True)
            if reason is None:
                reason = Reason(name=canonical, category=category, duration_seconds=duration_seconds)
                db.add(reason)
                event = "reason_created"
            else:
                reason.duration_seconds = duration_seconds
                event = "reason_updated"
            db.flush()
            record = ReasonRecord.model_validate(reason)
        logger.info(event, reason=canonical, category=category.value, duration_seconds=duration_seconds)
        return record

    def delete(self, name: str, category: ReasonCategory) -> bool:
        with session_scope(self._session_factory, "reason_delete", reason=name) as db:
            reason = self._find(db, name, category)
            if reason is None:
                return False
            db.delete(reason)
        logger.info("reason_deleted", reason=canonical_reason_name(name), category=category.value)
        return True

    def load(self, name: str, category: ReasonCategory) -> Optional[ReasonRecord]:
        with session_scope(self._session_factory, "reason_load", reason=name) as db:
            reason = self._find(db, name, category)
            return ReasonRecord.model_validate(reason) if reason else None

    def load_all(self, category: Optional[ReasonCategory] = None) -> List[ReasonRecord]:
        stmt = select(Reason).order_by(Reason.name.asc(), Reason.category.asc())
        if category is not None:
            stmt = stmt.where(Reason.category == category)
        with session_scope(self._session_factory, "reason_load_all") as db:
            return [ReasonRecord.model_validate(reason) for reason in db.scalars(stmt).all()]

    @staticmethod
    def _find(db, name: str, category: ReasonCategory, for_update: bool = False) -> Optional[Reason]:
        stmt = select(Reason).where(
            Reason.name == canonical_reason_name(name),
            Reason.category == category,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return db.scalars(stmt).first()
