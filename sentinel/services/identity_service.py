from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.orm import selectinload, sessionmaker

from sentinel.core.clock import Clock, utcnow
from sentinel.core.exceptions import IdentityNotFoundError, ValidationError
from sentinel.db.session import session_scope
from sentinel.models.identity import Identity, IdentityAddress
from sentinel.schemas.identity import IdentityRecord, ResolvedIdentity

logger = structlog.get_logger()


@runtime_checkable
class IdentityResolver(Protocol):
    """What the revocation engine needs from an identity directory."""

    def resolve(self, name_or_id: str) -> Optional[ResolvedIdentity]:
        ...


def parse_identity(value) -> Optional[UUID]:
    """Return the UUID held by ``value``, or None when it is not one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        return None


def require_identity(value) -> UUID:
    identity = parse_identity(value)
    if identity is None:
        raise ValidationError(f"Malformed identifier: {value}")
    return identity


def _to_record(identity: Identity) -> IdentityRecord:
    return IdentityRecord(
        id=UUID(identity.id),
        display_name=identity.display_name,
        addresses=tuple(address.address for address in identity.addresses),
        created_at=identity.created_at,
        updated_at=identity.updated_at,
    )


class IdentityDirectory:
    """SQL-backed identity directory: stable ids, last known names, address history."""

    def __init__(self, session_factory: sessionmaker, clock: Clock = utcnow):
        self._session_factory = session_factory
        self._clock = clock

    def resolve(self, name_or_id: str) -> Optional[ResolvedIdentity]:
        identity = parse_identity(name_or_id)
        record = self.load_by_id(identity) if identity else self.load_by_name(name_or_id)
        return record.as_resolved() if record else None

    def load_by_id(self, identity: UUID) -> Optional[IdentityRecord]:
        key = str(identity)
        stmt = select(Identity).options(selectinload(Identity.addresses)).where(Identity.id == key)
        with session_scope(self._session_factory, "identity_load", identity=key) as db:
            row = db.scalars(stmt).first()
            return _to_record(row) if row else None

    def load_by_name(self, display_name: str) -> Optional[IdentityRecord]:
        """First identity currently known under ``display_name`` (exact match)."""
        stmt = (
            select(Identity)
            .options(selectinload(Identity.addresses))
            .where(Identity.display_name == display_name)
            .order_by(Identity.updated_at.desc())
            .limit(1)
        )
        with session_scope(self._session_factory, "identity_load_by_name", display_name=display_name) as db:
            row = db.scalars(stmt).first()
            return _to_record(row) if row else None

    def register_or_update(self, identity: UUID, display_name: str, address: Optional[str] = None) -> IdentityRecord:
        """Record a contact: create the identity or refresh its name, then note the address."""
        if not display_name or not display_name.strip():
            raise ValidationError("Display name must not be blank")
        key = str(require_identity(identity))
        now = self._clock()
        with session_scope(self._session_factory, "identity_register", identity=key) as db:
            row = db.get(Identity, key, with_for_update=True)
            if row is None:
                row = Identity(id=key, display_name=display_name, created_at=now, updated_at=now)
                db.add(row)
                logger.info("identity_registered", identity=key, display_name=display_name)
            elif row.display_name != display_name:
                logger.info("identity_renamed", identity=key, old_name=row.display_name, new_name=display_name)
                row.display_name = display_name
                row.updated_at = now
            db.flush()
            if address and address.strip():
                self._touch_address(db, key, address.strip(), now)
            db.refresh(row)
            return _to_record(row)

    def add_address(self, identity: UUID, address: str) -> None:
        if not address or not address.strip():
            return
        key = str(require_identity(identity))
        with session_scope(self._session_factory, "identity_add_address", identity=key) as db:
            if db.get(Identity, key) is None:
                raise IdentityNotFoundError(identity)
            self._touch_address(db, key, address.strip(), self._clock())

    @staticmethod
    def _touch_address(db, key: str, address: str, now) -> None:
        seen = db.get(IdentityAddress, (key, address))
        if seen is None:
            db.add(IdentityAddress(identity_id=key, address=address, first_seen=now, last_seen=now))
        else:
            seen.last_seen = now
        db.flush()
