from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    true,
)
import enum

from sentinel.core.clock import utcnow
from sentinel.db.base_class import Base


class RevocationCategory(str, enum.Enum):
    TEMPORARY = "temporary"
    PERMANENT = "permanent"
    ADDRESS_SCOPED = "address_scoped"  # reserved for IP-level bans


ACTIVE_IDENTITY_INDEX = "uq_sentinel_bans_identity_active"


class Revocation(Base):
    """A ban row. Rows are only ever deactivated, never deleted."""

    __tablename__ = "sentinel_bans"

    id = Column(Integer, primary_key=True, index=True)
    identity = Column(String(36), nullable=False, index=True)
    display_name = Column(String(64), nullable=False)
    operator = Column(String(64), nullable=True)
    category = Column(Enum(RevocationCategory, name="revocation_category"), nullable=False)
    reason_names = Column(JSON, nullable=False, default=list)
    remaining_seconds = Column(BigInteger, nullable=False, default=0)
    notice = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True, index=True)  # NULL = permanent
    active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        # at most one active row per identity; concurrent inserts lose on this index
        Index(
            ACTIVE_IDENTITY_INDEX,
            "identity",
            unique=True,
            postgresql_where=(active == true()),
            sqlite_where=(active == true()),
        ),
        Index("ix_sentinel_bans_active_expires_at", "active", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Revocation id={self.id} identity={self.identity} "
            f"category={self.category} active={self.active}>"
        )
