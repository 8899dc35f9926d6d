from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from sentinel.core.clock import utcnow
from sentinel.db.base_class import Base


class Identity(Base):
    __tablename__ = "sentinel_identities"

    id = Column(String(36), primary_key=True)
    display_name = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    addresses = relationship(
        "IdentityAddress",
        back_populates="identity",
        cascade="all, delete-orphan",
        order_by="IdentityAddress.first_seen",
    )


class IdentityAddress(Base):
    __tablename__ = "sentinel_identity_addresses"

    identity_id = Column(
        String(36),
        ForeignKey("sentinel_identities.id", ondelete="CASCADE"),
        primary_key=True,
    )
    address = Column(String(45), primary_key=True, index=True)
    first_seen = Column(DateTime, default=utcnow, nullable=False)
    last_seen = Column(DateTime, default=utcnow, nullable=False)

    identity = relationship("Identity", back_populates="addresses")
